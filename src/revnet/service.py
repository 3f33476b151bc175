"""Revnet service — unified facade over the deployer variants.

This is the primary interface for programmatic access. It dispatches to
exactly one deployer variant per request and turns the outcome into a
ServiceResult:
- Basic deployment
- Pay-hook deployment (composed payment-time hooks + buyback)
- Croptop deployment (publishing proxy rights)
- Vesting deployment (premint routed through a vesting instance)
- Boost operator handover

Every outcome, success or rejection, is appended to the audit event log
when one is configured. Rejections carry the error's reason code in
`data["reason"]`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

from revnet.config import DeploymentFile
from revnet.deployer.basic import BasicRevnetDeployer
from revnet.deployer.croptop import CroptopRevnetDeployer
from revnet.deployer.pay_hooks import PayHookRevnetDeployer
from revnet.deployer.vesting import VestingRevnetDeployer
from revnet.errors import RevnetError
from revnet.ledger.local import LocalStack, build_local_stack
from revnet.models.croptop import AllowedPost
from revnet.models.hook import HookSpecification
from revnet.models.ruleset import DeployedRevnet, RevnetDeployRequest
from revnet.models.vesting import VestingOptions
from revnet.persistence.event_log import EventKind, EventLog, EventRecord

VARIANTS = ("basic", "pay-hooks", "croptop", "vesting")


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class RevnetService:
    """Deployment facade.

    Usage:
        service, stack = create_local_service(event_log=EventLog())
        result = service.deploy_with_pay_hooks(request, [h1, h2])
        hooks = service.pay_hook_specifications_of(result.data["project_id"])
    """

    def __init__(
        self,
        base: BasicRevnetDeployer,
        pay_hooks: Optional[PayHookRevnetDeployer] = None,
        croptop: Optional[CroptopRevnetDeployer] = None,
        vesting: Optional[VestingRevnetDeployer] = None,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._base = base
        self._pay_hooks = pay_hooks
        self._croptop = croptop
        self._vesting = vesting
        self._event_log = event_log
        self._event_counter = event_log.count if event_log is not None else 0

    # ------------------------------------------------------------------
    # Deployment
    # ------------------------------------------------------------------

    def deploy_revnet(self, request: RevnetDeployRequest, actor_id: str = "system") -> ServiceResult:
        return self._deploy("basic", actor_id, lambda: self._base.deploy(request))

    def deploy_with_pay_hooks(
        self,
        request: RevnetDeployRequest,
        hooks: Sequence[HookSpecification],
        actor_id: str = "system",
    ) -> ServiceResult:
        if self._pay_hooks is None:
            return ServiceResult(success=False, errors=["Pay hook deployer not configured"])
        pay_hooks = self._pay_hooks

        def _after(deployed: DeployedRevnet) -> dict[str, Any]:
            specs = pay_hooks.pay_hook_specifications_of(deployed.project_id)
            self._record(
                EventKind.PAY_HOOKS_REGISTERED,
                actor_id,
                {"project_id": deployed.project_id, "hooks": [s.hook for s in specs]},
            )
            return {"pay_hooks": [s.hook for s in specs]}

        return self._deploy(
            "pay-hooks", actor_id,
            lambda: pay_hooks.deploy_with_pay_hooks(request, hooks),
            after=_after,
        )

    def deploy_with_publishing(
        self,
        request: RevnetDeployRequest,
        allowed_posts: Sequence[AllowedPost],
        actor_id: str = "system",
    ) -> ServiceResult:
        if self._croptop is None:
            return ServiceResult(success=False, errors=["Croptop deployer not configured"])
        croptop = self._croptop

        def _after(deployed: DeployedRevnet) -> dict[str, Any]:
            if allowed_posts:
                self._record(
                    EventKind.ALLOWED_POSTS_REGISTERED,
                    actor_id,
                    {
                        "project_id": deployed.project_id,
                        "categories": [p.category for p in allowed_posts],
                    },
                )
            return {"allowed_post_count": len(allowed_posts)}

        return self._deploy(
            "croptop", actor_id,
            lambda: croptop.deploy_with_publishing(request, allowed_posts),
            after=_after,
        )

    def deploy_with_vesting(
        self,
        request: RevnetDeployRequest,
        options: VestingOptions,
        actor_id: str = "system",
    ) -> ServiceResult:
        if self._vesting is None:
            return ServiceResult(success=False, errors=["Vesting deployer not configured"])
        vesting = self._vesting

        def _after(deployed: DeployedRevnet) -> dict[str, Any]:
            schedule = vesting.vesting_schedule_of(deployed.project_id)
            payload = {
                "project_id": deployed.project_id,
                "instance": schedule.instance,
                "owner": schedule.owner,
                "state": schedule.state.value,
            }
            self._record(EventKind.VESTING_SCHEDULE_SEEDED, actor_id, payload)
            return {"vesting_instance": schedule.instance, "vesting_owner": schedule.owner}

        return self._deploy(
            "vesting", actor_id,
            lambda: vesting.deploy_with_vesting(request, options),
            after=_after,
        )

    def deploy(self, deployment: DeploymentFile, variant: str, actor_id: str = "system") -> ServiceResult:
        """Deploy a parsed deployment file through the named variant."""
        if variant == "basic":
            return self.deploy_revnet(deployment.request, actor_id)
        if variant == "pay-hooks":
            return self.deploy_with_pay_hooks(deployment.request, deployment.pay_hooks, actor_id)
        if variant == "croptop":
            return self.deploy_with_publishing(deployment.request, deployment.allowed_posts, actor_id)
        if variant == "vesting":
            if deployment.vesting is None:
                return ServiceResult(success=False, errors=["Deployment has no vesting options"])
            return self.deploy_with_vesting(deployment.request, deployment.vesting, actor_id)
        return ServiceResult(success=False, errors=[f"Unknown variant: {variant}"])

    # ------------------------------------------------------------------
    # Operators
    # ------------------------------------------------------------------

    def replace_boost_operator(self, project_id: int, caller: str, new_operator: str) -> ServiceResult:
        try:
            grant = self._base.replace_boost_operator(project_id, caller, new_operator)
        except RevnetError as e:
            return ServiceResult(success=False, errors=[str(e)], data={"reason": e.reason.value})
        self._record(
            EventKind.BOOST_OPERATOR_REPLACED,
            caller,
            {"project_id": project_id, "previous": caller, "operator": new_operator},
        )
        self._record_grant(grant.account, grant.operator, grant.project_id, grant.permission_ids)
        return ServiceResult(success=True, data={"project_id": project_id, "operator": new_operator})

    def pay_hook_specifications_of(self, project_id: int) -> tuple[HookSpecification, ...]:
        if self._pay_hooks is None:
            return ()
        return self._pay_hooks.pay_hook_specifications_of(project_id)

    def has_mint_permission_for(self, project_id: int, address: str) -> bool:
        if self._pay_hooks is not None and self._pay_hooks.has_mint_permission_for(project_id, address):
            return True
        return self._base.has_mint_permission_for(project_id, address)

    def boost_operator_of(self, project_id: int) -> str:
        return self._base.boost_operator_of(project_id)

    def status(self) -> dict[str, Any]:
        return {
            "deployer": self._base.address,
            "variants": [
                name for name, component in (
                    ("basic", self._base),
                    ("pay-hooks", self._pay_hooks),
                    ("croptop", self._croptop),
                    ("vesting", self._vesting),
                )
                if component is not None
            ],
            "events": self._event_log.count if self._event_log is not None else 0,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _deploy(
        self,
        variant: str,
        actor_id: str,
        action: Callable[[], DeployedRevnet],
        after: Optional[Callable[[DeployedRevnet], dict[str, Any]]] = None,
    ) -> ServiceResult:
        try:
            deployed = action()
        except RevnetError as e:
            self._record(
                EventKind.DEPLOYMENT_REJECTED,
                actor_id,
                {"variant": variant, "reason": e.reason.value, "message": str(e)},
            )
            return ServiceResult(success=False, errors=[str(e)], data={"reason": e.reason.value})

        data: dict[str, Any] = {
            "variant": variant,
            "project_id": deployed.project_id,
            "token": deployed.token,
            "owner": deployed.owner,
            "data_hook": deployed.data_hook,
            "boost_operator": deployed.boost_operator,
            "premint_beneficiary": deployed.premint_beneficiary,
            "stage_count": len(deployed.rulesets),
        }
        self._record(
            EventKind.REVNET_DEPLOYED,
            actor_id,
            {k: v for k, v in data.items() if k != "stage_count"},
        )
        for grant in deployed.grants:
            self._record_grant(grant.account, grant.operator, grant.project_id, grant.permission_ids)
        if after is not None:
            data.update(after(deployed))
        return ServiceResult(success=True, data=data)

    def _record_grant(self, account: str, operator: str, project_id: int, permission_ids: Any) -> None:
        self._record(
            EventKind.PERMISSION_GRANTED,
            account,
            {
                "project_id": project_id,
                "operator": operator,
                "permissions": sorted(p.value for p in permission_ids),
            },
        )

    def _next_event_id(self) -> str:
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record(self, kind: EventKind, actor_id: str, payload: dict[str, Any]) -> None:
        if self._event_log is None:
            return
        self._event_log.append(
            EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
                timestamp_utc=datetime.now(timezone.utc),
            )
        )


def create_local_service(event_log: Optional[EventLog] = None) -> tuple[RevnetService, LocalStack]:
    """Wire every deployer variant against a fresh local ledger."""
    stack = build_local_stack()
    base = BasicRevnetDeployer(stack.chain, stack.controller, stack.registry)
    service = RevnetService(
        base,
        pay_hooks=PayHookRevnetDeployer(base),
        croptop=CroptopRevnetDeployer(base, stack.publisher),
        vesting=VestingRevnetDeployer(base, stack.vesting_factory),
        event_log=event_log,
    )
    return service, stack
