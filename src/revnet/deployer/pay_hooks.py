"""Pay hook composition — many payment-time hooks behind one data hook.

The ledger consults exactly one data hook per ruleset. For revnets
deployed with pay hooks, that data hook is the PayHookComposer: on every
payment it returns the project's registered hooks, in registration order,
followed by the buyback hook's specification if the buyback hook elects
to participate.

Invariants:
    - The composed list never exceeds (registered hooks) + 1 entries.
    - The buyback entry, if present, is always last.
    - Registration only appends: no deduplication, no reordering.
    - Only the owning deployer may register hooks or bind a buyback hook.
    - on_payment_context and on_redemption_context have no side effects.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from revnet.deployer.basic import BasicRevnetDeployer
from revnet.errors import CollaboratorRejection, ReasonCode
from revnet.ledger.interfaces import Chain
from revnet.ledger.journal import JournaledState
from revnet.models.hook import (
    HookResponse,
    HookSpecification,
    InterfaceId,
    PaymentContext,
    RedemptionContext,
)
from revnet.models.permission import WILDCARD_PROJECT_ID, PermissionGrant, PermissionId
from revnet.models.ruleset import DeployedRevnet, RevnetDeployRequest

BUYBACK_MINT_PERMISSIONS = frozenset({PermissionId.MINT_TOKENS})


class PayHookComposer(JournaledState):
    """Per-project hook lists and buyback bindings, served to the ledger."""

    _journal_fields = ("_hooks", "_buyback_hooks")
    INTERFACES = frozenset({InterfaceId.INTERFACE_INTROSPECTION, InterfaceId.RULESET_DATA_HOOK})

    def __init__(self, chain: Chain, deployer: str, address: Optional[str] = None) -> None:
        self._chain = chain
        self._deployer = deployer
        self.address = address or chain.new_address("pay-hook-composer")
        self._hooks: dict[int, list[HookSpecification]] = {}
        self._buyback_hooks: dict[int, str] = {}
        chain.register_contract(self.address, self)
        chain.enlist(self)

    # -- deployer-only mutation -------------------------------------------

    def register_hooks(
        self,
        caller: str,
        project_id: int,
        hooks: Iterable[HookSpecification],
    ) -> None:
        """Append hooks to the project's list, preserving order."""
        self._require_deployer(caller)
        self._hooks.setdefault(project_id, []).extend(hooks)

    def bind_buyback_hook(self, caller: str, project_id: int, hook: str) -> None:
        self._require_deployer(caller)
        self._buyback_hooks[project_id] = hook

    # -- queries ----------------------------------------------------------

    def pay_hook_specifications_of(self, project_id: int) -> tuple[HookSpecification, ...]:
        return tuple(self._hooks.get(project_id, ()))

    def buyback_hook_of(self, project_id: int) -> Optional[str]:
        return self._buyback_hooks.get(project_id)

    def has_mint_permission_for(self, project_id: int, address: str) -> bool:
        hook = self._buyback_hooks.get(project_id)
        return hook is not None and hook == address

    def supports_interface(self, interface_id: InterfaceId) -> bool:
        return interface_id in self.INTERFACES

    # -- ledger callbacks -------------------------------------------------

    def on_payment_context(self, context: PaymentContext) -> HookResponse:
        stored = self.pay_hook_specifications_of(context.project_id)
        buyback_address = self._buyback_hooks.get(context.project_id)
        if buyback_address is None:
            return HookResponse(weight=context.weight, specifications=stored)

        response = self._chain.contract_at(buyback_address).on_payment_context(context)
        buyback_specs = tuple(response.specifications)
        if len(buyback_specs) > 1:
            raise CollaboratorRejection(
                ReasonCode.INTERFACE_NOT_SUPPORTED,
                f"Buyback hook returned {len(buyback_specs)} specifications, expected at most 1",
            )
        return HookResponse(weight=response.weight, specifications=stored + buyback_specs)

    def on_redemption_context(self, context: RedemptionContext) -> HookResponse:
        return HookResponse(weight=0, specifications=())

    def _require_deployer(self, caller: str) -> None:
        if caller != self._deployer:
            raise CollaboratorRejection(
                ReasonCode.UNAUTHORIZED, f"{caller} may not modify pay hooks"
            )


class PayHookRevnetDeployer:
    """Deploys revnets whose data hook is a PayHookComposer.

    Usage:
        deployer = PayHookRevnetDeployer(base)
        deployed = deployer.deploy_with_pay_hooks(request, [h1, h2])
    """

    def __init__(self, base: BasicRevnetDeployer, composer: Optional[PayHookComposer] = None) -> None:
        self._base = base
        self.composer = composer or PayHookComposer(base.chain, deployer=base.address)

    def deploy_with_pay_hooks(
        self,
        request: RevnetDeployRequest,
        hooks: Sequence[HookSpecification] = (),
    ) -> DeployedRevnet:
        """Deploy a revnet and register its pay hooks.

        The buyback hook receives a platform-wide mint grant from the
        deploying account through the guarded path, so a hook shared by
        many revnets is granted once.
        """
        hooks = tuple(hooks)
        base = self._base
        with base.unit_of_work():
            deployed = base.deploy(request, data_hook=self.composer.address)
            project_id = deployed.project_id
            buyback = request.buyback.hook
            self.composer.bind_buyback_hook(base.address, project_id, buyback)
            if hooks:
                self.composer.register_hooks(base.address, project_id, hooks)
            if base.delegator.grant_if_missing(buyback, WILDCARD_PROJECT_ID, BUYBACK_MINT_PERMISSIONS):
                deployed.grants.append(
                    PermissionGrant(
                        account=base.address,
                        operator=buyback,
                        project_id=WILDCARD_PROJECT_ID,
                        permission_ids=BUYBACK_MINT_PERMISSIONS,
                    )
                )
        return deployed

    def pay_hook_specifications_of(self, project_id: int) -> tuple[HookSpecification, ...]:
        return self.composer.pay_hook_specifications_of(project_id)

    def has_mint_permission_for(self, project_id: int, address: str) -> bool:
        return self.composer.has_mint_permission_for(project_id, address)
