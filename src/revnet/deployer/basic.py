"""Basic revnet deployer — creates the project every variant builds on.

Deployment steps, executed inside one unit of work:
1. Launch the project with rulesets built from the stages.
2. Deploy the project's token.
3. Hand the buyback hook its pool configuration.
4. Point the reserved-token split group at the boost operator.
5. Premint, if configured, to the boost operator (or a redirected
   beneficiary supplied by an extension).
6. Grant the boost operator permission to change the split group.

The deployer owns every project it creates. Extensions do not subclass
it; they hold a reference and call deploy(), then act on the result
using the deployer's address and delegator.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Callable, Optional

from revnet.deployer.ruleset_builder import build_ruleset_configs
from revnet.errors import CollaboratorRejection, InvalidConfiguration, ReasonCode
from revnet.ledger.interfaces import Chain, Controller, PermissionRegistry
from revnet.ledger.journal import JournaledState
from revnet.models.permission import PermissionGrant, PermissionId
from revnet.models.ruleset import (
    RESERVED_TOKEN_GROUP_ID,
    SPLITS_TOTAL_PERCENT,
    DeployedRevnet,
    RevnetDeployRequest,
    Split,
    SplitGroup,
)
from revnet.permissions.delegator import PermissionDelegator

BOOST_OPERATOR_PERMISSIONS = frozenset({PermissionId.SET_SPLIT_GROUPS})

# (project_id, token) → address that receives the premint
PremintBeneficiary = Callable[[int, str], str]


def boost_split_group(operator: str) -> SplitGroup:
    """Reserved tokens go entirely to the boost operator."""
    return SplitGroup(
        group_id=RESERVED_TOKEN_GROUP_ID,
        splits=(Split(beneficiary=operator, percent=SPLITS_TOTAL_PERCENT),),
    )


class BasicRevnetDeployer(JournaledState):
    """Creates revnets and tracks their boost operators and buyback hooks.

    Usage:
        deployer = BasicRevnetDeployer(chain, controller, registry)
        deployed = deployer.deploy(request)
        deployer.replace_boost_operator(deployed.project_id, operator, new_operator)
    """

    _journal_fields = ("_boost_operators", "_buyback_hooks")

    def __init__(
        self,
        chain: Chain,
        controller: Controller,
        registry: PermissionRegistry,
        address: Optional[str] = None,
    ) -> None:
        self._chain = chain
        self._controller = controller
        self.address = address or chain.new_address("revnet-deployer")
        self.delegator = PermissionDelegator(registry, account=self.address)
        self._boost_operators: dict[int, str] = {}
        self._buyback_hooks: dict[int, str] = {}
        chain.register_contract(self.address, self)
        chain.enlist(self)

    @property
    def chain(self) -> Chain:
        return self._chain

    @property
    def controller(self) -> Controller:
        return self._controller

    def unit_of_work(self) -> AbstractContextManager[None]:
        return self._chain.unit_of_work()

    def deploy(
        self,
        request: RevnetDeployRequest,
        data_hook: Optional[str] = None,
        premint_beneficiary: Optional[PremintBeneficiary] = None,
    ) -> DeployedRevnet:
        """Deploy a revnet. All-or-nothing.

        Args:
            request: Base configuration, terminals and buyback setup.
            data_hook: Address consulted on every payment. Defaults to the
                buyback hook.
            premint_beneficiary: Optional callable that chooses who receives
                the premint, given the new project ID and token.

        Raises:
            InvalidConfiguration: before any ledger call, if the request is
                malformed.
            CollaboratorRejection: if the ledger or a collaborator refuses a
                step; nothing from this call persists.
        """
        config = request.config
        if not request.buyback.hook:
            raise InvalidConfiguration(ReasonCode.INVALID_REQUEST, "A buyback hook is required")
        hook_address = data_hook if data_hook is not None else request.buyback.hook
        rulesets = build_ruleset_configs(config, hook_address, request.extra_metadata)
        operator = config.initial_boost_operator

        with self._chain.unit_of_work():
            project_id = self._controller.launch_project(
                self.address,
                self.address,
                config.description.metadata_uri,
                rulesets,
                request.terminals,
            )
            token = self._controller.deploy_token(
                self.address, project_id, request.name, request.symbol
            )

            buyback = self._chain.contract_at(request.buyback.hook)
            buyback.setup_pools(self.address, project_id, request.buyback.pools)
            self._buyback_hooks[project_id] = request.buyback.hook

            self._controller.set_split_groups(
                self.address, project_id, [boost_split_group(operator)]
            )

            beneficiary: Optional[str] = None
            if config.premint_token_amount > 0:
                beneficiary = (
                    premint_beneficiary(project_id, token)
                    if premint_beneficiary is not None
                    else operator
                )
                self._controller.mint_tokens(
                    self.address, project_id, config.premint_token_amount, beneficiary
                )

            grant = self.delegator.grant(operator, project_id, BOOST_OPERATOR_PERMISSIONS)
            self._boost_operators[project_id] = operator

        return DeployedRevnet(
            project_id=project_id,
            token=token,
            owner=self.address,
            data_hook=hook_address,
            boost_operator=operator,
            premint_beneficiary=beneficiary,
            rulesets=tuple(rulesets),
            grants=[grant],
        )

    def boost_operator_of(self, project_id: int) -> str:
        operator = self._boost_operators.get(project_id)
        if operator is None:
            raise CollaboratorRejection(
                ReasonCode.UNKNOWN_PROJECT, f"No revnet deployed with ID {project_id}"
            )
        return operator

    def buyback_hook_of(self, project_id: int) -> Optional[str]:
        return self._buyback_hooks.get(project_id)

    def has_mint_permission_for(self, project_id: int, address: str) -> bool:
        """Only the project's bound buyback hook may mint outside the rulesets."""
        hook = self._buyback_hooks.get(project_id)
        return hook is not None and hook == address

    def replace_boost_operator(
        self,
        project_id: int,
        caller: str,
        new_operator: str,
    ) -> PermissionGrant:
        """Hand the boost operator role to `new_operator`.

        Only the current operator may call this. The old operator's split
        permission is revoked, the new operator is granted it, and the
        reserved-token split group is repointed.
        """
        current = self.boost_operator_of(project_id)
        if caller != current:
            raise CollaboratorRejection(
                ReasonCode.UNAUTHORIZED,
                f"{caller} is not the boost operator of project {project_id}",
            )
        if not new_operator:
            raise InvalidConfiguration(ReasonCode.INVALID_REQUEST, "New boost operator is required")

        with self._chain.unit_of_work():
            self._controller.set_split_groups(
                self.address, project_id, [boost_split_group(new_operator)]
            )
            self.delegator.revoke(current, project_id, BOOST_OPERATOR_PERMISSIONS)
            grant = self.delegator.grant(new_operator, project_id, BOOST_OPERATOR_PERMISSIONS)
            self._boost_operators[project_id] = new_operator
        return grant
