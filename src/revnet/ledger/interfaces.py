"""Collaborator interfaces — what the deployers consume from the outside.

The ledger platform, the buyback hook, the publishing proxy and the
vesting factory are external systems. Deployers depend only on these
Protocols; revnet.ledger.local provides in-process implementations and
revnet.chain provides on-chain adapters.

Every mutating call names its `caller` so the collaborator can enforce
its own authority rules. Collaborators signal refusal by raising
CollaboratorRejection.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Iterable, Optional, Protocol, Sequence

from revnet.models.croptop import AllowedPost
from revnet.models.hook import HookResponse, InterfaceId, PaymentContext
from revnet.models.permission import PermissionId
from revnet.models.ruleset import RulesetConfig, SplitGroup, TerminalConfig
from revnet.models.vesting import VestingActual, VestingPreset


class Journaled(Protocol):
    def snapshot(self) -> Any: ...

    def restore(self, state: Any) -> None: ...


class Chain(Protocol):
    """Transaction boundary plus the address → component table."""

    def unit_of_work(self) -> AbstractContextManager[None]:
        """All-or-nothing boundary: if the body raises, nothing persists."""
        ...

    def enlist(self, participant: Journaled) -> None: ...

    def register_contract(self, address: str, component: Any) -> None: ...

    def contract_at(self, address: str) -> Any: ...

    def new_address(self, label: str) -> str: ...


class Controller(Protocol):
    def launch_project(
        self,
        caller: str,
        owner: str,
        metadata_uri: str,
        rulesets: Sequence[RulesetConfig],
        terminals: Sequence[TerminalConfig],
    ) -> int: ...

    def deploy_token(self, caller: str, project_id: int, name: str, symbol: str) -> str: ...

    def set_split_groups(
        self, caller: str, project_id: int, groups: Sequence[SplitGroup]
    ) -> None: ...

    def mint_tokens(
        self, caller: str, project_id: int, amount: int, beneficiary: str
    ) -> None: ...

    def owner_of(self, project_id: int) -> str: ...

    def token_of(self, project_id: int) -> Optional[str]: ...

    def ruleset_of(self, project_id: int) -> RulesetConfig: ...


class PermissionRegistry(Protocol):
    def grant(
        self,
        account: str,
        operator: str,
        project_id: int,
        permission_ids: Iterable[PermissionId],
    ) -> None: ...

    def revoke(
        self,
        account: str,
        operator: str,
        project_id: int,
        permission_ids: Iterable[PermissionId],
    ) -> None: ...

    def has_permissions(
        self,
        operator: str,
        account: str,
        project_id: int,
        permission_ids: Iterable[PermissionId],
    ) -> bool: ...


class InterfaceIntrospection(Protocol):
    def supports_interface(self, interface_id: InterfaceId) -> bool: ...


class BuybackHook(Protocol):
    address: str

    def setup_pools(self, caller: str, project_id: int, pools: Sequence[dict[str, Any]]) -> None: ...

    def on_payment_context(self, context: PaymentContext) -> HookResponse: ...


class PublishingProxy(Protocol):
    address: str

    def register_allowed_posts(
        self, caller: str, project_id: int, posts: Sequence[AllowedPost]
    ) -> None: ...


class VestingInstance(Protocol):
    address: str

    @property
    def owner(self) -> str: ...

    def seed_presets(self, caller: str, presets: Sequence[VestingPreset]) -> None: ...

    def seed_actuals(self, caller: str, actuals: Sequence[VestingActual]) -> None: ...

    def transfer_ownership(self, caller: str, new_owner: str) -> None: ...


class VestingFactory(Protocol):
    def create_instance(
        self,
        caller: str,
        token: str,
        label: str,
        revocable: bool = False,
        pausable: bool = False,
    ) -> VestingInstance: ...
