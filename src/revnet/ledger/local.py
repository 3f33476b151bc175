"""In-process ledger platform and collaborators.

A faithful-enough stand-in for the ledger platform and the external
subsystems the deployers talk to: project controller, permission registry,
buyback hook, publishing proxy and vesting factory. Used by the CLI's
simulate command and by the test suite.

Atomicity: LocalChain.unit_of_work() snapshots every enlisted participant
and the contract table on entry; if the body raises, everything is
restored before the exception propagates. Nested units join the outer
one.

Authority: every mutating call takes a `caller`. Owner-restricted
operations succeed for the project owner, or for an operator the owner
has granted the matching permission (project-scoped or wildcard).
"""

from __future__ import annotations

import hashlib
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional, Sequence

from revnet.errors import CollaboratorRejection, ReasonCode
from revnet.ledger.journal import JournaledState
from revnet.models.croptop import AllowedPost
from revnet.models.hook import (
    HookResponse,
    HookSpecification,
    InterfaceId,
    PaymentContext,
)
from revnet.models.permission import (
    WILDCARD_PROJECT_ID,
    PermissionGrant,
    PermissionId,
)
from revnet.models.ruleset import (
    MAX_BPS,
    WAD,
    RulesetConfig,
    SplitGroup,
    TerminalConfig,
)
from revnet.models.vesting import VestingActual, VestingPreset


# ──────────────────────────────────────────────────────────────────
# Chain
# ──────────────────────────────────────────────────────────────────

class LocalChain:
    """Unit-of-work boundary and address table for local components."""

    def __init__(self) -> None:
        self._participants: list[Any] = []
        self._contracts: dict[str, Any] = {}
        self._address_counter = 0
        self._depth = 0

    def new_address(self, label: str) -> str:
        """Deterministic, unique 20-byte hex address."""
        self._address_counter += 1
        digest = hashlib.sha256(f"{label}:{self._address_counter}".encode("utf-8")).hexdigest()
        return "0x" + digest[:40]

    def enlist(self, participant: Any) -> None:
        if participant not in self._participants:
            self._participants.append(participant)

    def register_contract(self, address: str, component: Any) -> None:
        if address in self._contracts:
            raise ValueError(f"Address already registered: {address}")
        self._contracts[address] = component

    def contract_at(self, address: str) -> Any:
        component = self._contracts.get(address)
        if component is None:
            raise CollaboratorRejection(
                ReasonCode.INTERFACE_NOT_SUPPORTED,
                f"No component registered at {address}",
            )
        return component

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        participants = list(self._participants)
        contracts = dict(self._contracts)
        snapshots = [(p, p.snapshot()) for p in participants]
        self._depth = 1
        try:
            yield
        except BaseException:
            for participant, state in snapshots:
                participant.restore(state)
            self._participants = participants
            self._contracts = contracts
            raise
        finally:
            self._depth = 0


# ──────────────────────────────────────────────────────────────────
# Permission registry
# ──────────────────────────────────────────────────────────────────

class LocalPermissionRegistry(JournaledState):
    """Records (account, operator, project) → permission set.

    Grants are additive. ROOT implies every permission, but ROOT may not
    be granted platform-wide.
    """

    _journal_fields = ("_grants", "_history", "write_count")

    def __init__(self, chain: LocalChain) -> None:
        self._grants: dict[tuple[str, str, int], frozenset[PermissionId]] = {}
        self._history: list[PermissionGrant] = []
        self.write_count = 0
        chain.enlist(self)

    def grant(
        self,
        account: str,
        operator: str,
        project_id: int,
        permission_ids: Iterable[PermissionId],
    ) -> None:
        ids = self._validate(project_id, permission_ids)
        if PermissionId.ROOT in ids and project_id == WILDCARD_PROJECT_ID:
            raise CollaboratorRejection(
                ReasonCode.INVALID_PERMISSION,
                "ROOT cannot be granted for the wildcard project",
            )
        key = (account, operator, project_id)
        self._grants[key] = self._grants.get(key, frozenset()) | ids
        self._history.append(PermissionGrant(account, operator, project_id, ids))
        self.write_count += 1

    def revoke(
        self,
        account: str,
        operator: str,
        project_id: int,
        permission_ids: Iterable[PermissionId],
    ) -> None:
        ids = self._validate(project_id, permission_ids)
        key = (account, operator, project_id)
        remaining = self._grants.get(key, frozenset()) - ids
        if remaining:
            self._grants[key] = remaining
        else:
            self._grants.pop(key, None)
        self.write_count += 1

    def has_permissions(
        self,
        operator: str,
        account: str,
        project_id: int,
        permission_ids: Iterable[PermissionId],
    ) -> bool:
        held = self.permissions_of(operator, account, project_id)
        if PermissionId.ROOT in held:
            return True
        return set(permission_ids) <= held

    def permissions_of(self, operator: str, account: str, project_id: int) -> frozenset[PermissionId]:
        """Effective permissions, including wildcard grants."""
        held = self._grants.get((account, operator, project_id), frozenset())
        if project_id != WILDCARD_PROJECT_ID:
            held = held | self._grants.get((account, operator, WILDCARD_PROJECT_ID), frozenset())
        return held

    @property
    def history(self) -> list[PermissionGrant]:
        return list(self._history)

    @staticmethod
    def _validate(project_id: int, permission_ids: Iterable[PermissionId]) -> frozenset[PermissionId]:
        ids = frozenset(permission_ids)
        if not ids:
            raise CollaboratorRejection(ReasonCode.INVALID_PERMISSION, "Empty permission set")
        if project_id < 0:
            raise CollaboratorRejection(
                ReasonCode.INVALID_PERMISSION, f"Invalid project ID: {project_id}"
            )
        return ids


# ──────────────────────────────────────────────────────────────────
# Controller
# ──────────────────────────────────────────────────────────────────

@dataclass
class ProjectState:
    project_id: int
    owner: str
    metadata_uri: str
    rulesets: list[RulesetConfig]
    terminals: list[TerminalConfig]
    token: Optional[str] = None
    split_groups: dict[int, SplitGroup] = field(default_factory=dict)
    balances: dict[str, int] = field(default_factory=dict)
    total_supply: int = 0
    pending_reserved: int = 0
    forwarded: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentReceipt:
    """Outcome of a local payment."""
    project_id: int
    weight: int
    specifications: tuple[HookSpecification, ...]
    beneficiary_tokens: int
    reserved_tokens: int


class LocalController(JournaledState):
    """Project creation, tokens, splits and the payment-time callback path."""

    _journal_fields = ("_projects", "_next_project_id")

    def __init__(self, chain: LocalChain, registry: LocalPermissionRegistry) -> None:
        self._chain = chain
        self._registry = registry
        self._projects: dict[int, ProjectState] = {}
        self._next_project_id = 1
        chain.enlist(self)

    # -- project lifecycle ------------------------------------------------

    def launch_project(
        self,
        caller: str,
        owner: str,
        metadata_uri: str,
        rulesets: Sequence[RulesetConfig],
        terminals: Sequence[TerminalConfig],
    ) -> int:
        if not rulesets:
            raise CollaboratorRejection(ReasonCode.INVALID_REQUEST, "At least one ruleset is required")
        project_id = self._next_project_id
        self._next_project_id += 1
        self._projects[project_id] = ProjectState(
            project_id=project_id,
            owner=owner,
            metadata_uri=metadata_uri,
            rulesets=list(rulesets),
            terminals=list(terminals),
        )
        return project_id

    def deploy_token(self, caller: str, project_id: int, name: str, symbol: str) -> str:
        project = self._require(caller, project_id, PermissionId.DEPLOY_ERC20)
        if project.token is not None:
            raise CollaboratorRejection(
                ReasonCode.INVALID_REQUEST, f"Project {project_id} already has a token"
            )
        if not name or not symbol:
            raise CollaboratorRejection(ReasonCode.INVALID_REQUEST, "Token name and symbol are required")
        project.token = self._chain.new_address(f"token:{symbol}")
        return project.token

    def set_split_groups(self, caller: str, project_id: int, groups: Sequence[SplitGroup]) -> None:
        project = self._require(caller, project_id, PermissionId.SET_SPLIT_GROUPS)
        for group in groups:
            project.split_groups[group.group_id] = group

    def mint_tokens(self, caller: str, project_id: int, amount: int, beneficiary: str) -> None:
        project = self._project(project_id)
        if not self._data_hook_allows_mint(project, caller):
            self._require(caller, project_id, PermissionId.MINT_TOKENS)
        if amount <= 0:
            raise CollaboratorRejection(ReasonCode.INVALID_REQUEST, f"Mint amount must be positive: {amount}")
        project.balances[beneficiary] = project.balances.get(beneficiary, 0) + amount
        project.total_supply += amount

    # -- queries ----------------------------------------------------------

    def owner_of(self, project_id: int) -> str:
        return self._project(project_id).owner

    def token_of(self, project_id: int) -> Optional[str]:
        return self._project(project_id).token

    def ruleset_of(self, project_id: int, at: Optional[int] = None) -> RulesetConfig:
        """The ruleset in effect at timestamp `at` (first ruleset if omitted)."""
        rulesets = self._project(project_id).rulesets
        if at is None:
            return rulesets[0]
        current = rulesets[0]
        for ruleset in rulesets:
            if ruleset.must_start_at_or_after <= at:
                current = ruleset
        return current

    def split_groups_of(self, project_id: int) -> dict[int, SplitGroup]:
        return dict(self._project(project_id).split_groups)

    def balance_of(self, project_id: int, holder: str) -> int:
        return self._project(project_id).balances.get(holder, 0)

    def total_supply_of(self, project_id: int) -> int:
        return self._project(project_id).total_supply

    def pending_reserved_of(self, project_id: int) -> int:
        return self._project(project_id).pending_reserved

    def forwarded_to(self, project_id: int, hook: str) -> int:
        return self._project(project_id).forwarded.get(hook, 0)

    @property
    def project_count(self) -> int:
        return len(self._projects)

    # -- payments ---------------------------------------------------------

    def pay(
        self,
        payer: str,
        project_id: int,
        amount: int,
        beneficiary: str,
        metadata: bytes = b"",
        at: Optional[int] = None,
    ) -> PaymentReceipt:
        """Accept a payment, consulting the ruleset's data hook if enabled."""
        if amount <= 0:
            raise CollaboratorRejection(ReasonCode.INVALID_REQUEST, "Payment amount must be positive")
        with self._chain.unit_of_work():
            project = self._project(project_id)
            ruleset = self.ruleset_of(project_id, at)
            weight = ruleset.weight
            specifications: tuple[HookSpecification, ...] = ()

            if ruleset.use_data_hook_for_pay and ruleset.data_hook:
                data_hook = self._chain.contract_at(ruleset.data_hook)
                if not _supports(data_hook, InterfaceId.RULESET_DATA_HOOK):
                    raise CollaboratorRejection(
                        ReasonCode.INTERFACE_NOT_SUPPORTED,
                        f"{ruleset.data_hook} is not a ruleset data hook",
                    )
                context = PaymentContext(
                    project_id=project_id,
                    payer=payer,
                    amount=amount,
                    weight=weight,
                    beneficiary=beneficiary,
                    metadata=metadata,
                )
                response = data_hook.on_payment_context(context)
                weight = response.weight
                specifications = tuple(response.specifications)

            forwarded = sum(spec.amount for spec in specifications)
            if forwarded > amount:
                raise CollaboratorRejection(
                    ReasonCode.INVALID_REQUEST,
                    f"Hooks requested {forwarded}, payment was {amount}",
                )
            for spec in specifications:
                project.forwarded[spec.hook] = project.forwarded.get(spec.hook, 0) + spec.amount

            token_count = amount * weight // WAD
            reserved = token_count * ruleset.reserved_rate // MAX_BPS
            beneficiary_tokens = token_count - reserved
            if beneficiary_tokens:
                project.balances[beneficiary] = project.balances.get(beneficiary, 0) + beneficiary_tokens
            project.total_supply += beneficiary_tokens
            project.pending_reserved += reserved

        return PaymentReceipt(
            project_id=project_id,
            weight=weight,
            specifications=specifications,
            beneficiary_tokens=beneficiary_tokens,
            reserved_tokens=reserved,
        )

    # -- internals --------------------------------------------------------

    def _project(self, project_id: int) -> ProjectState:
        project = self._projects.get(project_id)
        if project is None:
            raise CollaboratorRejection(ReasonCode.UNKNOWN_PROJECT, f"Unknown project ID: {project_id}")
        return project

    def _require(self, caller: str, project_id: int, permission: PermissionId) -> ProjectState:
        project = self._project(project_id)
        if caller == project.owner:
            return project
        if self._registry.has_permissions(caller, project.owner, project_id, {permission}):
            return project
        raise CollaboratorRejection(
            ReasonCode.UNAUTHORIZED,
            f"{caller} lacks {permission.value} for project {project_id}",
        )

    def _data_hook_allows_mint(self, project: ProjectState, caller: str) -> bool:
        data_hook_address = project.rulesets[0].data_hook
        if not data_hook_address:
            return False
        try:
            data_hook = self._chain.contract_at(data_hook_address)
        except CollaboratorRejection:
            return False
        check = getattr(data_hook, "has_mint_permission_for", None)
        return bool(check and check(project.project_id, caller))


def _supports(component: Any, interface_id: InterfaceId) -> bool:
    check = getattr(component, "supports_interface", None)
    return bool(check and check(interface_id))


# ──────────────────────────────────────────────────────────────────
# Collaborators
# ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class BuybackQuote:
    weight: int
    participate: bool
    amount: int = 0


class LocalBuybackHook(JournaledState):
    """Buyback hook whose market quotes are set by the test or operator.

    If a participating quote exists for the project, the hook returns the
    quoted weight and one specification routing `amount` to itself.
    Otherwise it defers: context weight, no specification.
    """

    _journal_fields = ("_pools", "_quotes")
    INTERFACES = frozenset({InterfaceId.INTERFACE_INTROSPECTION, InterfaceId.RULESET_DATA_HOOK})

    def __init__(self, chain: LocalChain, controller: LocalController) -> None:
        self.address = chain.new_address("buyback")
        self._controller = controller
        self._pools: dict[int, list[dict[str, Any]]] = {}
        self._quotes: dict[int, BuybackQuote] = {}
        chain.register_contract(self.address, self)
        chain.enlist(self)

    def setup_pools(self, caller: str, project_id: int, pools: Sequence[dict[str, Any]]) -> None:
        if self._controller.owner_of(project_id) != caller:
            raise CollaboratorRejection(
                ReasonCode.NOT_OWNER, f"{caller} does not own project {project_id}"
            )
        self._pools[project_id] = [dict(p) for p in pools]

    def pools_of(self, project_id: int) -> list[dict[str, Any]]:
        return list(self._pools.get(project_id, []))

    def set_quote(self, project_id: int, weight: int, participate: bool = True, amount: int = 0) -> None:
        self._quotes[project_id] = BuybackQuote(weight=weight, participate=participate, amount=amount)

    def on_payment_context(self, context: PaymentContext) -> HookResponse:
        quote = self._quotes.get(context.project_id)
        if quote is None or not quote.participate:
            return HookResponse(weight=context.weight)
        return HookResponse(
            weight=quote.weight,
            specifications=(HookSpecification(hook=self.address, amount=quote.amount),),
        )

    def supports_interface(self, interface_id: InterfaceId) -> bool:
        return interface_id in self.INTERFACES

    def mint_for(self, project_id: int, beneficiary: str, amount: int) -> None:
        """Mint bought-back tokens; requires mint authority for the project."""
        self._controller.mint_tokens(self.address, project_id, amount, beneficiary)


class LocalPublishingProxy(JournaledState):
    """Croptop-style proxy: stores posting criteria and publishes tiers."""

    _journal_fields = ("_allowed_posts", "_published")

    def __init__(
        self,
        chain: LocalChain,
        controller: LocalController,
        registry: LocalPermissionRegistry,
    ) -> None:
        self.address = chain.new_address("croptop")
        self._controller = controller
        self._registry = registry
        self._allowed_posts: dict[int, list[AllowedPost]] = {}
        self._published: dict[int, list[tuple[int, str, int]]] = {}
        chain.register_contract(self.address, self)
        chain.enlist(self)

    def register_allowed_posts(self, caller: str, project_id: int, posts: Sequence[AllowedPost]) -> None:
        if self._controller.owner_of(project_id) != caller:
            raise CollaboratorRejection(
                ReasonCode.NOT_OWNER, f"{caller} does not own project {project_id}"
            )
        self._allowed_posts.setdefault(project_id, []).extend(posts)

    def allowed_posts_of(self, project_id: int) -> list[AllowedPost]:
        return list(self._allowed_posts.get(project_id, []))

    def publish(self, poster: str, project_id: int, category: int, price: int, total_supply: int) -> None:
        """Publish a new collectible tier if it meets the category's criteria."""
        criteria = next(
            (p for p in self._allowed_posts.get(project_id, []) if p.category == category),
            None,
        )
        if criteria is None:
            raise CollaboratorRejection(
                ReasonCode.INVALID_REQUEST, f"Category {category} is not open for posts"
            )
        if criteria.allowed_addresses and poster not in criteria.allowed_addresses:
            raise CollaboratorRejection(ReasonCode.UNAUTHORIZED, f"{poster} may not post in {category}")
        if price < criteria.minimum_price:
            raise CollaboratorRejection(ReasonCode.INVALID_REQUEST, "Price below category minimum")
        if total_supply < criteria.minimum_total_supply or (
            criteria.maximum_total_supply and total_supply > criteria.maximum_total_supply
        ):
            raise CollaboratorRejection(ReasonCode.INVALID_REQUEST, "Supply outside category bounds")
        owner = self._controller.owner_of(project_id)
        if not self._registry.has_permissions(
            self.address, owner, project_id, {PermissionId.ADJUST_721_TIERS}
        ):
            raise CollaboratorRejection(
                ReasonCode.UNAUTHORIZED,
                f"Publisher lacks adjust_721_tiers for project {project_id}",
            )
        self._published.setdefault(project_id, []).append((category, poster, price))

    def published_of(self, project_id: int) -> list[tuple[int, str, int]]:
        return list(self._published.get(project_id, []))


class LocalVestingInstance(JournaledState):
    """Ownable vesting instance holding presets and actual allocations."""

    _journal_fields = ("_owner", "presets", "actuals")

    def __init__(self, address: str, owner: str, token: str, label: str, revocable: bool, pausable: bool) -> None:
        self.address = address
        self.token = token
        self.label = label
        self.revocable = revocable
        self.pausable = pausable
        self._owner = owner
        self.presets: dict[int, VestingPreset] = {}
        self.actuals: list[VestingActual] = []

    @property
    def owner(self) -> str:
        return self._owner

    def seed_presets(self, caller: str, presets: Sequence[VestingPreset]) -> None:
        self._require_owner(caller)
        for preset in presets:
            self.presets[preset.preset_id] = preset

    def seed_actuals(self, caller: str, actuals: Sequence[VestingActual]) -> None:
        self._require_owner(caller)
        for actual in actuals:
            if actual.preset_id not in self.presets:
                raise CollaboratorRejection(
                    ReasonCode.INVALID_REQUEST, f"Unknown preset: {actual.preset_id}"
                )
            self.actuals.append(actual)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self._require_owner(caller)
        if not new_owner:
            raise CollaboratorRejection(ReasonCode.INVALID_REQUEST, "New owner is required")
        self._owner = new_owner

    def _require_owner(self, caller: str) -> None:
        if caller != self._owner:
            raise CollaboratorRejection(ReasonCode.NOT_OWNER, f"{caller} does not own {self.address}")


class LocalVestingFactory:
    """Creates vesting instances owned by the caller."""

    def __init__(self, chain: LocalChain) -> None:
        self._chain = chain
        self._instances: dict[str, LocalVestingInstance] = {}
        chain.enlist(self)

    def create_instance(
        self,
        caller: str,
        token: str,
        label: str,
        revocable: bool = False,
        pausable: bool = False,
    ) -> LocalVestingInstance:
        address = self._chain.new_address(f"vesting:{label}")
        instance = LocalVestingInstance(address, caller, token, label, revocable, pausable)
        self._instances[address] = instance
        self._chain.register_contract(address, instance)
        self._chain.enlist(instance)
        return instance

    def instance_at(self, address: str) -> LocalVestingInstance:
        instance = self._instances.get(address)
        if instance is None:
            raise CollaboratorRejection(ReasonCode.INVALID_REQUEST, f"Unknown vesting instance: {address}")
        return instance

    @property
    def instance_count(self) -> int:
        return len(self._instances)

    def snapshot(self) -> dict[str, LocalVestingInstance]:
        return dict(self._instances)

    def restore(self, state: dict[str, LocalVestingInstance]) -> None:
        self._instances = state


# ──────────────────────────────────────────────────────────────────
# Assembly
# ──────────────────────────────────────────────────────────────────

@dataclass
class LocalStack:
    """A fully wired local ledger platform with its collaborators."""
    chain: LocalChain
    registry: LocalPermissionRegistry
    controller: LocalController
    buyback: LocalBuybackHook
    publisher: LocalPublishingProxy
    vesting_factory: LocalVestingFactory


def build_local_stack() -> LocalStack:
    chain = LocalChain()
    registry = LocalPermissionRegistry(chain)
    controller = LocalController(chain, registry)
    return LocalStack(
        chain=chain,
        registry=registry,
        controller=controller,
        buyback=LocalBuybackHook(chain, controller),
        publisher=LocalPublishingProxy(chain, controller, registry),
        vesting_factory=LocalVestingFactory(chain),
    )
