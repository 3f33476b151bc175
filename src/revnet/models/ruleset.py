"""Issuance configuration models — stages, rulesets, splits, terminals.

A revnet's issuance schedule is a sequence of stages. Each stage becomes
one ruleset on the ledger. Once deployed, rulesets can be queued for the
future but never altered retroactively.

Fixed-point conventions follow the ledger platform:
    weight:          18-decimal fixed point (tokens per unit paid)
    rates in bps:    0..10_000
    decay rate:      0..1_000_000_000
    split percent:   0..1_000_000_000
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from revnet.models.permission import PermissionGrant

WAD = 10 ** 18
MAX_BPS = 10_000
MAX_DECAY_RATE = 1_000_000_000
SPLITS_TOTAL_PERCENT = 1_000_000_000
RESERVED_TOKEN_GROUP_ID = 1


@dataclass(frozen=True)
class StageConfig:
    """One stage of a revnet's issuance schedule.

    Rates are validated by the ruleset builder, not here, so that a
    malformed configuration produces a reason-coded rejection.
    """
    starts_at_or_after: int
    boost_rate: int
    initial_issuance_rate: int
    price_ceiling_increase_frequency: int
    price_ceiling_increase_percentage: int
    price_floor_tax_intensity: int


@dataclass(frozen=True)
class RevnetDescription:
    """Token name/symbol and off-chain metadata pointer."""
    name: str
    symbol: str
    metadata_uri: str = ""


@dataclass(frozen=True)
class RevnetConfig:
    """Base configuration shared by every deployer variant."""
    description: RevnetDescription
    initial_boost_operator: str
    stages: tuple[StageConfig, ...]
    premint_token_amount: int = 0
    base_currency: int = 1

    def __post_init__(self) -> None:
        if not self.initial_boost_operator:
            raise ValueError("initial_boost_operator is required")
        if self.premint_token_amount < 0:
            raise ValueError(
                f"premint_token_amount must be >= 0, got {self.premint_token_amount}"
            )


@dataclass(frozen=True)
class RulesetConfig:
    """A single issuance-rule stage as registered with the ledger."""
    must_start_at_or_after: int
    duration: int
    weight: int
    decay_rate: int
    reserved_rate: int
    redemption_rate: int
    base_currency: int
    data_hook: Optional[str]
    use_data_hook_for_pay: bool = True
    use_data_hook_for_redeem: bool = False
    metadata: int = 0


@dataclass(frozen=True)
class TerminalConfig:
    """A payment-acceptance terminal and the tokens it accounts in."""
    terminal: str
    accounting_tokens: tuple[str, ...] = ()


@dataclass(frozen=True)
class BuybackHookConfig:
    """The buyback hook to bind and its opaque pool setup payload."""
    hook: str
    pools: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True)
class Split:
    beneficiary: str
    percent: int

    def __post_init__(self) -> None:
        if not (0 < self.percent <= SPLITS_TOTAL_PERCENT):
            raise ValueError(
                f"Split percent must be in (0, {SPLITS_TOTAL_PERCENT}], got {self.percent}"
            )


@dataclass(frozen=True)
class SplitGroup:
    group_id: int
    splits: tuple[Split, ...] = ()

    def __post_init__(self) -> None:
        total = sum(s.percent for s in self.splits)
        if total > SPLITS_TOTAL_PERCENT:
            raise ValueError(
                f"Split group {self.group_id} exceeds {SPLITS_TOTAL_PERCENT} ({total})"
            )


@dataclass(frozen=True)
class RevnetDeployRequest:
    """Everything the base deployer needs to create one revnet."""
    config: RevnetConfig
    terminals: tuple[TerminalConfig, ...]
    buyback: BuybackHookConfig
    extra_metadata: int = 0

    @property
    def name(self) -> str:
        return self.config.description.name

    @property
    def symbol(self) -> str:
        return self.config.description.symbol


@dataclass
class DeployedRevnet:
    """Result of a successful deployment."""
    project_id: int
    token: str
    owner: str
    data_hook: Optional[str]
    boost_operator: str
    premint_beneficiary: Optional[str] = None
    rulesets: tuple[RulesetConfig, ...] = ()
    grants: list[PermissionGrant] = field(default_factory=list)
