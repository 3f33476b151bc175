"""Payment-time hook models.

A hook specification is one unit of payment-time delegation: the ledger
forwards `amount` of the payment to `hook` along with `metadata`. The
composed response is an ordered tuple; order is part of the contract with
the payment engine.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class InterfaceId(str, enum.Enum):
    """Callback interfaces a component can declare support for."""
    INTERFACE_INTROSPECTION = "interface_introspection"
    RULESET_DATA_HOOK = "ruleset_data_hook"
    PAY_HOOK = "pay_hook"


@dataclass(frozen=True)
class HookSpecification:
    """A hook the payment engine should invoke, and what to forward to it."""
    hook: str
    amount: int = 0
    metadata: bytes = b""

    def __post_init__(self) -> None:
        if not self.hook:
            raise ValueError("Hook address is required")
        if self.amount < 0:
            raise ValueError(f"Hook amount must be >= 0, got {self.amount}")


@dataclass(frozen=True)
class PaymentContext:
    """What the ledger knows about a payment when it consults the data hook."""
    project_id: int
    payer: str
    amount: int
    weight: int
    beneficiary: str
    ruleset_id: int = 0
    metadata: bytes = b""


@dataclass(frozen=True)
class RedemptionContext:
    """What the ledger knows about a redemption when it consults the data hook."""
    project_id: int
    holder: str
    redeem_count: int
    total_supply: int
    surplus: int
    redemption_rate: int
    metadata: bytes = b""


@dataclass(frozen=True)
class HookResponse:
    """Weight to issue at plus the ordered hooks to invoke."""
    weight: int
    specifications: tuple[HookSpecification, ...] = ()
