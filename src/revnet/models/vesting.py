"""Vesting (unlocker) models.

A revnet may route its premint through a vesting instance instead of
paying it to the boost operator directly. The deployer seeds exactly one
preset and one actual allocation, then hands the instance to the operator.

State machine:
    UNINITIALIZED → SEEDED                 (preset + actual recorded)
    SEEDED → OWNERSHIP_TRANSFERRED         (operator owns the instance)

OWNERSHIP_TRANSFERRED is terminal from this package's perspective.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from revnet.errors import InvalidTransition


class VestingScheduleState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    SEEDED = "seeded"
    OWNERSHIP_TRANSFERRED = "ownership_transferred"


VESTING_TRANSITIONS: Dict[VestingScheduleState, frozenset] = {
    VestingScheduleState.UNINITIALIZED: frozenset({VestingScheduleState.SEEDED}),
    VestingScheduleState.SEEDED: frozenset({VestingScheduleState.OWNERSHIP_TRANSFERRED}),
    VestingScheduleState.OWNERSHIP_TRANSFERRED: frozenset(),
}


@dataclass(frozen=True)
class VestingPreset:
    """A named release curve: nothing before the cliff, linear to duration."""
    preset_id: int
    cliff_seconds: int = 0
    duration_seconds: int = 0

    def __post_init__(self) -> None:
        if self.cliff_seconds < 0 or self.duration_seconds < 0:
            raise ValueError("Vesting cliff and duration must be >= 0")
        if self.duration_seconds and self.cliff_seconds > self.duration_seconds:
            raise ValueError(
                f"Cliff ({self.cliff_seconds}s) exceeds duration ({self.duration_seconds}s)"
            )


@dataclass(frozen=True)
class VestingActual:
    """An allocation of vesting tokens to a recipient under a preset."""
    recipient: str
    preset_id: int
    amount: int

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"Vesting amount must be positive, got {self.amount}")


@dataclass(frozen=True)
class VestingOptions:
    """Caller-supplied vesting configuration for a revnet deployment.

    Counts are deliberately not enforced here: the vesting extension
    rejects malformed options with a reason code.
    """
    label: str
    presets: tuple[VestingPreset, ...]
    actuals: tuple[VestingActual, ...]
    revocable: bool = False
    pausable: bool = False


@dataclass
class VestingSchedule:
    """Lifecycle record for one project's vesting instance."""
    project_id: int
    instance: str
    state: VestingScheduleState = VestingScheduleState.UNINITIALIZED
    preset_id: Optional[int] = None
    recipient: Optional[str] = None
    owner: Optional[str] = None
    seeded_utc: Optional[datetime] = None
    transferred_utc: Optional[datetime] = None

    def transition_to(self, target: VestingScheduleState) -> None:
        allowed = VESTING_TRANSITIONS.get(self.state, frozenset())
        if target not in allowed:
            raise InvalidTransition(
                f"Invalid vesting transition: {self.state.value} → {target.value}"
            )
        self.state = target
