"""Error taxonomy for revnet deployment and hook composition.

Three kinds of failure exist:
1. Invalid configuration: rejected before any ledger state is touched.
2. Collaborator rejection: the ledger or a hook declined an operation.
   Propagated unmodified; the enclosing unit of work discards everything.
3. Interface non-conformance: surfaces as a collaborator rejection.

Every error carries a reason code so a failed deployment can be reported
with a distinguishing cause.
"""

from __future__ import annotations

import enum


class ReasonCode(str, enum.Enum):
    """Distinguishing cause attached to every revnet error."""
    # Configuration
    NO_STAGES = "no_stages"
    STAGE_TIMES_NOT_INCREASING = "stage_times_not_increasing"
    STAGE_OUT_OF_RANGE = "stage_out_of_range"
    INVALID_REQUEST = "invalid_request"
    VESTING_PRESET_COUNT = "vesting_preset_count"
    VESTING_ACTUAL_COUNT = "vesting_actual_count"
    VESTING_RECIPIENT_MISMATCH = "vesting_recipient_mismatch"
    VESTING_UNKNOWN_PRESET = "vesting_unknown_preset"
    VESTING_AMOUNT_EXCEEDS_PREMINT = "vesting_amount_exceeds_premint"
    # Collaborators
    UNAUTHORIZED = "unauthorized"
    UNKNOWN_PROJECT = "unknown_project"
    INVALID_PERMISSION = "invalid_permission"
    NOT_OWNER = "not_owner"
    INTERFACE_NOT_SUPPORTED = "interface_not_supported"
    # State machines
    INVALID_TRANSITION = "invalid_transition"


class RevnetError(Exception):
    """Base class for every error raised by this package."""

    def __init__(self, reason: ReasonCode, message: str) -> None:
        super().__init__(message)
        self.reason = reason

    def __str__(self) -> str:
        return f"[{self.reason.value}] {super().__str__()}"


class InvalidConfiguration(RevnetError):
    """Raised when a deployment request is malformed."""


class CollaboratorRejection(RevnetError):
    """Raised when the ledger or a collaborator declines an operation."""


class InvalidTransition(RevnetError):
    """Raised when a state machine transition is not allowed."""

    def __init__(self, message: str) -> None:
        super().__init__(ReasonCode.INVALID_TRANSITION, message)
