"""Core data models for revnet deployment."""

from revnet.models.croptop import AllowedPost
from revnet.models.hook import (
    HookResponse,
    HookSpecification,
    InterfaceId,
    PaymentContext,
    RedemptionContext,
)
from revnet.models.permission import (
    WILDCARD_PROJECT_ID,
    PermissionGrant,
    PermissionId,
)
from revnet.models.ruleset import (
    BuybackHookConfig,
    DeployedRevnet,
    RevnetConfig,
    RevnetDeployRequest,
    RevnetDescription,
    RulesetConfig,
    Split,
    SplitGroup,
    StageConfig,
    TerminalConfig,
)
from revnet.models.vesting import (
    VestingActual,
    VestingOptions,
    VestingPreset,
    VestingSchedule,
    VestingScheduleState,
)

__all__ = [
    "AllowedPost",
    "HookResponse",
    "HookSpecification",
    "InterfaceId",
    "PaymentContext",
    "RedemptionContext",
    "WILDCARD_PROJECT_ID",
    "PermissionGrant",
    "PermissionId",
    "BuybackHookConfig",
    "DeployedRevnet",
    "RevnetConfig",
    "RevnetDeployRequest",
    "RevnetDescription",
    "RulesetConfig",
    "Split",
    "SplitGroup",
    "StageConfig",
    "TerminalConfig",
    "VestingActual",
    "VestingOptions",
    "VestingPreset",
    "VestingSchedule",
    "VestingScheduleState",
]
