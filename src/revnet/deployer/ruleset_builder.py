"""Ruleset builder — turns a revnet's stages into ledger rulesets.

Pure transform. Every stage becomes one ruleset, and every ruleset points
at the same data hook so all future stages consult the same payment-time
hook. Validation happens here, before anything reaches the ledger.

Stage → ruleset mapping:
    must_start_at_or_after = starts_at_or_after
    duration               = price_ceiling_increase_frequency
    weight                 = initial_issuance_rate × 10^18
    decay_rate             = price_ceiling_increase_percentage
    reserved_rate          = boost_rate
    redemption_rate        = 10_000 − price_floor_tax_intensity
"""

from __future__ import annotations

from typing import Optional

from revnet.errors import InvalidConfiguration, ReasonCode
from revnet.models.ruleset import (
    MAX_BPS,
    MAX_DECAY_RATE,
    WAD,
    RevnetConfig,
    RulesetConfig,
    StageConfig,
)


def validate_stages(config: RevnetConfig) -> None:
    """Raise InvalidConfiguration if the stage list cannot be deployed."""
    if not config.stages:
        raise InvalidConfiguration(ReasonCode.NO_STAGES, "A revnet needs at least one stage")

    previous: Optional[int] = None
    for index, stage in enumerate(config.stages):
        if previous is not None and stage.starts_at_or_after <= previous:
            raise InvalidConfiguration(
                ReasonCode.STAGE_TIMES_NOT_INCREASING,
                f"Stage {index} starts at {stage.starts_at_or_after}, "
                f"not after stage {index - 1} ({previous})",
            )
        previous = stage.starts_at_or_after
        _check_range(index, "boost_rate", stage.boost_rate, MAX_BPS)
        _check_range(index, "price_floor_tax_intensity", stage.price_floor_tax_intensity, MAX_BPS)
        _check_range(
            index,
            "price_ceiling_increase_percentage",
            stage.price_ceiling_increase_percentage,
            MAX_DECAY_RATE,
        )
        if stage.starts_at_or_after < 0:
            raise InvalidConfiguration(
                ReasonCode.STAGE_OUT_OF_RANGE, f"Stage {index} starts before epoch"
            )
        if stage.initial_issuance_rate < 0 or stage.price_ceiling_increase_frequency < 0:
            raise InvalidConfiguration(
                ReasonCode.STAGE_OUT_OF_RANGE,
                f"Stage {index} issuance rate and frequency must be >= 0",
            )


def build_ruleset_configs(
    config: RevnetConfig,
    data_hook: Optional[str],
    extra_metadata: int = 0,
) -> list[RulesetConfig]:
    """Build one RulesetConfig per stage, in stage order."""
    validate_stages(config)
    return [_ruleset_for(stage, config, data_hook, extra_metadata) for stage in config.stages]


def _ruleset_for(
    stage: StageConfig,
    config: RevnetConfig,
    data_hook: Optional[str],
    extra_metadata: int,
) -> RulesetConfig:
    return RulesetConfig(
        must_start_at_or_after=stage.starts_at_or_after,
        duration=stage.price_ceiling_increase_frequency,
        weight=stage.initial_issuance_rate * WAD,
        decay_rate=stage.price_ceiling_increase_percentage,
        reserved_rate=stage.boost_rate,
        redemption_rate=MAX_BPS - stage.price_floor_tax_intensity,
        base_currency=config.base_currency,
        data_hook=data_hook,
        use_data_hook_for_pay=True,
        use_data_hook_for_redeem=False,
        metadata=extra_metadata,
    )


def _check_range(index: int, name: str, value: int, maximum: int) -> None:
    if not (0 <= value <= maximum):
        raise InvalidConfiguration(
            ReasonCode.STAGE_OUT_OF_RANGE,
            f"Stage {index} {name} must be in [0, {maximum}], got {value}",
        )
