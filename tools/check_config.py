#!/usr/bin/env python3
"""Revnet deployment-file invariant checks."""

import json
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
DEFAULT_PATH = ROOT / "config" / "revnet.json"

MAX_BPS = 10_000
MAX_DECAY_RATE = 1_000_000_000


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def check_stages(stages: list, errors: list[str]) -> None:
    """Stages must exist, start in strictly increasing order and stay in range."""
    if not stages:
        errors.append("stages: at least one stage is required")
        return
    previous = None
    for index, stage in enumerate(stages):
        start = stage.get("starts_at_or_after", 0)
        if previous is not None and start <= previous:
            errors.append(f"stages[{index}].starts_at_or_after must be after stage {index - 1}")
        previous = start
        for key, maximum in (
            ("boost_rate", MAX_BPS),
            ("price_floor_tax_intensity", MAX_BPS),
            ("price_ceiling_increase_percentage", MAX_DECAY_RATE),
        ):
            value = stage.get(key, 0)
            if not (0 <= value <= maximum):
                errors.append(f"stages[{index}].{key} must be in [0, {maximum}], got {value}")


def check_vesting(data: dict, errors: list[str]) -> None:
    """One preset, one allocation, allocation to the boost operator."""
    vesting = data.get("vesting")
    if not vesting:
        return
    presets = vesting.get("presets", [])
    actuals = vesting.get("actuals", [])
    if len(presets) != 1:
        errors.append(f"vesting.presets must hold exactly one preset, got {len(presets)}")
    if len(actuals) != 1:
        errors.append(f"vesting.actuals must hold exactly one allocation, got {len(actuals)}")
        return
    actual = actuals[0]
    if actual.get("recipient") != data.get("initial_boost_operator"):
        errors.append("vesting.actuals[0].recipient must be the initial boost operator")
    if presets and actual.get("preset_id") != presets[0].get("preset_id"):
        errors.append("vesting.actuals[0].preset_id must match the declared preset")
    if actual.get("amount", 0) > data.get("premint_token_amount", 0):
        errors.append("vesting.actuals[0].amount exceeds premint_token_amount")


def check_posts(data: dict, errors: list[str]) -> None:
    for index, post in enumerate(data.get("allowed_posts", [])):
        minimum = post.get("minimum_total_supply", 1)
        maximum = post.get("maximum_total_supply", 0)
        if minimum < 1:
            errors.append(f"allowed_posts[{index}].minimum_total_supply must be >= 1")
        if maximum and maximum < minimum:
            errors.append(f"allowed_posts[{index}].maximum_total_supply is below the minimum")


def check(path: Path = DEFAULT_PATH) -> int:
    data = load_json(path)
    errors: list[str] = []

    for key in ("name", "symbol", "initial_boost_operator"):
        if not data.get(key):
            errors.append(f"{key} is required")
    if data.get("premint_token_amount", 0) < 0:
        errors.append("premint_token_amount must be >= 0")
    if not data.get("buyback", {}).get("hook"):
        errors.append("buyback.hook is required")

    check_stages(data.get("stages", []), errors)
    check_vesting(data, errors)
    check_posts(data, errors)

    if errors:
        print("Revnet config check FAILED:")
        for err in errors:
            print(f"  - {err}")
        return 1

    print(f"Revnet config check passed: {path.name}")
    return 0


if __name__ == "__main__":
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_PATH
    sys.exit(check(target))
