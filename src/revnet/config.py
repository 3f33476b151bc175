"""Configuration loading — deployment files and chain settings.

Deployment files are JSON. One file describes one revnet plus the extras
each deployer variant consumes (pay hooks, allowed posts, vesting).
See config/revnet.json for a complete example.

Chain settings come from the environment, optionally seeded from a .env
file:
    REVNET_RPC_URL               RPC endpoint
    REVNET_PRIVATE_KEY           signing key (omit for read-only use)
    REVNET_PERMISSIONS_ADDRESS   permissions contract address
    REVNET_CHAIN_ID              defaults to 11155111 (Sepolia)
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from revnet.errors import InvalidConfiguration, ReasonCode
from revnet.models.croptop import AllowedPost
from revnet.models.hook import HookSpecification
from revnet.models.ruleset import (
    BuybackHookConfig,
    RevnetConfig,
    RevnetDeployRequest,
    RevnetDescription,
    StageConfig,
    TerminalConfig,
)
from revnet.models.vesting import VestingActual, VestingOptions, VestingPreset

DEFAULT_CHAIN_ID = 11155111


@dataclass(frozen=True)
class DeploymentFile:
    """A parsed deployment file."""
    request: RevnetDeployRequest
    pay_hooks: tuple[HookSpecification, ...] = ()
    allowed_posts: tuple[AllowedPost, ...] = ()
    vesting: Optional[VestingOptions] = None


@dataclass(frozen=True)
class ChainSettings:
    rpc_url: str
    permissions_address: str
    private_key: Optional[str] = None
    chain_id: int = DEFAULT_CHAIN_ID

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> ChainSettings:
        """Read settings from the environment (after loading `env_file`, if any).

        Raises ValueError if a required variable is missing.
        """
        if env_file is not None:
            load_dotenv(env_file)
        rpc_url = os.getenv("REVNET_RPC_URL")
        permissions_address = os.getenv("REVNET_PERMISSIONS_ADDRESS")
        missing = [
            name for name, value in (
                ("REVNET_RPC_URL", rpc_url),
                ("REVNET_PERMISSIONS_ADDRESS", permissions_address),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"Missing chain settings: {', '.join(missing)}")
        return cls(
            rpc_url=rpc_url,
            permissions_address=permissions_address,
            private_key=os.getenv("REVNET_PRIVATE_KEY") or None,
            chain_id=int(os.getenv("REVNET_CHAIN_ID", str(DEFAULT_CHAIN_ID))),
        )


def load_revnet_config(path: Path, buyback_hook: Optional[str] = None) -> DeploymentFile:
    """Load a deployment file.

    Args:
        path: JSON deployment file.
        buyback_hook: Overrides the file's buyback hook address (used when
            deploying against a local ledger whose addresses are generated).
    """
    with path.open("r", encoding="utf-8") as handle:
        raw = json.load(handle)
    return parse_deployment(raw, buyback_hook=buyback_hook)


def parse_deployment(raw: dict[str, Any], buyback_hook: Optional[str] = None) -> DeploymentFile:
    try:
        return _parse(raw, buyback_hook)
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidConfiguration(
            ReasonCode.INVALID_REQUEST, f"Malformed deployment file: {e!r}"
        ) from e


def _parse(raw: dict[str, Any], buyback_hook: Optional[str]) -> DeploymentFile:
    config = RevnetConfig(
        description=RevnetDescription(
            name=raw["name"],
            symbol=raw["symbol"],
            metadata_uri=raw.get("metadata_uri", ""),
        ),
        initial_boost_operator=raw["initial_boost_operator"],
        stages=tuple(StageConfig(**stage) for stage in raw["stages"]),
        premint_token_amount=int(raw.get("premint_token_amount", 0)),
        base_currency=int(raw.get("base_currency", 1)),
    )
    buyback = raw.get("buyback", {})
    request = RevnetDeployRequest(
        config=config,
        terminals=tuple(
            TerminalConfig(
                terminal=t["terminal"],
                accounting_tokens=tuple(t.get("accounting_tokens", ())),
            )
            for t in raw.get("terminals", [])
        ),
        buyback=BuybackHookConfig(
            hook=buyback_hook or buyback.get("hook", ""),
            pools=tuple(buyback.get("pools", ())),
        ),
        extra_metadata=int(raw.get("extra_metadata", 0)),
    )

    pay_hooks = tuple(
        HookSpecification(
            hook=h["hook"],
            amount=int(h.get("amount", 0)),
            metadata=bytes.fromhex(h.get("metadata", "").removeprefix("0x")),
        )
        for h in raw.get("pay_hooks", [])
    )
    allowed_posts = tuple(
        AllowedPost(
            hook=p["hook"],
            category=int(p["category"]),
            minimum_price=int(p.get("minimum_price", 0)),
            minimum_total_supply=int(p.get("minimum_total_supply", 1)),
            maximum_total_supply=int(p.get("maximum_total_supply", 0)),
            allowed_addresses=tuple(p.get("allowed_addresses", ())),
        )
        for p in raw.get("allowed_posts", [])
    )

    vesting: Optional[VestingOptions] = None
    if raw.get("vesting"):
        v = raw["vesting"]
        vesting = VestingOptions(
            label=v.get("label", config.description.symbol),
            presets=tuple(VestingPreset(**p) for p in v.get("presets", [])),
            actuals=tuple(VestingActual(**a) for a in v.get("actuals", [])),
            revocable=bool(v.get("revocable", False)),
            pausable=bool(v.get("pausable", False)),
        )

    return DeploymentFile(
        request=request,
        pay_hooks=pay_hooks,
        allowed_posts=allowed_posts,
        vesting=vesting,
    )
