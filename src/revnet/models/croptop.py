"""Croptop publishing criteria.

An allowed post describes what a third party may publish as a new
collectible tier on a revnet's tiered-collectible hook.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AllowedPost:
    """Criteria a post must meet to be published in `category`.

    A maximum_total_supply of 0 means unbounded. An empty
    allowed_addresses tuple means anyone may post.
    """
    hook: str
    category: int
    minimum_price: int = 0
    minimum_total_supply: int = 1
    maximum_total_supply: int = 0
    allowed_addresses: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.minimum_price < 0:
            raise ValueError(f"minimum_price must be >= 0, got {self.minimum_price}")
        if self.minimum_total_supply < 1:
            raise ValueError("minimum_total_supply must be >= 1")
        if self.maximum_total_supply and self.maximum_total_supply < self.minimum_total_supply:
            raise ValueError(
                f"maximum_total_supply ({self.maximum_total_supply}) is below "
                f"minimum_total_supply ({self.minimum_total_supply})"
            )
