"""Ledger platform boundary — collaborator interfaces and a local implementation."""

from revnet.ledger.local import (
    LocalBuybackHook,
    LocalChain,
    LocalController,
    LocalPermissionRegistry,
    LocalPublishingProxy,
    LocalStack,
    LocalVestingFactory,
    build_local_stack,
)

__all__ = [
    "LocalBuybackHook",
    "LocalChain",
    "LocalController",
    "LocalPermissionRegistry",
    "LocalPublishingProxy",
    "LocalStack",
    "LocalVestingFactory",
    "build_local_stack",
]
