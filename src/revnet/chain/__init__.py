"""On-chain adapters (web3)."""

from revnet.chain.permissions import Web3PermissionRegistry

__all__ = ["Web3PermissionRegistry"]
