#!/usr/bin/env python3
"""Grant an operator permissions on a project through the on-chain registry.

Usage:
    python3 tools/grant_permissions.py OPERATOR PROJECT_ID set_split_groups [mint_tokens ...]
    python3 tools/grant_permissions.py --check OPERATOR PROJECT_ID set_split_groups

The signer is the granting account. Grants go through the guarded path:
if the operator already holds every requested permission, nothing is sent.

Requires:
    REVNET_RPC_URL, REVNET_PERMISSIONS_ADDRESS and REVNET_PRIVATE_KEY in a
    .env file at the project root (or the environment).
"""

import sys
from pathlib import Path

# Add src to path for revnet imports
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from revnet.chain.permissions import Web3PermissionRegistry
from revnet.config import ChainSettings
from revnet.errors import RevnetError
from revnet.models.permission import PermissionId
from revnet.permissions.delegator import PermissionDelegator


def main(argv: list[str]) -> int:
    check_only = "--check" in argv
    args = [a for a in argv if a != "--check"]
    if len(args) < 3:
        print(__doc__)
        return 1

    operator, project_id, names = args[0], int(args[1]), args[2:]
    try:
        permission_ids = {PermissionId(name) for name in names}
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1

    try:
        settings = ChainSettings.from_env(ROOT / ".env")
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1
    if not settings.private_key:
        print("ERROR: Missing REVNET_PRIVATE_KEY in .env")
        return 1

    registry = Web3PermissionRegistry.connect(
        settings.rpc_url,
        settings.permissions_address,
        private_key=settings.private_key,
        chain_id=settings.chain_id,
    )
    delegator = PermissionDelegator(registry, account=registry.signer_address)

    print(f"  Operator:    {operator}")
    print(f"  Project:     {project_id}")
    print(f"  Permissions: {', '.join(sorted(p.value for p in permission_ids))}")

    try:
        if check_only:
            held = delegator.has_permissions(operator, project_id, permission_ids)
            print(f"  Held:        {held}")
            return 0 if held else 2
        wrote = delegator.grant_if_missing(operator, project_id, permission_ids)
    except RevnetError as e:
        print(f"ERROR: {e}")
        return 1

    if wrote:
        print(f"  Granted in tx {registry.last_tx_hash}")
    else:
        print("  Already held, nothing sent")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
