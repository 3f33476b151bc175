"""Permission models — named capability tags and delegated grants.

Permissions are identified by name, not by the numeric ids a particular
on-chain registry uses. The numeric encoding is an adapter concern
(see revnet.chain.permissions).

Project ID 0 denotes a platform-wide grant: an operator holding a
permission for project 0 holds it for every project of that account.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import FrozenSet, Iterable

WILDCARD_PROJECT_ID = 0


class PermissionId(str, enum.Enum):
    """Owner-restricted operations an operator may be delegated."""
    ROOT = "root"
    QUEUE_RULESETS = "queue_rulesets"
    MINT_TOKENS = "mint_tokens"
    SET_SPLIT_GROUPS = "set_split_groups"
    DEPLOY_ERC20 = "deploy_erc20"
    ADJUST_721_TIERS = "adjust_721_tiers"
    SET_721_METADATA = "set_721_metadata"
    MINT_721 = "mint_721"


def permission_set(ids: Iterable[PermissionId]) -> FrozenSet[PermissionId]:
    """Normalise an iterable of permission ids into a frozenset.

    Raises ValueError on an empty set — a grant of nothing is a caller bug.
    """
    result = frozenset(PermissionId(i) for i in ids)
    if not result:
        raise ValueError("Permission set must not be empty")
    return result


@dataclass(frozen=True)
class PermissionGrant:
    """A delegated authorization recorded by the permission registry.

    `account` is the address on whose behalf `operator` may act, scoped
    to `project_id` (or every project when project_id is 0).
    """
    account: str
    operator: str
    project_id: int
    permission_ids: FrozenSet[PermissionId]

    def __post_init__(self) -> None:
        if self.project_id < 0:
            raise ValueError(f"project_id must be >= 0, got {self.project_id}")
        if not self.permission_ids:
            raise ValueError("permission_ids must not be empty")

    @property
    def is_wildcard(self) -> bool:
        return self.project_id == WILDCARD_PROJECT_ID

    def covers(self, project_id: int, permission_ids: Iterable[PermissionId]) -> bool:
        """Whether this grant authorizes every id in `permission_ids` for `project_id`."""
        if not (self.is_wildcard or self.project_id == project_id):
            return False
        return set(permission_ids) <= self.permission_ids
