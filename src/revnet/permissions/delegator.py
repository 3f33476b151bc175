"""Permission delegator — lets hooks and deployers act on a project's behalf.

The delegator writes grants to the ledger's permission registry on behalf
of a single account (the deploying contract, which owns every project it
creates). It holds no state of its own: a registry failure propagates
unmodified and there is nothing local to roll back.

Two grant paths:
    grant            — unconditional write.
    grant_if_missing — checks has_permissions first and writes only if the
                       operator does not already hold every requested id.
                       Use it wherever the same operator/project pair can be
                       granted more than once (shared hooks, re-deployment).
"""

from __future__ import annotations

from typing import Iterable

from revnet.ledger.interfaces import PermissionRegistry
from revnet.models.permission import PermissionGrant, PermissionId, permission_set


class PermissionDelegator:
    """Grants registry permissions on behalf of `account`.

    Usage:
        delegator = PermissionDelegator(registry, account=deployer_address)
        delegator.grant(operator, project_id, {PermissionId.SET_SPLIT_GROUPS})
        wrote = delegator.grant_if_missing(hook, 0, {PermissionId.MINT_TOKENS})
    """

    def __init__(self, registry: PermissionRegistry, account: str) -> None:
        self._registry = registry
        self._account = account

    @property
    def account(self) -> str:
        return self._account

    def grant(
        self,
        operator: str,
        project_id: int,
        permission_ids: Iterable[PermissionId],
    ) -> PermissionGrant:
        """Record that `operator` may perform `permission_ids` for `project_id`."""
        ids = permission_set(permission_ids)
        self._registry.grant(self._account, operator, project_id, ids)
        return PermissionGrant(
            account=self._account,
            operator=operator,
            project_id=project_id,
            permission_ids=ids,
        )

    def grant_if_missing(
        self,
        operator: str,
        project_id: int,
        permission_ids: Iterable[PermissionId],
    ) -> bool:
        """Grant only if the operator lacks any of the ids. Returns True if written."""
        ids = permission_set(permission_ids)
        if self._registry.has_permissions(operator, self._account, project_id, ids):
            return False
        self._registry.grant(self._account, operator, project_id, ids)
        return True

    def revoke(
        self,
        operator: str,
        project_id: int,
        permission_ids: Iterable[PermissionId],
    ) -> None:
        self._registry.revoke(self._account, operator, project_id, permission_set(permission_ids))

    def has_permissions(
        self,
        operator: str,
        project_id: int,
        permission_ids: Iterable[PermissionId],
    ) -> bool:
        return self._registry.has_permissions(
            operator, self._account, project_id, permission_set(permission_ids)
        )
