"""Permission delegation on behalf of the deploying account."""

from revnet.permissions.delegator import PermissionDelegator

__all__ = ["PermissionDelegator"]
