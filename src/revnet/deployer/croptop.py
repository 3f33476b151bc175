"""Croptop extension — lets a publishing proxy add collectible tiers.

After the base deployment, the extension registers the revnet's allowed
posting criteria with the publishing proxy and grants the proxy permission
to adjust the project's collectible tiers. The proxy never receives more
than tier adjustment: the permission set is fixed at construction.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from revnet.deployer.basic import BasicRevnetDeployer
from revnet.ledger.interfaces import PublishingProxy
from revnet.models.croptop import AllowedPost
from revnet.models.permission import PermissionId
from revnet.models.ruleset import DeployedRevnet, RevnetDeployRequest

PUBLISHING_PERMISSIONS = frozenset({PermissionId.ADJUST_721_TIERS})


class CroptopRevnetDeployer:
    """Deploys revnets whose collectible tiers third parties may publish to."""

    def __init__(
        self,
        base: BasicRevnetDeployer,
        publisher: PublishingProxy,
        permissions: Iterable[PermissionId] = PUBLISHING_PERMISSIONS,
    ) -> None:
        permissions = frozenset(permissions)
        if not permissions:
            raise ValueError("Publishing proxy needs tier adjustment")
        if not permissions <= PUBLISHING_PERMISSIONS:
            extra = sorted(p.value for p in permissions - PUBLISHING_PERMISSIONS)
            raise ValueError(
                f"Publishing proxy may only hold tier adjustment, got extra: {extra}"
            )
        self._base = base
        self._publisher = publisher
        self._permissions = permissions

    @property
    def publisher_permissions(self) -> frozenset[PermissionId]:
        return self._permissions

    def deploy_with_publishing(
        self,
        request: RevnetDeployRequest,
        allowed_posts: Sequence[AllowedPost] = (),
    ) -> DeployedRevnet:
        base = self._base
        posts = tuple(allowed_posts)
        with base.unit_of_work():
            deployed = base.deploy(request)
            if posts:
                self._publisher.register_allowed_posts(base.address, deployed.project_id, posts)
            deployed.grants.append(
                base.delegator.grant(self._publisher.address, deployed.project_id, self._permissions)
            )
        return deployed
