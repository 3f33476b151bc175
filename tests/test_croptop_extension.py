"""Tests for the croptop extension — posting criteria and narrowly-scoped proxy rights."""

import pytest

from revnet.deployer.basic import BasicRevnetDeployer
from revnet.deployer.croptop import PUBLISHING_PERMISSIONS, CroptopRevnetDeployer
from revnet.errors import CollaboratorRejection, InvalidConfiguration, ReasonCode
from revnet.ledger.local import LocalStack, build_local_stack
from revnet.models.croptop import AllowedPost
from revnet.models.permission import PermissionId
from revnet.models.ruleset import (
    BuybackHookConfig,
    RevnetConfig,
    RevnetDeployRequest,
    RevnetDescription,
    StageConfig,
    TerminalConfig,
)

OPERATOR = "0x" + "11" * 20
POSTER = "0x" + "77" * 20
NFT_HOOK = "0x" + "66" * 20


def _request(buyback: str, stages: tuple[StageConfig, ...] | None = None) -> RevnetDeployRequest:
    stage = StageConfig(
        starts_at_or_after=1_767_225_600,
        boost_rate=3_800,
        initial_issuance_rate=1_000,
        price_ceiling_increase_frequency=2_592_000,
        price_ceiling_increase_percentage=50_000_000,
        price_floor_tax_intensity=2_000,
    )
    config = RevnetConfig(
        description=RevnetDescription(name="Croptop", symbol="CPN"),
        initial_boost_operator=OPERATOR,
        stages=stages if stages is not None else (stage,),
    )
    return RevnetDeployRequest(
        config=config,
        terminals=(TerminalConfig(terminal="0x" + "22" * 20),),
        buyback=BuybackHookConfig(hook=buyback),
    )


def _post(category: int = 1, **overrides) -> AllowedPost:
    values = dict(
        hook=NFT_HOOK,
        category=category,
        minimum_price=10 ** 15,
        minimum_total_supply=10,
        maximum_total_supply=1_000,
    )
    values.update(overrides)
    return AllowedPost(**values)


def _setup() -> tuple[CroptopRevnetDeployer, BasicRevnetDeployer, LocalStack]:
    stack = build_local_stack()
    base = BasicRevnetDeployer(stack.chain, stack.controller, stack.registry)
    return CroptopRevnetDeployer(base, stack.publisher), base, stack


class TestDeployWithPublishing:
    def test_posts_registered_with_proxy(self) -> None:
        deployer, _, stack = _setup()
        posts = [_post(1), _post(2)]
        project_id = deployer.deploy_with_publishing(_request(stack.buyback.address), posts).project_id
        assert stack.publisher.allowed_posts_of(project_id) == posts

    def test_proxy_granted_only_tier_adjustment(self) -> None:
        deployer, base, stack = _setup()
        deployed = deployer.deploy_with_publishing(_request(stack.buyback.address), [_post()])
        held = stack.registry.permissions_of(stack.publisher.address, base.address, deployed.project_id)
        assert held == frozenset({PermissionId.ADJUST_721_TIERS})
        proxy_grants = [g for g in deployed.grants if g.operator == stack.publisher.address]
        assert len(proxy_grants) == 1
        assert proxy_grants[0].project_id == deployed.project_id

    def test_operator_still_granted_split_permission(self) -> None:
        deployer, base, stack = _setup()
        project_id = deployer.deploy_with_publishing(_request(stack.buyback.address), [_post()]).project_id
        assert stack.registry.has_permissions(
            OPERATOR, base.address, project_id, {PermissionId.SET_SPLIT_GROUPS}
        )

    def test_empty_posts_still_grants_proxy(self) -> None:
        deployer, base, stack = _setup()
        project_id = deployer.deploy_with_publishing(_request(stack.buyback.address)).project_id
        assert stack.publisher.allowed_posts_of(project_id) == []
        assert stack.registry.has_permissions(
            stack.publisher.address, base.address, project_id, {PermissionId.ADJUST_721_TIERS}
        )

    def test_invalid_request_creates_nothing(self) -> None:
        deployer, _, stack = _setup()
        with pytest.raises(InvalidConfiguration):
            deployer.deploy_with_publishing(_request(stack.buyback.address, stages=()), [_post()])
        assert stack.controller.project_count == 0
        assert stack.publisher.allowed_posts_of(1) == []
        assert stack.registry.write_count == 0


class TestPermissionScope:
    def test_default_scope_is_tier_adjustment(self) -> None:
        deployer, _, _ = _setup()
        assert deployer.publisher_permissions == PUBLISHING_PERMISSIONS

    def test_broader_scope_refused(self) -> None:
        stack = build_local_stack()
        base = BasicRevnetDeployer(stack.chain, stack.controller, stack.registry)
        with pytest.raises(ValueError, match="mint_tokens"):
            CroptopRevnetDeployer(
                base,
                stack.publisher,
                permissions={PermissionId.ADJUST_721_TIERS, PermissionId.MINT_TOKENS},
            )

    def test_empty_scope_refused(self) -> None:
        stack = build_local_stack()
        base = BasicRevnetDeployer(stack.chain, stack.controller, stack.registry)
        with pytest.raises(ValueError, match="needs tier adjustment"):
            CroptopRevnetDeployer(base, stack.publisher, permissions=set())


class TestPublishing:
    def test_publish_within_criteria(self) -> None:
        deployer, _, stack = _setup()
        project_id = deployer.deploy_with_publishing(_request(stack.buyback.address), [_post()]).project_id
        stack.publisher.publish(POSTER, project_id, category=1, price=10 ** 15, total_supply=100)
        assert stack.publisher.published_of(project_id) == [(1, POSTER, 10 ** 15)]

    def test_publish_below_minimum_price_rejected(self) -> None:
        deployer, _, stack = _setup()
        project_id = deployer.deploy_with_publishing(_request(stack.buyback.address), [_post()]).project_id
        with pytest.raises(CollaboratorRejection):
            stack.publisher.publish(POSTER, project_id, category=1, price=1, total_supply=100)

    def test_publish_outside_supply_bounds_rejected(self) -> None:
        deployer, _, stack = _setup()
        project_id = deployer.deploy_with_publishing(_request(stack.buyback.address), [_post()]).project_id
        with pytest.raises(CollaboratorRejection):
            stack.publisher.publish(POSTER, project_id, category=1, price=10 ** 15, total_supply=5_000)

    def test_restricted_category_rejects_other_posters(self) -> None:
        deployer, _, stack = _setup()
        post = _post(allowed_addresses=(OPERATOR,))
        project_id = deployer.deploy_with_publishing(_request(stack.buyback.address), [post]).project_id
        with pytest.raises(CollaboratorRejection) as exc:
            stack.publisher.publish(POSTER, project_id, category=1, price=10 ** 15, total_supply=100)
        assert exc.value.reason == ReasonCode.UNAUTHORIZED

    def test_proxy_without_grant_cannot_publish(self) -> None:
        _, base, stack = _setup()
        project_id = base.deploy(_request(stack.buyback.address)).project_id
        stack.publisher.register_allowed_posts(base.address, project_id, [_post()])
        with pytest.raises(CollaboratorRejection) as exc:
            stack.publisher.publish(POSTER, project_id, category=1, price=10 ** 15, total_supply=100)
        assert exc.value.reason == ReasonCode.UNAUTHORIZED

    def test_only_owner_registers_posts(self) -> None:
        _, base, stack = _setup()
        project_id = base.deploy(_request(stack.buyback.address)).project_id
        with pytest.raises(CollaboratorRejection) as exc:
            stack.publisher.register_allowed_posts(POSTER, project_id, [_post()])
        assert exc.value.reason == ReasonCode.NOT_OWNER


class TestAllowedPostModel:
    def test_maximum_below_minimum_rejected(self) -> None:
        with pytest.raises(ValueError):
            _post(minimum_total_supply=100, maximum_total_supply=10)

    def test_zero_minimum_supply_rejected(self) -> None:
        with pytest.raises(ValueError):
            _post(minimum_total_supply=0)
