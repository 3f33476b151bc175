"""Tests for the basic revnet deployer — deployment steps, atomicity, operator handover."""

import pytest

from revnet.deployer.basic import BOOST_OPERATOR_PERMISSIONS, BasicRevnetDeployer
from revnet.errors import CollaboratorRejection, InvalidConfiguration, ReasonCode
from revnet.ledger.local import LocalStack, build_local_stack
from revnet.models.permission import PermissionId
from revnet.models.ruleset import (
    RESERVED_TOKEN_GROUP_ID,
    SPLITS_TOTAL_PERCENT,
    WAD,
    BuybackHookConfig,
    RevnetConfig,
    RevnetDeployRequest,
    RevnetDescription,
    StageConfig,
    TerminalConfig,
)

OPERATOR = "0x" + "11" * 20
NEW_OPERATOR = "0x" + "12" * 20
PAYER = "0x" + "99" * 20
PREMINT = 10 ** 21


def _stage(start: int = 1_767_225_600, **overrides: int) -> StageConfig:
    values = dict(
        starts_at_or_after=start,
        boost_rate=3_800,
        initial_issuance_rate=1_000,
        price_ceiling_increase_frequency=2_592_000,
        price_ceiling_increase_percentage=50_000_000,
        price_floor_tax_intensity=2_000,
    )
    values.update(overrides)
    return StageConfig(**values)


def _request(
    buyback: str,
    premint: int = PREMINT,
    stages: tuple[StageConfig, ...] | None = None,
) -> RevnetDeployRequest:
    config = RevnetConfig(
        description=RevnetDescription(name="Bananapus", symbol="NANA", metadata_uri="ipfs://nana"),
        initial_boost_operator=OPERATOR,
        stages=stages if stages is not None else (_stage(),),
        premint_token_amount=premint,
    )
    return RevnetDeployRequest(
        config=config,
        terminals=(TerminalConfig(terminal="0x" + "22" * 20),),
        buyback=BuybackHookConfig(hook=buyback, pools=({"fee": 3000},)),
    )


def _setup() -> tuple[BasicRevnetDeployer, LocalStack]:
    stack = build_local_stack()
    deployer = BasicRevnetDeployer(stack.chain, stack.controller, stack.registry)
    return deployer, stack


class TestDeploy:
    def test_project_owned_by_deployer(self) -> None:
        deployer, stack = _setup()
        deployed = deployer.deploy(_request(stack.buyback.address))
        assert deployed.project_id == 1
        assert deployed.owner == deployer.address
        assert stack.controller.owner_of(1) == deployer.address

    def test_token_deployed(self) -> None:
        deployer, stack = _setup()
        deployed = deployer.deploy(_request(stack.buyback.address))
        assert deployed.token
        assert stack.controller.token_of(deployed.project_id) == deployed.token

    def test_data_hook_defaults_to_buyback_hook(self) -> None:
        deployer, stack = _setup()
        deployed = deployer.deploy(_request(stack.buyback.address))
        assert deployed.data_hook == stack.buyback.address
        assert stack.controller.ruleset_of(deployed.project_id).data_hook == stack.buyback.address

    def test_explicit_data_hook_used_by_every_ruleset(self) -> None:
        deployer, stack = _setup()
        request = _request(stack.buyback.address, stages=(_stage(100), _stage(200)))
        deployed = deployer.deploy(request, data_hook=stack.publisher.address)
        assert {r.data_hook for r in deployed.rulesets} == {stack.publisher.address}

    def test_buyback_pools_configured(self) -> None:
        deployer, stack = _setup()
        deployed = deployer.deploy(_request(stack.buyback.address))
        assert stack.buyback.pools_of(deployed.project_id) == [{"fee": 3000}]
        assert deployer.buyback_hook_of(deployed.project_id) == stack.buyback.address

    def test_reserved_tokens_split_to_operator(self) -> None:
        deployer, stack = _setup()
        deployed = deployer.deploy(_request(stack.buyback.address))
        group = stack.controller.split_groups_of(deployed.project_id)[RESERVED_TOKEN_GROUP_ID]
        assert len(group.splits) == 1
        assert group.splits[0].beneficiary == OPERATOR
        assert group.splits[0].percent == SPLITS_TOTAL_PERCENT

    def test_premint_paid_to_operator(self) -> None:
        deployer, stack = _setup()
        deployed = deployer.deploy(_request(stack.buyback.address))
        assert deployed.premint_beneficiary == OPERATOR
        assert stack.controller.balance_of(deployed.project_id, OPERATOR) == PREMINT

    def test_zero_premint_mints_nothing(self) -> None:
        deployer, stack = _setup()
        deployed = deployer.deploy(_request(stack.buyback.address, premint=0))
        assert deployed.premint_beneficiary is None
        assert stack.controller.total_supply_of(deployed.project_id) == 0

    def test_premint_beneficiary_callback_redirects_premint(self) -> None:
        deployer, stack = _setup()
        seen: list[tuple[int, str]] = []

        def _beneficiary(project_id: int, token: str) -> str:
            seen.append((project_id, token))
            return PAYER

        deployed = deployer.deploy(_request(stack.buyback.address), premint_beneficiary=_beneficiary)
        assert seen == [(deployed.project_id, deployed.token)]
        assert stack.controller.balance_of(deployed.project_id, PAYER) == PREMINT
        assert stack.controller.balance_of(deployed.project_id, OPERATOR) == 0

    def test_operator_granted_split_permission(self) -> None:
        deployer, stack = _setup()
        deployed = deployer.deploy(_request(stack.buyback.address))
        assert stack.registry.has_permissions(
            OPERATOR, deployer.address, deployed.project_id, {PermissionId.SET_SPLIT_GROUPS}
        )
        assert not stack.registry.has_permissions(
            OPERATOR, deployer.address, deployed.project_id, {PermissionId.MINT_TOKENS}
        )
        assert [g.permission_ids for g in deployed.grants] == [BOOST_OPERATOR_PERMISSIONS]
        assert deployer.boost_operator_of(deployed.project_id) == OPERATOR

    def test_operator_can_set_split_groups_directly(self) -> None:
        deployer, stack = _setup()
        deployed = deployer.deploy(_request(stack.buyback.address))
        stack.controller.set_split_groups(OPERATOR, deployed.project_id, [])

    def test_stranger_cannot_set_split_groups(self) -> None:
        deployer, stack = _setup()
        deployed = deployer.deploy(_request(stack.buyback.address))
        with pytest.raises(CollaboratorRejection) as exc:
            stack.controller.set_split_groups(PAYER, deployed.project_id, [])
        assert exc.value.reason == ReasonCode.UNAUTHORIZED

    def test_sequential_deployments_get_distinct_ids(self) -> None:
        deployer, stack = _setup()
        first = deployer.deploy(_request(stack.buyback.address))
        second = deployer.deploy(_request(stack.buyback.address))
        assert (first.project_id, second.project_id) == (1, 2)
        assert first.token != second.token


class TestDeployFailures:
    def test_missing_buyback_rejected_before_ledger(self) -> None:
        deployer, stack = _setup()
        with pytest.raises(InvalidConfiguration) as exc:
            deployer.deploy(_request(""))
        assert exc.value.reason == ReasonCode.INVALID_REQUEST
        assert stack.controller.project_count == 0

    def test_invalid_stages_create_nothing(self) -> None:
        deployer, stack = _setup()
        with pytest.raises(InvalidConfiguration) as exc:
            deployer.deploy(_request(stack.buyback.address, stages=()))
        assert exc.value.reason == ReasonCode.NO_STAGES
        assert stack.controller.project_count == 0
        assert stack.registry.write_count == 0

    def test_unresolvable_buyback_rolls_back_project(self) -> None:
        deployer, stack = _setup()
        with pytest.raises(CollaboratorRejection) as exc:
            deployer.deploy(_request("0x" + "ee" * 20))
        assert exc.value.reason == ReasonCode.INTERFACE_NOT_SUPPORTED
        assert stack.controller.project_count == 0
        assert stack.registry.write_count == 0

    def test_failed_deploy_does_not_consume_project_id(self) -> None:
        deployer, stack = _setup()
        with pytest.raises(CollaboratorRejection):
            deployer.deploy(_request("0x" + "ee" * 20))
        deployed = deployer.deploy(_request(stack.buyback.address))
        assert deployed.project_id == 1

    def test_failed_premint_callback_rolls_back(self) -> None:
        deployer, stack = _setup()

        def _reject(project_id: int, token: str) -> str:
            raise CollaboratorRejection(ReasonCode.NOT_OWNER, "refused")

        with pytest.raises(CollaboratorRejection):
            deployer.deploy(_request(stack.buyback.address), premint_beneficiary=_reject)
        assert stack.controller.project_count == 0
        assert stack.buyback.pools_of(1) == []
        assert deployer.buyback_hook_of(1) is None

    def test_unknown_project_has_no_operator(self) -> None:
        deployer, _ = _setup()
        with pytest.raises(CollaboratorRejection) as exc:
            deployer.boost_operator_of(5)
        assert exc.value.reason == ReasonCode.UNKNOWN_PROJECT


class TestReplaceBoostOperator:
    def test_handover_moves_permission_and_split(self) -> None:
        deployer, stack = _setup()
        project_id = deployer.deploy(_request(stack.buyback.address)).project_id
        grant = deployer.replace_boost_operator(project_id, OPERATOR, NEW_OPERATOR)
        assert grant.operator == NEW_OPERATOR
        assert deployer.boost_operator_of(project_id) == NEW_OPERATOR
        assert stack.registry.has_permissions(
            NEW_OPERATOR, deployer.address, project_id, {PermissionId.SET_SPLIT_GROUPS}
        )
        assert not stack.registry.has_permissions(
            OPERATOR, deployer.address, project_id, {PermissionId.SET_SPLIT_GROUPS}
        )
        group = stack.controller.split_groups_of(project_id)[RESERVED_TOKEN_GROUP_ID]
        assert group.splits[0].beneficiary == NEW_OPERATOR

    def test_only_current_operator_may_hand_over(self) -> None:
        deployer, stack = _setup()
        project_id = deployer.deploy(_request(stack.buyback.address)).project_id
        with pytest.raises(CollaboratorRejection) as exc:
            deployer.replace_boost_operator(project_id, PAYER, NEW_OPERATOR)
        assert exc.value.reason == ReasonCode.UNAUTHORIZED
        assert deployer.boost_operator_of(project_id) == OPERATOR

    def test_empty_new_operator_rejected(self) -> None:
        deployer, stack = _setup()
        project_id = deployer.deploy(_request(stack.buyback.address)).project_id
        with pytest.raises(InvalidConfiguration):
            deployer.replace_boost_operator(project_id, OPERATOR, "")


class TestMintAuthority:
    def test_only_bound_buyback_hook_reported(self) -> None:
        deployer, stack = _setup()
        project_id = deployer.deploy(_request(stack.buyback.address)).project_id
        assert deployer.has_mint_permission_for(project_id, stack.buyback.address)
        assert not deployer.has_mint_permission_for(project_id, OPERATOR)
        assert not deployer.has_mint_permission_for(project_id + 1, stack.buyback.address)

    def test_buyback_data_hook_without_grant_cannot_mint(self) -> None:
        deployer, stack = _setup()
        project_id = deployer.deploy(_request(stack.buyback.address)).project_id
        with pytest.raises(CollaboratorRejection) as exc:
            stack.buyback.mint_for(project_id, OPERATOR, 500)
        assert exc.value.reason == ReasonCode.UNAUTHORIZED
        assert stack.controller.balance_of(project_id, OPERATOR) == 0


class TestPayment:
    def test_buyback_quote_sets_weight(self) -> None:
        deployer, stack = _setup()
        project_id = deployer.deploy(_request(stack.buyback.address, premint=0)).project_id
        stack.buyback.set_quote(project_id, weight=2_000 * WAD, participate=True, amount=0)
        receipt = stack.controller.pay(PAYER, project_id, WAD, beneficiary=PAYER)
        assert receipt.weight == 2_000 * WAD
        assert [s.hook for s in receipt.specifications] == [stack.buyback.address]

    def test_payment_without_quote_uses_ruleset_weight(self) -> None:
        deployer, stack = _setup()
        project_id = deployer.deploy(_request(stack.buyback.address, premint=0)).project_id
        receipt = stack.controller.pay(PAYER, project_id, WAD, beneficiary=PAYER)
        assert receipt.weight == 1_000 * WAD
        assert receipt.specifications == ()
        assert receipt.reserved_tokens == 1_000 * WAD * 3_800 // 10_000
        assert receipt.beneficiary_tokens == 1_000 * WAD - receipt.reserved_tokens
