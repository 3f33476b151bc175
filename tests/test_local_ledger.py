"""Tests for the local ledger — unit-of-work atomicity, authority, payments."""

import pytest

from revnet.errors import CollaboratorRejection, ReasonCode
from revnet.ledger.local import LocalChain, LocalController, LocalPermissionRegistry
from revnet.models.permission import PermissionId
from revnet.models.ruleset import WAD, RulesetConfig

OWNER = "0x" + "0a" * 20
OPERATOR = "0x" + "0b" * 20
PAYER = "0x" + "99" * 20


def _ruleset(
    start: int = 0,
    weight: int = 1_000 * WAD,
    reserved_rate: int = 2_000,
    data_hook: str | None = None,
    use_data_hook_for_pay: bool = True,
) -> RulesetConfig:
    return RulesetConfig(
        must_start_at_or_after=start,
        duration=0,
        weight=weight,
        decay_rate=0,
        reserved_rate=reserved_rate,
        redemption_rate=10_000,
        base_currency=1,
        data_hook=data_hook,
        use_data_hook_for_pay=use_data_hook_for_pay,
    )


def _setup() -> tuple[LocalChain, LocalPermissionRegistry, LocalController]:
    chain = LocalChain()
    registry = LocalPermissionRegistry(chain)
    return chain, registry, LocalController(chain, registry)


class TestChain:
    def test_new_addresses_are_unique(self) -> None:
        chain = LocalChain()
        first = chain.new_address("hook")
        second = chain.new_address("hook")
        assert first != second
        assert first.startswith("0x") and len(first) == 42

    def test_duplicate_registration_rejected(self) -> None:
        chain = LocalChain()
        chain.register_contract("0x01", object())
        with pytest.raises(ValueError):
            chain.register_contract("0x01", object())

    def test_unknown_address_not_supported(self) -> None:
        with pytest.raises(CollaboratorRejection) as exc:
            LocalChain().contract_at("0x01")
        assert exc.value.reason == ReasonCode.INTERFACE_NOT_SUPPORTED


class TestUnitOfWork:
    def test_failure_restores_participants(self) -> None:
        chain, registry, controller = _setup()
        with pytest.raises(RuntimeError):
            with chain.unit_of_work():
                controller.launch_project(OWNER, OWNER, "", [_ruleset()], [])
                registry.grant(OWNER, OPERATOR, 1, {PermissionId.MINT_TOKENS})
                raise RuntimeError("abort")
        assert controller.project_count == 0
        assert registry.write_count == 0
        assert not registry.has_permissions(OPERATOR, OWNER, 1, {PermissionId.MINT_TOKENS})

    def test_failure_unregisters_new_contracts(self) -> None:
        chain = LocalChain()
        with pytest.raises(RuntimeError):
            with chain.unit_of_work():
                chain.register_contract("0x01", object())
                raise RuntimeError("abort")
        with pytest.raises(CollaboratorRejection):
            chain.contract_at("0x01")

    def test_success_keeps_changes(self) -> None:
        chain, _, controller = _setup()
        with chain.unit_of_work():
            controller.launch_project(OWNER, OWNER, "", [_ruleset()], [])
        assert controller.project_count == 1

    def test_nested_unit_joins_outer(self) -> None:
        chain, registry, _ = _setup()
        with chain.unit_of_work():
            registry.grant(OWNER, OPERATOR, 1, {PermissionId.MINT_TOKENS})
            try:
                with chain.unit_of_work():
                    registry.grant(OWNER, OPERATOR, 2, {PermissionId.MINT_TOKENS})
                    raise RuntimeError("inner")
            except RuntimeError:
                pass
        assert registry.write_count == 2

    def test_outer_failure_discards_inner_work(self) -> None:
        chain, registry, _ = _setup()
        with pytest.raises(RuntimeError):
            with chain.unit_of_work():
                with chain.unit_of_work():
                    registry.grant(OWNER, OPERATOR, 2, {PermissionId.MINT_TOKENS})
                raise RuntimeError("outer")
        assert registry.write_count == 0


class TestRegistry:
    def test_revoking_everything_clears_grant(self) -> None:
        _, registry, _ = _setup()
        registry.grant(OWNER, OPERATOR, 1, {PermissionId.MINT_TOKENS})
        registry.revoke(OWNER, OPERATOR, 1, {PermissionId.MINT_TOKENS})
        assert registry.permissions_of(OPERATOR, OWNER, 1) == frozenset()

    def test_wildcard_merged_into_project_view(self) -> None:
        _, registry, _ = _setup()
        registry.grant(OWNER, OPERATOR, 0, {PermissionId.MINT_TOKENS})
        registry.grant(OWNER, OPERATOR, 4, {PermissionId.SET_SPLIT_GROUPS})
        assert registry.permissions_of(OPERATOR, OWNER, 4) == frozenset(
            {PermissionId.MINT_TOKENS, PermissionId.SET_SPLIT_GROUPS}
        )

    def test_grants_are_per_account(self) -> None:
        _, registry, _ = _setup()
        registry.grant(OWNER, OPERATOR, 1, {PermissionId.MINT_TOKENS})
        assert not registry.has_permissions(OPERATOR, PAYER, 1, {PermissionId.MINT_TOKENS})


class TestControllerAuthority:
    def test_owner_may_deploy_token(self) -> None:
        _, _, controller = _setup()
        project_id = controller.launch_project(OWNER, OWNER, "", [_ruleset()], [])
        token = controller.deploy_token(OWNER, project_id, "Name", "SYM")
        assert controller.token_of(project_id) == token

    def test_second_token_rejected(self) -> None:
        _, _, controller = _setup()
        project_id = controller.launch_project(OWNER, OWNER, "", [_ruleset()], [])
        controller.deploy_token(OWNER, project_id, "Name", "SYM")
        with pytest.raises(CollaboratorRejection):
            controller.deploy_token(OWNER, project_id, "Name", "SYM")

    def test_operator_with_grant_may_mint(self) -> None:
        _, registry, controller = _setup()
        project_id = controller.launch_project(OWNER, OWNER, "", [_ruleset()], [])
        registry.grant(OWNER, OPERATOR, project_id, {PermissionId.MINT_TOKENS})
        controller.mint_tokens(OPERATOR, project_id, 5, PAYER)
        assert controller.balance_of(project_id, PAYER) == 5
        assert controller.total_supply_of(project_id) == 5

    def test_operator_without_grant_rejected(self) -> None:
        _, _, controller = _setup()
        project_id = controller.launch_project(OWNER, OWNER, "", [_ruleset()], [])
        with pytest.raises(CollaboratorRejection) as exc:
            controller.mint_tokens(OPERATOR, project_id, 5, PAYER)
        assert exc.value.reason == ReasonCode.UNAUTHORIZED

    def test_zero_mint_rejected(self) -> None:
        _, _, controller = _setup()
        project_id = controller.launch_project(OWNER, OWNER, "", [_ruleset()], [])
        with pytest.raises(CollaboratorRejection):
            controller.mint_tokens(OWNER, project_id, 0, PAYER)

    def test_unknown_project(self) -> None:
        _, _, controller = _setup()
        with pytest.raises(CollaboratorRejection) as exc:
            controller.owner_of(3)
        assert exc.value.reason == ReasonCode.UNKNOWN_PROJECT

    def test_launch_requires_rulesets(self) -> None:
        _, _, controller = _setup()
        with pytest.raises(CollaboratorRejection):
            controller.launch_project(OWNER, OWNER, "", [], [])


class TestPayments:
    def test_ruleset_selected_by_time(self) -> None:
        _, _, controller = _setup()
        project_id = controller.launch_project(
            OWNER, OWNER, "", [_ruleset(0, weight=WAD), _ruleset(100, weight=2 * WAD)], []
        )
        assert controller.ruleset_of(project_id, at=50).weight == WAD
        assert controller.ruleset_of(project_id, at=100).weight == 2 * WAD
        assert controller.pay(PAYER, project_id, WAD, PAYER, at=150).weight == 2 * WAD

    def test_reserved_share_withheld(self) -> None:
        _, _, controller = _setup()
        project_id = controller.launch_project(OWNER, OWNER, "", [_ruleset(reserved_rate=2_000)], [])
        receipt = controller.pay(PAYER, project_id, WAD, PAYER)
        assert receipt.reserved_tokens == 200 * WAD
        assert receipt.beneficiary_tokens == 800 * WAD
        assert controller.balance_of(project_id, PAYER) == 800 * WAD
        assert controller.pending_reserved_of(project_id) == 200 * WAD

    def test_non_data_hook_rejected(self) -> None:
        chain, _, controller = _setup()
        chain.register_contract("0x01", object())
        project_id = controller.launch_project(OWNER, OWNER, "", [_ruleset(data_hook="0x01")], [])
        with pytest.raises(CollaboratorRejection) as exc:
            controller.pay(PAYER, project_id, WAD, PAYER)
        assert exc.value.reason == ReasonCode.INTERFACE_NOT_SUPPORTED
        assert controller.total_supply_of(project_id) == 0

    def test_data_hook_skipped_when_disabled(self) -> None:
        _, _, controller = _setup()
        ruleset = _ruleset(data_hook="0x01", use_data_hook_for_pay=False)
        project_id = controller.launch_project(OWNER, OWNER, "", [ruleset], [])
        receipt = controller.pay(PAYER, project_id, WAD, PAYER)
        assert receipt.specifications == ()

    def test_zero_payment_rejected(self) -> None:
        _, _, controller = _setup()
        project_id = controller.launch_project(OWNER, OWNER, "", [_ruleset()], [])
        with pytest.raises(CollaboratorRejection):
            controller.pay(PAYER, project_id, 0, PAYER)
