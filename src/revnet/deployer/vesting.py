"""Vesting extension — routes a revnet's premint through a vesting instance.

Instead of paying the premint to the boost operator, the extension:
1. Validates the vesting options (before anything touches the ledger).
2. Deploys the revnet with the premint redirected to a new vesting
   instance tied to the project's token.
3. Seeds the instance with its single preset and single allocation.
4. Transfers instance ownership to the boost operator.

Validation rules (violations create nothing):
    - exactly one preset
    - exactly one actual allocation
    - the allocation's recipient is the initial boost operator
    - the allocation uses the declared preset
    - the allocation does not exceed the premint
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from revnet.deployer.basic import BasicRevnetDeployer
from revnet.errors import InvalidConfiguration, ReasonCode
from revnet.ledger.interfaces import VestingFactory, VestingInstance
from revnet.ledger.journal import JournaledState
from revnet.models.ruleset import DeployedRevnet, RevnetConfig, RevnetDeployRequest
from revnet.models.vesting import VestingOptions, VestingSchedule, VestingScheduleState


def validate_vesting_options(config: RevnetConfig, options: VestingOptions) -> None:
    """Raise InvalidConfiguration unless options describe one preset and one allocation."""
    if len(options.presets) != 1:
        raise InvalidConfiguration(
            ReasonCode.VESTING_PRESET_COUNT,
            f"Exactly one vesting preset is required, got {len(options.presets)}",
        )
    if len(options.actuals) != 1:
        raise InvalidConfiguration(
            ReasonCode.VESTING_ACTUAL_COUNT,
            f"Exactly one vesting allocation is required, got {len(options.actuals)}",
        )
    preset = options.presets[0]
    actual = options.actuals[0]
    if actual.recipient != config.initial_boost_operator:
        raise InvalidConfiguration(
            ReasonCode.VESTING_RECIPIENT_MISMATCH,
            f"Vesting recipient {actual.recipient} is not the boost operator "
            f"{config.initial_boost_operator}",
        )
    if actual.preset_id != preset.preset_id:
        raise InvalidConfiguration(
            ReasonCode.VESTING_UNKNOWN_PRESET,
            f"Allocation uses preset {actual.preset_id}, declared preset is {preset.preset_id}",
        )
    if actual.amount > config.premint_token_amount:
        raise InvalidConfiguration(
            ReasonCode.VESTING_AMOUNT_EXCEEDS_PREMINT,
            f"Allocation of {actual.amount} exceeds premint of {config.premint_token_amount}",
        )


class VestingRevnetDeployer(JournaledState):
    """Deploys revnets whose premint vests to the boost operator."""

    _journal_fields = ("_schedules",)

    def __init__(self, base: BasicRevnetDeployer, factory: VestingFactory) -> None:
        self._base = base
        self._factory = factory
        self._schedules: dict[int, VestingSchedule] = {}
        base.chain.enlist(self)

    def deploy_with_vesting(
        self,
        request: RevnetDeployRequest,
        options: VestingOptions,
        now: Optional[datetime] = None,
    ) -> DeployedRevnet:
        config = request.config
        validate_vesting_options(config, options)
        if now is None:
            now = datetime.now(timezone.utc)

        base = self._base
        operator = config.initial_boost_operator
        created: list[VestingInstance] = []

        def _vesting_beneficiary(project_id: int, token: str) -> str:
            instance = self._factory.create_instance(
                base.address,
                token,
                options.label,
                revocable=options.revocable,
                pausable=options.pausable,
            )
            created.append(instance)
            return instance.address

        with base.unit_of_work():
            deployed = base.deploy(request, premint_beneficiary=_vesting_beneficiary)
            instance = created[0]
            schedule = VestingSchedule(
                project_id=deployed.project_id,
                instance=instance.address,
                owner=instance.owner,
            )

            instance.seed_presets(base.address, options.presets)
            instance.seed_actuals(base.address, options.actuals)
            schedule.preset_id = options.presets[0].preset_id
            schedule.recipient = options.actuals[0].recipient
            schedule.transition_to(VestingScheduleState.SEEDED)
            schedule.seeded_utc = now

            instance.transfer_ownership(base.address, operator)
            schedule.owner = instance.owner
            schedule.transition_to(VestingScheduleState.OWNERSHIP_TRANSFERRED)
            schedule.transferred_utc = now

            self._schedules[deployed.project_id] = schedule
        return deployed

    def vesting_schedule_of(self, project_id: int) -> Optional[VestingSchedule]:
        return self._schedules.get(project_id)

    def vesting_instance_of(self, project_id: int) -> Optional[str]:
        schedule = self._schedules.get(project_id)
        return schedule.instance if schedule is not None else None
