"""Revnet deployers — the base deployer and its extensions."""

from revnet.deployer.basic import BasicRevnetDeployer
from revnet.deployer.croptop import CroptopRevnetDeployer
from revnet.deployer.pay_hooks import PayHookComposer, PayHookRevnetDeployer
from revnet.deployer.ruleset_builder import build_ruleset_configs
from revnet.deployer.vesting import VestingRevnetDeployer

__all__ = [
    "BasicRevnetDeployer",
    "CroptopRevnetDeployer",
    "PayHookComposer",
    "PayHookRevnetDeployer",
    "VestingRevnetDeployer",
    "build_ruleset_configs",
]
