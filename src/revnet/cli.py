"""Revnet CLI — inspect and simulate revnet deployments.

Usage:
    python -m revnet.cli build-rulesets --file config/revnet.json
    python -m revnet.cli simulate --variant pay-hooks --file config/revnet.json --pay 1000000000000000000
    python -m revnet.cli check-config --file config/revnet.json
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from pathlib import Path

from revnet.config import load_revnet_config
from revnet.deployer.ruleset_builder import build_ruleset_configs
from revnet.errors import RevnetError
from revnet.persistence.event_log import EventLog
from revnet.service import VARIANTS, create_local_service


DEFAULT_FILE = Path(__file__).resolve().parents[2] / "config" / "revnet.json"
DEFAULT_PAYER = "0x000000000000000000000000000000000000dEaD"


def cmd_build_rulesets(args: argparse.Namespace) -> int:
    try:
        deployment = load_revnet_config(args.file)
        rulesets = build_ruleset_configs(
            deployment.request.config,
            deployment.request.buyback.hook or None,
            deployment.request.extra_metadata,
        )
    except RevnetError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    print(json.dumps([dataclasses.asdict(r) for r in rulesets], indent=2))
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    """Deploy into a fresh local ledger and optionally make one payment."""
    event_log = EventLog(storage_path=args.events) if args.events else EventLog()
    service, stack = create_local_service(event_log=event_log)
    try:
        deployment = load_revnet_config(args.file, buyback_hook=stack.buyback.address)
    except RevnetError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1

    result = service.deploy(deployment, args.variant, actor_id="cli")
    if not result.success:
        print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
        return 1

    output = dict(result.data)
    if args.pay:
        project_id = result.data["project_id"]
        try:
            receipt = stack.controller.pay(
                DEFAULT_PAYER,
                project_id,
                int(args.pay),
                beneficiary=DEFAULT_PAYER,
                at=args.at,
            )
        except RevnetError as e:
            print(f"Payment failed: {e}", file=sys.stderr)
            return 1
        output["payment"] = {
            "weight": receipt.weight,
            "hooks": [spec.hook for spec in receipt.specifications],
            "beneficiary_tokens": receipt.beneficiary_tokens,
            "reserved_tokens": receipt.reserved_tokens,
        }
    output["events"] = event_log.count
    print(json.dumps(output, indent=2, default=str))
    return 0


def cmd_check_config(args: argparse.Namespace) -> int:
    """Run deployment-file invariant checks."""
    tools_dir = Path(__file__).resolve().parents[2] / "tools"
    sys.path.insert(0, str(tools_dir))
    from check_config import check
    return check(args.file)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="revnet",
        description="Revnet deployer CLI",
    )
    parser.add_argument(
        "--file",
        type=Path,
        default=DEFAULT_FILE,
        help="Path to deployment file (default: config/revnet.json)",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("build-rulesets", help="Print the rulesets a deployment would register")

    p_sim = sub.add_parser("simulate", help="Deploy into a local ledger")
    p_sim.add_argument("--variant", default="basic", choices=VARIANTS, help="Deployer variant")
    p_sim.add_argument("--pay", help="Make one payment of this amount after deploying")
    p_sim.add_argument("--at", type=int, help="Payment timestamp (selects the stage)")
    p_sim.add_argument("--events", type=Path, help="Persist audit events to this JSONL file")

    sub.add_parser("check-config", help="Run deployment-file invariant checks")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "build-rulesets": cmd_build_rulesets,
        "simulate": cmd_simulate,
        "check-config": cmd_check_config,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
