"""Command-line entry point: dao-deployments {deploy,reconcile,verify,selectors}."""

import argparse
import logging
import sys
from typing import List, Optional

from .config import load_config
from .exceptions import DeploymentError
from .pipeline import DeploymentPipeline, RunReport
from .plan import selector_table

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def _print_report(report: RunReport) -> None:
    for name, component in report.components.items():
        print(f"{name:<18} {component.proxy_address}  impl={component.implementation_address}")
    failed = report.failed_step
    if failed is not None:
        print(f"FAILED: {failed}")
    for discrepancy in report.discrepancies:
        print(f"MISMATCH: {discrepancy}")
    print(f"{len(report.transactions)} transaction(s) confirmed")


def _run_pipeline(args: argparse.Namespace, command: str) -> int:
    config = load_config(args.config, env_file=args.env_file)
    logger.info("Using %r", config)
    pipeline = DeploymentPipeline(config)
    logger.info("Signing as %s on %s", pipeline.deployer, config.network)

    if command == "deploy":
        report = pipeline.run_deploy()
    elif command == "reconcile":
        report = pipeline.run_reconcile()
    else:
        report = pipeline.run_verify()

    _print_report(report)
    return 0 if report.ok else 1


def cmd_deploy(args: argparse.Namespace) -> int:
    return _run_pipeline(args, "deploy")


def cmd_reconcile(args: argparse.Namespace) -> int:
    return _run_pipeline(args, "reconcile")


def cmd_verify(args: argparse.Namespace) -> int:
    return _run_pipeline(args, "verify")


def cmd_selectors(args: argparse.Namespace) -> int:
    for signature, selector in selector_table():
        print(f"{selector}  {signature}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dao-deployments",
        description="Deploy, wire and permission the DAO's upgradeable contracts.",
    )
    parser.add_argument("--config", help="JSON config file overriding environment values")
    parser.add_argument("--env-file", help=".env file to load (default: search from cwd)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("deploy", help="Deploy missing components and configure everything").set_defaults(
        func=cmd_deploy
    )
    sub.add_parser("reconcile", help="Converge an existing deployment").set_defaults(
        func=cmd_reconcile
    )
    sub.add_parser("verify", help="Read-only check of an existing deployment").set_defaults(
        func=cmd_verify
    )
    sub.add_parser("selectors", help="Print allowlisted function selectors").set_defaults(
        func=cmd_selectors
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )
    try:
        return args.func(args)
    except DeploymentError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
