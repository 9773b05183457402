"""
Command line entry point: deploy a plan to a network and link the contracts
"""

import argparse
import logging
import sys
from typing import List, Optional

from .artifacts import ArtifactResolver
from .config import NETWORKS, RunConfig, load_config
from .errors import DeploymentAborted, DeploymentError
from .ledger import Web3Ledger
from .orchestrator import DeploymentRun
from .plan import validate_plan
from .plans import DEFAULT_PLAN, PLANS, get_plan
from .reporter import print_summary, send_alert, write_deployment_record

logger = logging.getLogger(__name__)


def configure_logging(log_file: Optional[str] = 'deployment.log', level: int = logging.INFO):
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deploy contracts in dependency order and authorize them.")
    parser.add_argument("--network", "-n", choices=sorted(NETWORKS),
                        help="Target network (default: $DEPLOY_NETWORK or blast-local)")
    parser.add_argument("--plan", "-p", default=DEFAULT_PLAN,
                        help=f"Built-in plan name or path to a JSON plan (default: {DEFAULT_PLAN})")
    parser.add_argument("--validate-only", action="store_true",
                        help="Check the plan against the artifacts and exit without connecting")
    parser.add_argument("--list-plans", action="store_true", help="List built-in plans and exit")
    parser.add_argument("--log-file", default="deployment.log", help="Log file ('' to disable)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def _report_failure(config: Optional[RunConfig], error: DeploymentError, result=None):
    if result is not None and config is not None:
        print_summary(result, config.network)
        write_deployment_record(result, config.deployments_dir, config.network.chain_id)
    send_alert(config.slack_webhook if config else None, str(error), result)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if args.list_plans:
        for name, plan in sorted(PLANS.items()):
            print(f"{name:16} {' -> '.join(plan.step_names):40} {plan.description}")
        return 0

    configure_logging(args.log_file or None, logging.DEBUG if args.verbose else logging.INFO)

    config: Optional[RunConfig] = None
    try:
        config = load_config(args.network)
        plan = get_plan(args.plan)
        resolver = ArtifactResolver(config.artifacts_dir)

        # No network access until the plan is known to be valid
        validate_plan(plan, resolver)
        if args.validate_only:
            logger.info(f"Plan '{plan.name}' is valid: {' -> '.join(plan.step_names)}")
            return 0

        ledger = Web3Ledger.connect(config.network)
        signer = ledger.account(config.network.private_key)
        logger.info(f"Deploying contracts with account: {signer.address}")

        result = DeploymentRun(config, ledger, resolver, signer).execute(plan)
    except DeploymentAborted as e:
        _report_failure(config, e, e.result)
        return 1
    except DeploymentError as e:
        logger.error(f"{type(e).__name__}: {e}")
        _report_failure(config, e)
        return 1

    print_summary(result, config.network)
    write_deployment_record(result, config.deployments_dir, config.network.chain_id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
