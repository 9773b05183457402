"""
Deployment sequencer

Runs plan steps one at a time. A step's Refs are replaced by the addresses
recorded for earlier steps, and a step is recorded only after its deployment
is confirmed, so later steps never see an unconfirmed address.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, MutableMapping, Optional, Tuple

from .errors import DeploymentError, PlanValidationError
from .plan import DeploymentPlan, DeploymentStep, Ref

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeployedContract:
    name: str
    contract: str
    address: str
    tx_hash: str
    block_number: Optional[int] = None


def resolve_args(step: DeploymentStep, deployed: MutableMapping[str, DeployedContract]) -> Tuple[Any, ...]:
    """Replace Refs in a step's args with recorded addresses"""
    def resolve(arg):
        if isinstance(arg, Ref):
            if arg.step not in deployed:
                raise PlanValidationError(f"Reference {arg} used before that step completed", step=step.name)
            return deployed[arg.step].address
        if isinstance(arg, (list, tuple)):
            return tuple(resolve(item) for item in arg)
        return arg

    return tuple(resolve(arg) for arg in step.args)


class DeploymentSequencer:
    """Deploys the steps of a validated plan in order"""

    def __init__(self, ledger, resolver, waiter, signer):
        self.ledger = ledger
        self.resolver = resolver
        self.waiter = waiter
        self.signer = signer

    def deploy_step(self, step: DeploymentStep, deployed: MutableMapping[str, DeployedContract]) -> DeployedContract:
        """Submit one deployment, wait for it and record the result"""
        try:
            args = resolve_args(step, deployed)
            artifact = self.resolver.resolve(step.contract)

            logger.info(f"Deploying {step.name} ({step.contract}) with args {list(args)}")
            tx_hash = self.ledger.submit_deployment(artifact, args, self.signer)
            confirmation = self.waiter.wait_for_deployment(tx_hash, step=step.name)
        except DeploymentError as e:
            raise e.with_context(step=step.name)

        record = DeployedContract(
            name=step.name,
            contract=step.contract,
            address=confirmation.address,
            tx_hash=tx_hash,
            block_number=confirmation.block_number,
        )
        deployed[step.name] = record
        logger.info(f"{step.name} deployed to: {record.address}")
        return record

    def run(self, plan: DeploymentPlan,
            deployed: Optional[MutableMapping[str, DeployedContract]] = None) -> Dict[str, DeployedContract]:
        """
        Deploy every step of the plan

        Args:
            plan: A plan that already passed validate_plan
            deployed: Mapping to record into; pass one in to keep the partial
                record when a step fails

        Returns:
            Mapping of step name to DeployedContract, in plan order
        """
        if deployed is None:
            deployed = {}
        logger.info(f"Deploying plan '{plan.name}' ({len(plan.steps)} steps) from {self.signer.address}")
        for step in plan.steps:
            self.deploy_step(step, deployed)
        return dict(deployed)
