"""
Deployment run orchestration

validate -> deploy steps in order -> authorization link. Anything that fails
after validation aborts the rest of the plan; already confirmed deployments
stay on chain and are listed in the partial RunResult.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from .confirmation import ConfirmationWaiter
from .config import RunConfig
from .errors import DeploymentAborted, DeploymentError
from .linker import AuthorizationLinker, AuthorizationOutcome
from .plan import DeploymentPlan, validate_plan
from .sequencer import DeployedContract, DeploymentSequencer

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    plan: str
    network: str
    deployer: str
    deployed: Dict[str, DeployedContract] = field(default_factory=dict)
    authorization: Optional[AuthorizationOutcome] = None
    error: Optional[DeploymentError] = None

    @property
    def complete(self) -> bool:
        return self.error is None


class DeploymentRun:
    """One deployment run against one network with one deployer"""

    def __init__(self, config: RunConfig, ledger, resolver, signer, waiter: Optional[ConfirmationWaiter] = None):
        self.config = config
        self.ledger = ledger
        self.resolver = resolver
        self.signer = signer
        self.waiter = waiter or ConfirmationWaiter(
            ledger,
            timeout=config.confirmation_timeout,
            retries=config.confirmation_retries,
            backoff=config.retry_backoff,
        )
        self.sequencer = DeploymentSequencer(ledger, resolver, self.waiter, signer)
        self.linker = AuthorizationLinker(ledger, resolver, self.waiter, signer)

    def validate(self, plan: DeploymentPlan) -> None:
        validate_plan(plan, self.resolver)
        logger.info(f"Plan '{plan.name}' is valid: {' -> '.join(plan.step_names)}")

    def execute(self, plan: DeploymentPlan) -> RunResult:
        """
        Validate and run a plan

        Raises:
            PlanValidationError: before any transaction is sent
            DeploymentAborted: wrapping the first failure, with the partial result
        """
        self.validate(plan)

        result = RunResult(plan=plan.name, network=self.config.network.name, deployer=self.signer.address)
        try:
            self.sequencer.run(plan, result.deployed)
            if plan.link is not None:
                result.authorization = self.linker.link(plan.link, result.deployed)
        except DeploymentError as e:
            self._abort(plan, result, e)
        except Exception as e:
            error = DeploymentError(f"Unexpected {type(e).__name__}: {e}", step=self._current_step(plan, result))
            error.__cause__ = e
            self._abort(plan, result, error)

        logger.info(f"Run of '{plan.name}' finished: {len(result.deployed)} contract(s) deployed")
        return result

    @staticmethod
    def _current_step(plan: DeploymentPlan, result: RunResult) -> Optional[str]:
        """Step that was running when the run stopped: next undeployed step, else the link grantor"""
        for step in plan.steps:
            if step.name not in result.deployed:
                return step.name
        return plan.link.grantor if plan.link is not None else None

    def _abort(self, plan: DeploymentPlan, result: RunResult, error: DeploymentError):
        result.error = error
        logger.error(f"Run of '{plan.name}' failed after {len(result.deployed)} deployment(s): {error}")
        raise DeploymentAborted(error, result) from error
