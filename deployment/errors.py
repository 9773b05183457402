"""
Deployment error taxonomy

Every failure raised by the orchestrator derives from DeploymentError, which
carries the step and address it happened at so the final report can name them.
"""

from typing import Any, Optional


class DeploymentError(Exception):
    """Base class for all deployment failures"""

    def __init__(self, message: str, step: Optional[str] = None, address: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.step = step
        self.address = address

    def with_context(self, step: Optional[str] = None, address: Optional[str] = None) -> "DeploymentError":
        """Fill in step/address when the raising layer did not know them"""
        if self.step is None:
            self.step = step
        if self.address is None:
            self.address = address
        return self

    def __str__(self) -> str:
        context = []
        if self.step:
            context.append(f"step={self.step}")
        if self.address:
            context.append(f"address={self.address}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class ConfigurationError(DeploymentError):
    """Missing or invalid network/account configuration"""


class PlanValidationError(DeploymentError):
    """The plan is malformed; raised before any transaction is submitted"""


class ArtifactError(DeploymentError):
    """A build artifact could not be loaded"""


class ArtifactNotFound(ArtifactError):
    """No artifact exists for the requested contract name"""


class NetworkError(DeploymentError):
    """Transport failure while submitting or awaiting a transaction"""


class SubmissionRejected(DeploymentError):
    """The node refused the transaction (nonce, funds, gas)"""


class RevertedTransaction(DeploymentError):
    """The transaction executed and reverted"""

    def __init__(self, message: str, reason: Optional[str] = None, tx_hash: Optional[str] = None,
                 step: Optional[str] = None, address: Optional[str] = None):
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, step=step, address=address)
        self.reason = reason
        self.tx_hash = tx_hash


class ConsistencyFailure(DeploymentError):
    """A transaction succeeded but its expected effect was not observed"""

    def __init__(self, message: str, expected: Any = None, observed: Any = None, tx_hash: Optional[str] = None,
                 step: Optional[str] = None, address: Optional[str] = None):
        super().__init__(message, step=step, address=address)
        self.expected = expected
        self.observed = observed
        self.tx_hash = tx_hash


class DeploymentAborted(DeploymentError):
    """A run stopped part way; carries the triggering error and the partial result"""

    def __init__(self, cause: DeploymentError, result: Any):
        super().__init__(f"Deployment aborted: {cause}", step=cause.step, address=cause.address)
        self.cause = cause
        self.result = result

    def __str__(self) -> str:
        return self.message
