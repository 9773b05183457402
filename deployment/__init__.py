"""
Contract Deployment
===================

Deploys interdependent contracts in order and wires them together.

Structure:
- plan/plans: deployment steps, back-references and authorization links
- artifacts: Hardhat artifact lookup
- ledger/confirmation: web3 submission and inclusion waits
- sequencer/linker/orchestrator: the run itself
- reporter/cli: output, deployment record and entry point
"""

from .errors import (
    ConsistencyFailure,
    DeploymentAborted,
    DeploymentError,
    NetworkError,
    PlanValidationError,
    RevertedTransaction,
)
from .plan import AuthorizationLink, AuthorizationMode, DeploymentPlan, DeploymentStep, Ref

__version__ = "1.0.0"

__all__ = [
    'AuthorizationLink',
    'AuthorizationMode',
    'ConsistencyFailure',
    'DeploymentAborted',
    'DeploymentError',
    'DeploymentPlan',
    'DeploymentStep',
    'NetworkError',
    'PlanValidationError',
    'Ref',
    'RevertedTransaction',
]
