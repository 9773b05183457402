"""
Authorization linker

Grants the grantee contract its capability on the grantor contract once both
are deployed. One-shot grants are sent exactly once and never pre-checked;
settable grants are checked before and verified after. Grants are never
retried.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConsistencyFailure, DeploymentError, PlanValidationError
from .plan import AuthorizationLink, AuthorizationMode
from .sequencer import DeployedContract

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationOutcome:
    grantor: str
    grantee: str
    mode: AuthorizationMode
    tx_hash: Optional[str]
    authorized: Optional[bool]  # None when the mode is not checkable
    skipped: bool = False


class AuthorizationLinker:
    def __init__(self, ledger, resolver, waiter, signer):
        self.ledger = ledger
        self.resolver = resolver
        self.waiter = waiter
        self.signer = signer

    def _endpoints(self, link: AuthorizationLink, deployed: Mapping[str, DeployedContract]):
        for name in (link.grantor, link.grantee):
            if name not in deployed:
                raise PlanValidationError(f"'{name}' has not been deployed", step=name)
        grantor = deployed[link.grantor]
        grantee = deployed[link.grantee]
        abi = self.resolver.resolve(grantor.contract).abi
        return grantor, grantee, abi

    def _transact(self, link: AuthorizationLink, deployed, function: str, extra_args) -> str:
        grantor, grantee, abi = self._endpoints(link, deployed)
        args = (grantee.address,) + tuple(extra_args)
        logger.info(f"Calling {link.grantor}.{function}({', '.join(map(str, args))})")
        try:
            tx_hash = self.ledger.submit_call(grantor.address, abi, function, args, self.signer)
            self.waiter.wait(tx_hash, step=link.grantor)
        except DeploymentError as e:
            raise e.with_context(step=link.grantor, address=grantor.address)
        return tx_hash

    def is_authorized(self, link: AuthorizationLink, deployed: Mapping[str, DeployedContract]) -> bool:
        """Read-only status query; only settable links can be checked"""
        if not link.checkable:
            raise PlanValidationError("One-shot authorization has no status query", step=link.grantor)
        grantor, grantee, abi = self._endpoints(link, deployed)
        try:
            return bool(self.ledger.query(grantor.address, abi, link.status_function, (grantee.address,)))
        except DeploymentError as e:
            raise e.with_context(step=link.grantor, address=grantor.address)

    def _verify(self, link: AuthorizationLink, deployed, expected: bool, tx_hash: str) -> bool:
        observed = self.is_authorized(link, deployed)
        if observed != expected:
            raise ConsistencyFailure(
                f"{link.grantor}.{link.status_function}({link.grantee}) returned {observed} "
                f"after {tx_hash} succeeded, expected {expected}",
                expected=expected,
                observed=observed,
                tx_hash=tx_hash,
                step=link.grantor,
                address=deployed[link.grantor].address,
            )
        return observed

    def link(self, link: AuthorizationLink, deployed: Mapping[str, DeployedContract]) -> AuthorizationOutcome:
        """Issue the grant and, for settable links, verify it took effect"""
        if link.mode is AuthorizationMode.ONE_SHOT:
            tx_hash = self._transact(link, deployed, link.grant_function, link.grant_args)
            logger.info(f"{link.grantee} authorized on {link.grantor} (one-shot)")
            return AuthorizationOutcome(link.grantor, link.grantee, link.mode, tx_hash, authorized=None)

        if self.is_authorized(link, deployed):
            logger.info(f"{link.grantee} is already authorized on {link.grantor}; no grant sent")
            return AuthorizationOutcome(link.grantor, link.grantee, link.mode, None, authorized=True, skipped=True)

        tx_hash = self._transact(link, deployed, link.grant_function, link.grant_args)
        authorized = self._verify(link, deployed, True, tx_hash)
        logger.info(f"{link.grantee} authorized on {link.grantor} (verified)")
        return AuthorizationOutcome(link.grantor, link.grantee, link.mode, tx_hash, authorized=authorized)

    def revoke(self, link: AuthorizationLink, deployed: Mapping[str, DeployedContract]) -> AuthorizationOutcome:
        """Undo a settable grant and verify the status is now false"""
        if not link.checkable or not link.revoke_function:
            raise PlanValidationError(f"Authorization on {link.grantor} cannot be revoked", step=link.grantor)
        tx_hash = self._transact(link, deployed, link.revoke_function, link.revoke_args)
        authorized = self._verify(link, deployed, False, tx_hash)
        logger.info(f"{link.grantee} revoked on {link.grantor}")
        return AuthorizationOutcome(link.grantor, link.grantee, link.mode, tx_hash, authorized=authorized)
