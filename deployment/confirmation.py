"""
Confirmation waiter

Blocks until a submitted transaction is included and turns the receipt into
either a confirmed address/receipt or a terminal error.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from web3 import Web3

from .errors import DeploymentError, NetworkError, RevertedTransaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Confirmation:
    """An included, successful transaction"""
    tx_hash: str
    block_number: Optional[int]
    address: Optional[str]
    receipt: Dict[str, Any]


class ConfirmationWaiter:
    def __init__(self, ledger, timeout: float = 120.0, retries: int = 2, backoff: float = 2.0):
        """
        Args:
            ledger: Ledger client providing await_inclusion / revert_reason
            timeout: Seconds to wait for inclusion per attempt
            retries: Extra attempts after a NetworkError while waiting
            backoff: Base delay in seconds, doubled after each attempt
        """
        self.ledger = ledger
        self.timeout = timeout
        self.retries = retries
        self.backoff = backoff

    def _await_receipt(self, tx_hash: str, step: Optional[str]) -> Dict[str, Any]:
        attempt = 0
        while True:
            try:
                return self.ledger.await_inclusion(tx_hash, self.timeout)
            except NetworkError as e:
                if attempt >= self.retries:
                    raise e.with_context(step=step)
                delay = self.backoff * (2 ** attempt)
                attempt += 1
                logger.warning(f"Waiting for {tx_hash} failed ({e}); retry {attempt}/{self.retries} in {delay:.1f}s")
                time.sleep(delay)

    def wait(self, tx_hash: str, step: Optional[str] = None) -> Confirmation:
        """Block until tx_hash is included; raise RevertedTransaction if it failed"""
        receipt = self._await_receipt(tx_hash, step)

        if receipt.get('status') != 1:
            reason = self.ledger.revert_reason(tx_hash, receipt)
            raise RevertedTransaction(
                f"Transaction {tx_hash} reverted in block {receipt.get('blockNumber')}",
                reason=reason,
                tx_hash=tx_hash,
                step=step,
            )

        address = receipt.get('contractAddress')
        confirmation = Confirmation(
            tx_hash=tx_hash,
            block_number=receipt.get('blockNumber'),
            address=Web3.to_checksum_address(address) if address else None,
            receipt=receipt,
        )
        logger.info(f"-> Transaction {tx_hash} confirmed in block {confirmation.block_number}")
        return confirmation

    def wait_for_deployment(self, tx_hash: str, step: Optional[str] = None) -> Confirmation:
        """Like wait(), but the receipt must carry the created contract address"""
        confirmation = self.wait(tx_hash, step=step)
        if not confirmation.address:
            raise DeploymentError(f"Receipt for {tx_hash} has no contract address", step=step)
        return confirmation
