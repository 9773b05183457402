"""
web3.py ledger client

Submits deployments and contract calls signed by a local account, awaits
their receipts and runs read-only queries. web3/requests exceptions are
translated into the deployment error taxonomy here and nowhere else.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

import requests
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, TransactionNotFound, Web3RPCError
from web3.middleware import ExtraDataToPOAMiddleware

from .artifacts import Artifact
from .config import NetworkConfig
from .errors import ConfigurationError, NetworkError, RevertedTransaction, SubmissionRejected

logger = logging.getLogger(__name__)


def _logic_error_reason(error: ContractLogicError) -> Optional[str]:
    return getattr(error, "message", None) or str(error) or None


@contextmanager
def translate_errors(action: str, submitting: bool = False):
    """
    Map web3/transport exceptions raised inside the block to DeploymentErrors

    JSON-RPC errors are a node rejection only while submitting; when waiting
    or reading they are transient (rate limits, overloaded node) and become
    NetworkError like any other transport failure.
    """
    try:
        yield
    except ContractLogicError as e:
        raise RevertedTransaction(f"{action} reverted", reason=_logic_error_reason(e)) from e
    except TimeExhausted as e:
        raise NetworkError(f"{action}: not included in time, transaction may have been dropped") from e
    except TransactionNotFound as e:
        raise NetworkError(f"{action}: transaction not found") from e
    except Web3RPCError as e:
        if submitting:
            raise SubmissionRejected(f"{action} rejected by node: {e}") from e
        raise NetworkError(f"{action}: RPC error {e}") from e
    except requests.exceptions.RequestException as e:
        raise NetworkError(f"{action}: {e}") from e


class Web3Ledger:
    """Ledger client backed by a web3.py connection"""

    def __init__(self, w3: Web3, chain_id: int, gas_price: Optional[int] = None, poll_latency: float = 0.5):
        self.w3 = w3
        self.chain_id = chain_id
        self.gas_price = gas_price
        self.poll_latency = poll_latency

    @classmethod
    def connect(cls, network: NetworkConfig) -> "Web3Ledger":
        """Connect to the network's RPC endpoint and check the chain id"""
        w3 = Web3(Web3.HTTPProvider(network.rpc_url))
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        if not w3.is_connected():
            raise ConfigurationError(f"Could not connect to RPC URL: {network.rpc_url}")

        with translate_errors("chain id lookup"):
            chain_id = w3.eth.chain_id
        if chain_id != network.chain_id:
            raise ConfigurationError(
                f"RPC at {network.rpc_url} reports chainId {chain_id}, expected {network.chain_id} for {network.name}"
            )

        logger.info(f"Connected to {network.name} at {network.rpc_url} (chainId={chain_id})")
        return cls(w3, chain_id, gas_price=network.gas_price)

    def account(self, private_key: Optional[str]):
        """Local signing account for the deployer key"""
        if not private_key:
            raise ConfigurationError("PRIVATE_KEY not found in environment")
        try:
            return self.w3.eth.account.from_key(private_key)
        except ValueError as e:
            raise ConfigurationError(f"Invalid PRIVATE_KEY: {e}") from e

    def _tx_params(self, signer) -> Dict[str, Any]:
        return {
            'from': signer.address,
            'nonce': self.w3.eth.get_transaction_count(signer.address, 'pending'),
            'chainId': self.chain_id,
            'gasPrice': self.gas_price if self.gas_price is not None else self.w3.eth.gas_price,
        }

    def _send(self, tx: Dict[str, Any], signer) -> str:
        signed_tx = signer.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        return Web3.to_hex(tx_hash)

    def submit_deployment(self, artifact: Artifact, args: Sequence[Any], signer) -> str:
        """Build, sign and send a contract creation; returns the tx hash"""
        factory = self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        with translate_errors(f"deployment of {artifact.name}", submitting=True):
            tx = factory.constructor(*args).build_transaction(self._tx_params(signer))
            tx_hash = self._send(tx, signer)
        logger.info(f"-> {artifact.name} deployment sent: {tx_hash}")
        return tx_hash

    def _contract(self, address: str, abi: List[Dict[str, Any]]):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def submit_call(self, address: str, abi: List[Dict[str, Any]], function: str,
                    args: Sequence[Any], signer) -> str:
        """Build, sign and send a state-changing call; returns the tx hash"""
        contract = self._contract(address, abi)
        with translate_errors(f"{function} on {address}", submitting=True):
            tx = getattr(contract.functions, function)(*args).build_transaction(self._tx_params(signer))
            tx_hash = self._send(tx, signer)
        logger.info(f"-> {function} sent: {tx_hash}")
        return tx_hash

    def query(self, address: str, abi: List[Dict[str, Any]], function: str, args: Sequence[Any]) -> Any:
        """Read-only call against the latest block"""
        contract = self._contract(address, abi)
        with translate_errors(f"query {function} on {address}"):
            return getattr(contract.functions, function)(*args).call()

    def await_inclusion(self, tx_hash: str, timeout: float) -> Dict[str, Any]:
        """Block until the transaction has a receipt"""
        with translate_errors(f"waiting for {tx_hash}"):
            return self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout, poll_latency=self.poll_latency)

    def revert_reason(self, tx_hash: str, receipt: Dict[str, Any]) -> Optional[str]:
        """Replay a failed transaction as a call to recover its revert reason, if any"""
        try:
            tx = self.w3.eth.get_transaction(tx_hash)
            call = {'from': tx['from'], 'data': tx['input'], 'value': tx['value']}
            if tx.get('to'):
                call['to'] = tx['to']
            self.w3.eth.call(call, max(receipt['blockNumber'] - 1, 0))
        except ContractLogicError as e:
            return _logic_error_reason(e)
        except (Web3RPCError, TransactionNotFound, requests.exceptions.RequestException) as e:
            logger.debug(f"Could not replay {tx_hash} for a revert reason: {e}")
        return None
