"""
Shared fixtures: Hardhat-style artifacts on disk and an in-memory ledger
"""

import json
import os
from types import SimpleNamespace

import pytest

from .artifacts import ArtifactResolver
from .config import NETWORKS, RunConfig
from .confirmation import ConfirmationWaiter
from .errors import NetworkError, RevertedTransaction

BYTECODE = "0x6080604052348015600f57600080fd5b50603f80601d6000396000f3fe"


def _inputs(*types):
    return [{"name": f"arg{i}", "type": t, "internalType": t} for i, t in enumerate(types)]


def _function(name, inputs, outputs=(), mutability="nonpayable"):
    return {
        "type": "function",
        "name": name,
        "inputs": _inputs(*inputs),
        "outputs": _inputs(*outputs),
        "stateMutability": mutability,
    }


def _constructor(*types):
    return {"type": "constructor", "inputs": _inputs(*types), "stateMutability": "nonpayable"}


ABIS = {
    "TreeToken": [
        _constructor("string", "string"),
        _function("authorizeOnce", ["address"]),
        _function("authorizeMinter", ["address", "bool"]),
        _function("isMinterAuthorized", ["address"], ["bool"], "view"),
    ],
    "TreeMarket": [_constructor("address")],
    "AdoptionPlant": [],
}


class FakeContract:
    def __init__(self, name, address, args):
        self.name = name
        self.address = address
        self.args = args
        self.once_used = False
        self.minters = set()


class FakeLedger:
    """
    In-memory ledger

    Contract state changes on submission; receipts are handed out on
    await_inclusion. Every interaction is appended to `events`.
    """

    def __init__(self):
        self.contracts = {}
        self.receipts = {}
        self.revert_reasons = {}
        self.events = []
        self.drop_deployments = set()
        self.dropped = set()
        self.revert_deployments = set()
        self.await_failures = 0
        self.one_shot_revert = "submit"  # or "receipt"
        self.noop_grants = False
        self._counter = 0

    def _next(self):
        self._counter += 1
        return "0x" + f"{self._counter:064x}", "0x" + f"{0xC0DE0000 + self._counter:040x}"

    def _receipt(self, tx_hash, status=1, address=None):
        self.receipts[tx_hash] = {
            "transactionHash": tx_hash,
            "status": status,
            "blockNumber": self._counter,
            "contractAddress": address,
        }

    def submit_deployment(self, artifact, args, signer):
        tx_hash, address = self._next()
        self.events.append(("submit", artifact.name, tuple(args)))
        if artifact.name in self.revert_deployments:
            self._receipt(tx_hash, status=0)
            self.revert_reasons[tx_hash] = "constructor reverted"
            return tx_hash
        self.contracts[address.lower()] = FakeContract(artifact.name, address, tuple(args))
        self._receipt(tx_hash, address=address)
        if artifact.name in self.drop_deployments:
            self.dropped.add(tx_hash)
        return tx_hash

    def submit_call(self, address, abi, function, args, signer):
        contract = self.contracts[address.lower()]
        tx_hash, _ = self._next()
        self.events.append(("call", function, tuple(args)))
        status = 1
        if function == "authorizeOnce":
            if contract.once_used:
                if self.one_shot_revert == "submit":
                    raise RevertedTransaction(f"{function} on {address} reverted", reason="already authorized")
                status = 0
                self.revert_reasons[tx_hash] = "already authorized"
            else:
                contract.once_used = True
                contract.minters.add(args[0])
        elif function == "authorizeMinter" and not self.noop_grants:
            grantee, allowed = args
            if allowed:
                contract.minters.add(grantee)
            else:
                contract.minters.discard(grantee)
        self._receipt(tx_hash, status=status)
        return tx_hash

    def query(self, address, abi, function, args):
        self.events.append(("query", function, tuple(args)))
        contract = self.contracts[address.lower()]
        if function == "isMinterAuthorized":
            return args[0] in contract.minters
        raise RevertedTransaction(f"query {function} on {address} reverted")

    def await_inclusion(self, tx_hash, timeout):
        if self.await_failures > 0:
            self.await_failures -= 1
            raise NetworkError(f"waiting for {tx_hash}: connection reset")
        if tx_hash in self.dropped:
            raise NetworkError(f"waiting for {tx_hash}: not included in time, transaction may have been dropped")
        receipt = self.receipts[tx_hash]
        self.events.append(("confirm", tx_hash, receipt["contractAddress"]))
        return receipt

    def revert_reason(self, tx_hash, receipt):
        return self.revert_reasons.get(tx_hash)

    def named(self, kind):
        return [event for event in self.events if event[0] == kind]


def write_artifact(root, name, abi, bytecode=BYTECODE, source=None):
    directory = os.path.join(root, "contracts", f"{source or name}.sol")
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, f"{name}.json")
    with open(path, "w") as f:
        json.dump({"_format": "hh-sol-artifact-1", "contractName": name, "abi": abi, "bytecode": bytecode}, f)
    return path


@pytest.fixture
def artifacts_dir(tmp_path):
    root = str(tmp_path / "artifacts")
    for name, abi in ABIS.items():
        write_artifact(root, name, abi)
    return root


@pytest.fixture
def resolver(artifacts_dir):
    return ArtifactResolver(artifacts_dir)


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def signer():
    return SimpleNamespace(address="0x" + "ab" * 20)


@pytest.fixture
def waiter(ledger):
    return ConfirmationWaiter(ledger, timeout=1, retries=2, backoff=0)


@pytest.fixture
def run_config(tmp_path, artifacts_dir):
    return RunConfig(
        network=NETWORKS["blast-local"],
        artifacts_dir=artifacts_dir,
        deployments_dir=str(tmp_path / "deployments"),
        confirmation_timeout=1,
        confirmation_retries=2,
        retry_backoff=0,
    )
