"""
Run reporting: console summary, deployment record file and failure alerts
"""

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from .config import NetworkConfig
from .orchestrator import RunResult

logger = logging.getLogger(__name__)


def summary_lines(result: RunResult, network: Optional[NetworkConfig] = None):
    lines = [f"Deploying contracts with account: {result.deployer}"]
    for record in result.deployed.values():
        lines.append(f"{record.name} deployed to: {record.address} (tx {record.tx_hash})")
        link = network.explorer_link("address", record.address) if network else None
        if link:
            lines.append(f"  {link}")

    outcome = result.authorization
    if outcome is not None:
        if outcome.skipped:
            state = "already authorized, no transaction sent"
        elif outcome.authorized is None:
            state = f"granted once (tx {outcome.tx_hash})"
        else:
            state = f"authorized={outcome.authorized} (tx {outcome.tx_hash})"
        lines.append(f"Authorization {outcome.grantor} -> {outcome.grantee} [{outcome.mode.value}]: {state}")

    if result.error is not None:
        lines.append(f"FAILED: {result.error}")
        lines.append(f"Completed steps: {', '.join(result.deployed) or 'none'}")
    return lines


def print_summary(result: RunResult, network: Optional[NetworkConfig] = None):
    print()
    for line in summary_lines(result, network):
        print(line)


def deployment_record(result: RunResult, chain_id: Optional[int] = None) -> Dict[str, Any]:
    """Address book in the layout the off-chain scripts read (contracts/roles)"""
    record: Dict[str, Any] = {
        'network': result.network,
        'chainId': chain_id,
        'plan': result.plan,
        'complete': result.complete,
        'timestamp': datetime.now().isoformat(),
        'contracts': {name: c.address for name, c in result.deployed.items()},
        'transactions': {name: c.tx_hash for name, c in result.deployed.items()},
        'roles': {'deployer': result.deployer},
    }
    outcome = result.authorization
    if outcome is not None:
        record['authorization'] = {
            'grantor': outcome.grantor,
            'grantee': outcome.grantee,
            'mode': outcome.mode.value,
            'tx': outcome.tx_hash,
            'authorized': outcome.authorized,
            'skipped': outcome.skipped,
        }
    if result.error is not None:
        record['error'] = str(result.error)
    return record


def write_deployment_record(result: RunResult, directory: str, chain_id: Optional[int] = None) -> str:
    """Write <directory>/<network>.json and return its path"""
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, f'{result.network}.json')
    with open(path, 'w') as f:
        json.dump(deployment_record(result, chain_id), f, indent=2)
    logger.info(f"Deployment record written to {path}")
    return path


def send_alert(webhook: Optional[str], message: str, result: Optional[RunResult] = None) -> bool:
    """Post a failure to Slack; returns False when not configured or not delivered"""
    logger.error(f"ALERT: {message}")
    if not webhook:
        return False

    fields = []
    if result is not None:
        fields = [
            {"title": "Network", "value": result.network, "short": True},
            {"title": "Plan", "value": result.plan, "short": True},
            {"title": "Deployed", "value": ", ".join(result.deployed) or "none", "short": False},
        ]
    payload = {
        "text": f"Contract deployment alert: {message}",
        "attachments": [{"fields": fields}],
    }

    try:
        response = requests.post(webhook, json=payload, timeout=10)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to send Slack alert: {e}")
        return False
    return True
