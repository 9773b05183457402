"""
Run configuration

Network settings mirror the Hardhat networks the contracts are deployed to.
A RunConfig is built once per run from the built-in table, the .env file and
the process environment, and is never mutated afterwards.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_NETWORK = "blast-local"
ONE_GWEI = 1_000_000_000


@dataclass(frozen=True)
class NetworkConfig:
    """Connection and signing settings for one network"""
    name: str
    rpc_url: str
    chain_id: int
    gas_price: Optional[int] = None  # wei; None means ask the node
    explorer_url: Optional[str] = None
    private_key: Optional[str] = field(default=None, repr=False)

    def explorer_link(self, kind: str, value: str) -> Optional[str]:
        """Build an explorer link such as <explorer>/address/0x..."""
        if not self.explorer_url:
            return None
        return f"{self.explorer_url.rstrip('/')}/{kind}/{value}"


NETWORKS: Dict[str, NetworkConfig] = {
    "blast_mainnet": NetworkConfig(
        name="blast_mainnet",
        rpc_url="https://rpc.blast.io",
        chain_id=81457,
        gas_price=ONE_GWEI,
        explorer_url="https://blastscan.io",
    ),
    "blast-sepolia": NetworkConfig(
        name="blast-sepolia",
        rpc_url="https://sepolia.blast.io",
        chain_id=168587773,
        gas_price=ONE_GWEI,
        explorer_url="https://testnet.blastscan.io",
    ),
    "blast-local": NetworkConfig(
        name="blast-local",
        rpc_url="http://localhost:8545",
        chain_id=31337,
        gas_price=ONE_GWEI,
    ),
    "mumbai": NetworkConfig(
        name="mumbai",
        rpc_url="https://polygon-mumbai.g.alchemy.com/v2/",
        chain_id=80001,
        explorer_url="https://mumbai.polygonscan.com",
    ),
}


@dataclass(frozen=True)
class RunConfig:
    """Everything a single deployment run needs, resolved up front"""
    network: NetworkConfig
    artifacts_dir: str = "artifacts"
    deployments_dir: str = "deployments"
    confirmation_timeout: float = 120.0
    confirmation_retries: int = 2
    retry_backoff: float = 2.0
    slack_webhook: Optional[str] = field(default=None, repr=False)


def _parse(env: Mapping[str, str], key: str, cast: Callable[[str], Any], default: Any) -> Any:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid value for {key}: {raw!r}")


def load_config(network: Optional[str] = None, env: Optional[Mapping[str, str]] = None,
                dotenv: bool = True) -> RunConfig:
    """
    Build the run configuration

    Args:
        network: Network name; falls back to DEPLOY_NETWORK, then blast-local
        env: Environment mapping (defaults to os.environ)
        dotenv: Load a .env file into os.environ first

    Returns:
        Frozen RunConfig
    """
    if dotenv:
        load_dotenv()
    if env is None:
        env = os.environ

    name = network or env.get("DEPLOY_NETWORK") or DEFAULT_NETWORK
    if name not in NETWORKS:
        known = ", ".join(sorted(NETWORKS))
        raise ConfigurationError(f"Unknown network '{name}' (known: {known})")

    base = NETWORKS[name]
    network_config = replace(
        base,
        rpc_url=env.get("RPC_URL") or base.rpc_url,
        chain_id=_parse(env, "CHAIN_ID", int, base.chain_id),
        gas_price=_parse(env, "GAS_PRICE", int, base.gas_price),
        private_key=env.get("PRIVATE_KEY") or None,
    )

    retries = _parse(env, "CONFIRMATION_RETRIES", int, 2)
    if retries < 0:
        raise ConfigurationError(f"CONFIRMATION_RETRIES must not be negative: {retries}")

    return RunConfig(
        network=network_config,
        artifacts_dir=env.get("ARTIFACTS_DIR") or "artifacts",
        deployments_dir=env.get("DEPLOYMENTS_DIR") or "deployments",
        confirmation_timeout=_parse(env, "CONFIRMATION_TIMEOUT", float, 120.0),
        confirmation_retries=retries,
        retry_backoff=_parse(env, "RETRY_BACKOFF", float, 2.0),
        slack_webhook=env.get("SLACK_WEBHOOK") or None,
    )
