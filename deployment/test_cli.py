#!/usr/bin/env python3
"""
Tests for the command line entry point
"""

import json
import os
from unittest.mock import patch

import pytest
import requests

from .cli import main


@pytest.fixture
def cli_env(monkeypatch, tmp_path, artifacts_dir):
    for key in ("DEPLOY_NETWORK", "RPC_URL", "CHAIN_ID", "GAS_PRICE", "SLACK_WEBHOOK"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("PRIVATE_KEY", "0x" + "11" * 32)
    monkeypatch.setenv("ARTIFACTS_DIR", artifacts_dir)
    monkeypatch.setenv("DEPLOYMENTS_DIR", str(tmp_path / "deployments"))
    monkeypatch.setenv("RETRY_BACKOFF", "0")
    return tmp_path


@pytest.fixture
def connected(ledger, signer):
    """Patch Web3Ledger.connect to hand out the in-memory ledger"""
    ledger.account = lambda private_key: signer
    with patch("deployment.cli.Web3Ledger") as mock_ledger, patch("deployment.config.load_dotenv"):
        mock_ledger.connect.return_value = ledger
        yield mock_ledger


def read_record(tmp_path, network="blast-local"):
    with open(os.path.join(str(tmp_path), "deployments", f"{network}.json")) as f:
        return json.load(f)


class TestMain:
    """Test class for the deploy-contracts command"""

    def test_list_plans(self, capsys):
        assert main(["--list-plans"]) == 0
        out = capsys.readouterr().out
        assert "tree-once" in out
        assert "TreeToken -> TreeMarket" in out

    def test_deploy_success(self, cli_env, connected, ledger, capsys):
        """A full run prints addresses and writes the deployment record"""
        assert main(["--plan", "tree-once", "--log-file", ""]) == 0

        record = read_record(cli_env)
        assert list(record['contracts']) == ["TreeToken", "TreeMarket"]
        assert record['complete'] is True
        assert record['authorization']['mode'] == "one-shot"
        assert "TreeMarket deployed to:" in capsys.readouterr().out
        assert len(ledger.named("call")) == 1

    def test_validate_only_does_not_connect(self, cli_env, connected):
        assert main(["--plan", "tree-minter", "--validate-only", "--log-file", ""]) == 0
        connected.connect.assert_not_called()

    def test_invalid_plan_fails_before_connecting(self, cli_env, connected, tmp_path):
        """A plan naming a missing contract exits non-zero without any network call"""
        plan_path = tmp_path / "bad.json"
        plan_path.write_text(json.dumps({
            "name": "bad",
            "steps": [{"name": "TreeToken", "args": ["TREE", "TREE"]}, {"name": "MarketY", "args": ["$TreeToken"]}],
        }))
        assert main(["--plan", str(plan_path), "--log-file", ""]) == 1
        connected.connect.assert_not_called()
        assert not os.path.exists(os.path.join(str(cli_env), "deployments"))

    def test_failed_run_writes_partial_record(self, cli_env, connected, ledger, capsys):
        ledger.drop_deployments.add("TreeMarket")
        assert main(["--plan", "tree-once", "--log-file", ""]) == 1

        record = read_record(cli_env)
        assert record['complete'] is False
        assert list(record['contracts']) == ["TreeToken"]
        assert "step=TreeMarket" in record['error']
        assert "Completed steps: TreeToken" in capsys.readouterr().out

    def test_transport_failure_writes_partial_record(self, cli_env, connected, ledger):
        """An HTTP error from the node mid-run exits non-zero and keeps the record"""
        submit = ledger.submit_deployment

        def failing_submit(artifact, args, signer):
            if artifact.name == "TreeMarket":
                raise requests.exceptions.HTTPError("502 Bad Gateway")
            return submit(artifact, args, signer)

        ledger.submit_deployment = failing_submit
        assert main(["--plan", "tree-once", "--log-file", ""]) == 1

        record = read_record(cli_env)
        assert record['complete'] is False
        assert list(record['contracts']) == ["TreeToken"]
        assert "502 Bad Gateway" in record['error']

    def test_unknown_network_from_environment(self, cli_env, connected, monkeypatch):
        monkeypatch.setenv("DEPLOY_NETWORK", "goerli")
        assert main(["--log-file", ""]) == 1
        connected.connect.assert_not_called()

    def test_unknown_network_flag_is_usage_error(self):
        with pytest.raises(SystemExit) as exc:
            main(["--network", "goerli"])
        assert exc.value.code == 2
