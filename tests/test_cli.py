"""CLI exit codes and report output, with kubectl replaced by the in-memory cluster."""

from __future__ import annotations

import pytest
from conftest import FakeCluster
from typer.testing import CliRunner

from cluster_probe import __version__
from cluster_probe.cli import app
from cluster_probe.commands import nettest_cmd
from cluster_probe.errors import KubectlError

runner = CliRunner()


@pytest.fixture(autouse=True)
def _fast_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name, value in {
        "PROBE_POD_READY_POLL_INTERVAL": "0.01",
        "PROBE_CLEANUP_TIMEOUT": "0.2",
        "PROBE_CLEANUP_POLL_INTERVAL": "0.01",
        "PROBE_LISTENER_ACK_TIMEOUT": "0.1",
        "PROBE_LISTENER_ACK_POLL_INTERVAL": "0.01",
    }.items():
        monkeypatch.setenv(name, value)


@pytest.fixture
def use_cluster(monkeypatch: pytest.MonkeyPatch):
    def _install(cluster: FakeCluster) -> FakeCluster:
        monkeypatch.setattr(nettest_cmd, "require_command", lambda name: None)
        monkeypatch.setattr(nettest_cmd, "KubeClient", lambda *args, **kwargs: cluster)
        return cluster
    return _install


def test_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_run_all_passing(use_cluster, three_node_cluster: FakeCluster) -> None:
    use_cluster(three_node_cluster)
    result = runner.invoke(app, ["nettest", "run", "--namespace", "probe-cli"])
    assert result.exit_code == 0, result.output
    assert "Summary: 24 tests, 24 passed, 0 failed" in result.output
    assert three_node_cluster.namespaces == {}


def test_run_json_with_failures(use_cluster, three_node_cluster: FakeCluster) -> None:
    use_cluster(three_node_cluster)
    three_node_cluster.failing.add("nslookup")
    result = runner.invoke(app, ["nettest", "run", "-o", "json", "--namespace", "probe-cli"])
    assert result.exit_code == 2, result.output
    assert '"failed": 3' in result.output
    assert '"test_type": "dns"' in result.output


def test_run_readiness_timeout(use_cluster, three_node_cluster: FakeCluster) -> None:
    use_cluster(three_node_cluster)
    three_node_cluster.never_ready.add("nettest-node-a")
    result = runner.invoke(
        app, ["nettest", "run", "--namespace", "probe-cli", "--pod-ready-timeout", "0.2"])
    assert result.exit_code == 4
    assert "nettest-node-a" in result.output
    assert three_node_cluster.namespaces == {}


def test_run_bad_output_format(use_cluster, three_node_cluster: FakeCluster) -> None:
    use_cluster(three_node_cluster)
    result = runner.invoke(app, ["nettest", "run", "-o", "yaml"])
    assert result.exit_code == 2
    assert three_node_cluster.created_pods == []


def test_run_without_kubectl(monkeypatch: pytest.MonkeyPatch) -> None:
    def _missing(name: str) -> None:
        raise RuntimeError(f"Required command '{name}' not found. Please install it first.")

    monkeypatch.setattr(nettest_cmd, "require_command", _missing)
    result = runner.invoke(app, ["nettest", "run"])
    assert result.exit_code == 3


def test_run_cluster_unreachable(use_cluster, three_node_cluster: FakeCluster) -> None:
    def _refused() -> str:
        raise KubectlError(["version", "-o"], "The connection to the server was refused")

    three_node_cluster.server_version = _refused
    use_cluster(three_node_cluster)
    result = runner.invoke(app, ["nettest", "run"])
    assert result.exit_code == 3
    assert three_node_cluster.created_pods == []


def test_cleanup_missing_namespace(use_cluster) -> None:
    use_cluster(FakeCluster([]))
    result = runner.invoke(app, ["nettest", "cleanup", "cluster-probe-nettest-0000aaaa"])
    assert result.exit_code == 0


def test_cleanup_refuses_foreign_namespace(use_cluster) -> None:
    cluster = use_cluster(FakeCluster([]))
    cluster.namespaces["prod"] = {"metadata": {"name": "prod", "labels": {}}}
    result = runner.invoke(app, ["nettest", "cleanup", "prod"])
    assert result.exit_code == 4
    assert "prod" in cluster.namespaces


def test_cleanup_deletes_probe_namespace(use_cluster) -> None:
    cluster = use_cluster(FakeCluster([]))
    name = "cluster-probe-nettest-0000aaaa"
    cluster.namespaces[name] = {
        "metadata": {"name": name, "labels": {"app.kubernetes.io/name": "cluster-probe"}},
    }
    result = runner.invoke(app, ["nettest", "cleanup", name])
    assert result.exit_code == 0, result.output
    assert cluster.namespaces == {}


def test_config_shows_prefix() -> None:
    result = runner.invoke(app, ["nettest", "config"])
    assert result.exit_code == 0
    assert "cluster-probe-nettest-<run-id>" in result.output


def test_run_refuses_foreign_namespace(use_cluster, three_node_cluster: FakeCluster) -> None:
    use_cluster(three_node_cluster)
    three_node_cluster.namespaces["team-prod"] = {"metadata": {"name": "team-prod"}}
    result = runner.invoke(app, ["nettest", "run", "--namespace", "team-prod"])
    assert result.exit_code == 4
    assert "team-prod" in three_node_cluster.namespaces
    assert three_node_cluster.deleted_namespaces == []


def test_run_forced_abort_prints_cleanup_hint(use_cluster, three_node_cluster: FakeCluster) -> None:
    def _interrupted() -> list[dict]:
        raise KeyboardInterrupt

    three_node_cluster.list_nodes = _interrupted
    use_cluster(three_node_cluster)
    result = runner.invoke(app, ["nettest", "run", "--namespace", "probe-cli"])
    assert result.exit_code == 130
    assert "cluster-probe nettest cleanup probe-cli" in result.output
