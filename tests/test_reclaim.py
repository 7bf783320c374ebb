"""Namespace teardown."""

from __future__ import annotations

from conftest import FakeCluster

from cluster_probe.errors import KubectlError
from cluster_probe.reclaim import reclaim_namespace

NS = "probe-test"


def _cluster() -> FakeCluster:
    cluster = FakeCluster([])
    cluster.namespaces[NS] = {"metadata": {"name": NS}}
    cluster.pods[(NS, "nettest-node-a")] = {"metadata": {"name": "nettest-node-a"}}
    return cluster


def test_deletes_namespace_and_pods() -> None:
    cluster = _cluster()
    assert reclaim_namespace(cluster, NS, timeout=0.2, poll_interval=0.01)
    assert NS not in cluster.namespaces
    assert cluster.pods == {}
    assert cluster.deleted_namespaces == [NS]


def test_missing_namespace_counts_as_gone() -> None:
    assert reclaim_namespace(FakeCluster([]), NS, timeout=0.2, poll_interval=0.01)


def test_delete_error_is_not_raised() -> None:
    cluster = _cluster()

    def _forbidden(name: str) -> None:
        raise KubectlError(["delete", "namespace", name], "Error from server (Forbidden): nope")

    cluster.delete_namespace = _forbidden
    assert not reclaim_namespace(cluster, NS, timeout=0.2, poll_interval=0.01)


def test_stuck_namespace_times_out() -> None:
    cluster = _cluster()
    cluster.stuck_namespaces.add(NS)
    assert not reclaim_namespace(cluster, NS, timeout=0.1, poll_interval=0.01)
    assert NS in cluster.namespaces


def test_poll_errors_keep_waiting() -> None:
    cluster = _cluster()
    calls = []
    real_get = cluster.get_namespace

    def _flaky(name: str):
        calls.append(name)
        if len(calls) == 1:
            raise KubectlError(["get", "namespace", name], "connection refused")
        return real_get(name)

    cluster.get_namespace = _flaky
    assert reclaim_namespace(cluster, NS, timeout=1, poll_interval=0.01)
    assert len(calls) == 2
