"""KubeClient translation of calls into kubectl invocations."""

from __future__ import annotations

import json

import pytest
import yaml

from cluster_probe import kube
from cluster_probe.errors import KubectlError
from cluster_probe.kube import KubeClient


class _Recorder:
    def __init__(self, responses: list[tuple[bool, str, str]]) -> None:
        self.responses = list(responses)
        self.calls: list[dict] = []

    def __call__(self, args, timeout=30, input=None):
        self.calls.append({"args": args, "timeout": timeout, "input": input})
        return self.responses.pop(0)


@pytest.fixture
def recorder(monkeypatch: pytest.MonkeyPatch):
    def _install(*responses: tuple[bool, str, str]) -> _Recorder:
        rec = _Recorder(list(responses))
        monkeypatch.setattr(kube, "run_kubectl", rec)
        return rec
    return _install


def test_list_nodes_parses_items(recorder) -> None:
    rec = recorder((True, json.dumps({"items": [{"metadata": {"name": "n1"}}]}), ""))
    nodes = KubeClient(kubeconfig="/tmp/kc", context="dev", timeout=7).list_nodes()
    assert nodes == [{"metadata": {"name": "n1"}}]
    assert rec.calls[0]["args"] == ["--kubeconfig", "/tmp/kc", "--context", "dev", "get", "nodes", "-o", "json"]
    assert rec.calls[0]["timeout"] == 7


def test_get_namespace_not_found_returns_none(recorder) -> None:
    recorder((False, "", 'Error from server (NotFound): namespaces "x" not found'))
    assert KubeClient().get_namespace("x") is None


def test_get_namespace_other_error_raises(recorder) -> None:
    recorder((False, "", "Unable to connect to the server: dial tcp: i/o timeout"))
    with pytest.raises(KubectlError, match="Unable to connect"):
        KubeClient().get_namespace("x")


def test_create_sends_manifest_on_stdin(recorder) -> None:
    rec = recorder((True, "pod/p created", ""))
    manifest = {"apiVersion": "v1", "kind": "Pod", "metadata": {"name": "p"}}
    KubeClient().create(manifest)
    assert rec.calls[0]["args"] == ["create", "-f", "-"]
    assert yaml.safe_load(rec.calls[0]["input"]) == manifest


def test_create_already_exists_is_flagged(recorder) -> None:
    recorder((False, "", 'Error from server (AlreadyExists): pods "p" already exists'))
    with pytest.raises(KubectlError) as excinfo:
        KubeClient().create({"kind": "Pod", "metadata": {"name": "p"}})
    assert excinfo.value.already_exists
    assert not excinfo.value.not_found


def test_delete_namespace_is_foreground_and_non_blocking(recorder) -> None:
    rec = recorder((True, "", ""))
    KubeClient().delete_namespace("ns1")
    assert rec.calls[0]["args"] == ["delete", "namespace", "ns1", "--cascade=foreground", "--wait=false"]


def test_server_version(recorder) -> None:
    recorder((True, json.dumps({"serverVersion": {"gitVersion": "v1.30.2"}}), ""))
    assert KubeClient().server_version() == "v1.30.2"


def test_exec_in_pod_reports_failure_without_raising(recorder) -> None:
    rec = recorder(
        (True, "ok\n", ""),
        (False, "", "command terminated with exit code 1\n"),
    )
    client = KubeClient(context="dev")
    ok = client.exec_in_pod("p1", "ns", ["nc", "-z", "-w", "3", "10.0.0.1", "53"])
    failed = client.exec_in_pod("p1", "ns", ["nslookup", "github.com"], timeout=3)

    assert ok.ok and ok.stdout == "ok\n"
    assert not failed.ok
    assert failed.error == "command terminated with exit code 1"
    assert rec.calls[0]["args"] == [
        "--context", "dev", "exec", "p1", "-n", "ns", "--", "nc", "-z", "-w", "3", "10.0.0.1", "53",
    ]
    assert rec.calls[1]["timeout"] == 3
