"""Shared fixtures: an in-memory cluster that speaks the KubeClient surface."""

from __future__ import annotations

import threading

import pytest

from cluster_probe.config import NetTestConfig
from cluster_probe.errors import KubectlError
from cluster_probe.kube import ExecResult

EXEC_FAILURE = "command terminated with exit code 1"


def make_node(name: str, ip: str | None = None, ready: str | None = "True") -> dict:
    """Node object in ``kubectl get nodes -o json`` shape.

    ``ready`` is the Ready condition status, or None for no Ready condition.
    """
    conditions = [{"type": "MemoryPressure", "status": "False"}]
    if ready is not None:
        conditions.append({"type": "Ready", "status": ready})
    addresses = [{"type": "Hostname", "address": name}]
    if ip:
        addresses.append({"type": "InternalIP", "address": ip})
    return {
        "metadata": {"name": name},
        "status": {"conditions": conditions, "addresses": addresses},
    }


def make_system_pod(name: str, ip: str | None, phase: str = "Running") -> dict:
    status = {"phase": phase}
    if ip:
        status["podIP"] = ip
    return {"metadata": {"name": name, "namespace": "kube-system"}, "status": status}


class FakeCluster:
    """In-memory stand-in for KubeClient.

    Attributes:
        nodes: Node objects returned by list_nodes.
        endpoints: Service name to endpoint IPs in kube-system.
        system_pods: Pod objects listed in kube-system.
        namespaces: Live namespaces by name.
        pods: Live pods keyed by (namespace, name).
        never_ready: Pod names that stay Pending forever.
        create_errors: Pod name to stderr returned on creation.
        failing: Substrings; a probe whose command line contains one fails.
        no_ack: Pod names whose listener never acknowledges.
        stuck_namespaces: Namespaces that never finish terminating.
        exec_calls: Every exec, as (pod, namespace, argv).
    """

    def __init__(
        self,
        nodes: list[dict],
        endpoints: dict[str, list[str]] | None = None,
        system_pods: list[dict] | None = None,
    ) -> None:
        self.nodes = nodes
        self.endpoints = endpoints or {}
        self.system_pods = system_pods or []
        self.namespaces: dict[str, dict] = {}
        self.pods: dict[tuple[str, str], dict] = {}
        self.pod_ips: dict[str, str] = {}
        self.never_ready: set[str] = set()
        self.create_errors: dict[str, str] = {}
        self.namespace_create_error: str | None = None
        self.failing: set[str] = set()
        self.no_ack: set[str] = set()
        self.stuck_namespaces: set[str] = set()
        self.exec_calls: list[tuple[str, str, list[str]]] = []
        self.deleted_namespaces: list[str] = []
        self.created_pods: list[str] = []
        self.on_exec = None
        self._lock = threading.Lock()
        self._next_ip = 1

    # -- cluster --

    def server_version(self) -> str:
        return "v1.33.0"

    def list_nodes(self) -> list[dict]:
        return list(self.nodes)

    # -- namespaces --

    def get_namespace(self, name: str) -> dict | None:
        return self.namespaces.get(name)

    def delete_namespace(self, name: str) -> None:
        if name not in self.namespaces:
            raise KubectlError(["delete", "namespace", name],
                               f'Error from server (NotFound): namespaces "{name}" not found')
        self.deleted_namespaces.append(name)
        if name in self.stuck_namespaces:
            self.namespaces[name]["status"] = {"phase": "Terminating"}
            return
        del self.namespaces[name]
        for key in [k for k in self.pods if k[0] == name]:
            del self.pods[key]

    # -- objects --

    def create(self, manifest: dict) -> None:
        kind = manifest["kind"]
        name = manifest["metadata"]["name"]
        if kind == "Namespace":
            if self.namespace_create_error:
                raise KubectlError(["create", "-f", "-"], self.namespace_create_error)
            if name in self.namespaces:
                raise KubectlError(["create", "-f", "-"],
                                   f'Error from server (AlreadyExists): namespaces "{name}" already exists')
            self.namespaces[name] = manifest
            return
        namespace = manifest["metadata"]["namespace"]
        if name in self.create_errors:
            raise KubectlError(["create", "-f", "-"], self.create_errors[name])
        if namespace not in self.namespaces:
            raise KubectlError(["create", "-f", "-"],
                               f'Error from server (NotFound): namespaces "{namespace}" not found')
        if (namespace, name) in self.pods:
            raise KubectlError(["create", "-f", "-"],
                               f'Error from server (AlreadyExists): pods "{name}" already exists')
        self.pods[(namespace, name)] = manifest
        self.pod_ips[name] = f"10.244.0.{self._next_ip}"
        self._next_ip += 1
        self.created_pods.append(name)

    # -- pods & endpoints --

    def get_pod(self, name: str, namespace: str) -> dict:
        if (namespace, name) not in self.pods:
            raise KubectlError(["get", "pod", name], f'Error from server (NotFound): pods "{name}" not found')
        if name in self.never_ready:
            return {"metadata": {"name": name}, "status": {"phase": "Pending"}}
        return {
            "metadata": {"name": name},
            "status": {
                "phase": "Running",
                "podIP": self.pod_ips[name],
                "containerStatuses": [{"name": "nettest", "ready": True}],
            },
        }

    def list_pods(self, namespace: str) -> list[dict]:
        if namespace == "kube-system":
            return list(self.system_pods)
        return [m for (ns, _), m in self.pods.items() if ns == namespace]

    def get_endpoints(self, name: str, namespace: str) -> dict:
        if name not in self.endpoints:
            raise KubectlError(["get", "endpoints", name],
                               f'Error from server (NotFound): endpoints "{name}" not found')
        ips = self.endpoints[name]
        return {"subsets": [{"addresses": [{"ip": ip} for ip in ips]}] if ips else []}

    def exec_in_pod(self, pod: str, namespace: str, argv: list[str], timeout: int | None = None) -> ExecResult:
        with self._lock:
            self.exec_calls.append((pod, namespace, list(argv)))
        if self.on_exec is not None:
            self.on_exec(pod, argv)
        if (namespace, pod) not in self.pods:
            return ExecResult("", "pod not found", error=f'pods "{pod}" not found')
        command = " ".join(argv)
        if "netstat" in command and pod in self.no_ack:
            return ExecResult("", "", error=EXEC_FAILURE)
        if any(pattern in command for pattern in self.failing):
            return ExecResult("", EXEC_FAILURE, error=EXEC_FAILURE)
        return ExecResult("", "")

    # -- helpers for assertions --

    def probe_calls(self) -> list[tuple[str, list[str]]]:
        return [
            (pod, argv) for pod, _, argv in self.exec_calls
            if argv[0] in ("nc", "nslookup")
        ]


@pytest.fixture
def fast_cfg() -> NetTestConfig:
    """Config with short timeouts so failure paths finish quickly."""
    return NetTestConfig(
        namespace="probe-test",
        pod_ready_timeout=0.3,
        pod_ready_poll_interval=0.01,
        cleanup_timeout=0.2,
        cleanup_poll_interval=0.01,
        listener_ack_timeout=0.1,
        listener_ack_poll_interval=0.01,
    )


@pytest.fixture
def three_node_cluster() -> FakeCluster:
    nodes = [
        make_node("node-a", "192.168.1.10"),
        make_node("node-b", "192.168.1.11"),
        make_node("node-c", "192.168.1.12"),
    ]
    return FakeCluster(nodes, endpoints={"kube-dns": ["10.96.0.10", "10.96.0.11"]})
