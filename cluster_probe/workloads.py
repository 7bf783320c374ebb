# /*
# Copyright 2026 The cluster-probe Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Diagnostic namespace, workload pods, readiness, and in-pod listeners."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

from rich.panel import Panel
from tenacity import (
    RetryError,
    retry,
    retry_if_result,
    stop_after_delay,
    stop_when_event_set,
    wait_fixed,
)

from cluster_probe import console, logger
from cluster_probe.config import NetTestConfig
from cluster_probe.constants import (
    APP_COMPONENT,
    APP_NAME,
    LABEL_APP_COMPONENT,
    LABEL_APP_NAME,
    LABEL_PROBE_NODE,
    POD_CONTAINER_NAME,
    POD_PHASE_RUNNING,
    POD_SLEEP_COMMAND,
)
from cluster_probe.errors import KubectlError, ReadinessTimeoutError, RunCancelledError, SetupError
from cluster_probe.kube import KubeClient
from cluster_probe.models import ClusterNode, PodState, WorkloadPod
from cluster_probe.reclaim import reclaim_namespace
from cluster_probe.utils import cancellable_sleep, pod_name_for_node


def _labels(**extra: str) -> dict[str, str]:
    return {LABEL_APP_NAME: APP_NAME, LABEL_APP_COMPONENT: APP_COMPONENT, **extra}


# ============================================================================
# Namespace
# ============================================================================

def namespace_manifest(namespace: str) -> dict:
    """Build the Namespace manifest for the diagnostic workspace."""
    return {
        "apiVersion": "v1",
        "kind": "Namespace",
        "metadata": {"name": namespace, "labels": _labels()},
    }


def is_probe_namespace(namespace_obj: dict) -> bool:
    """Whether a namespace object carries the cluster-probe ownership label."""
    labels = namespace_obj.get("metadata", {}).get("labels") or {}
    return labels.get(LABEL_APP_NAME) == APP_NAME


def ensure_namespace(client: KubeClient, namespace: str) -> None:
    """Create the namespace; an existing cluster-probe namespace counts as success.

    Raises:
        SetupError: If creation fails, or the existing namespace is not ours.
    """
    try:
        client.create(namespace_manifest(namespace))
        console.print(f"[green]\u2705 Namespace '{namespace}' created[/green]")
    except KubectlError as err:
        if not err.already_exists:
            raise SetupError(f"failed to create namespace {namespace}: {err}") from err
        try:
            existing = client.get_namespace(namespace)
        except KubectlError as get_err:
            raise SetupError(f"could not verify existing namespace {namespace}: {get_err}") from get_err
        if existing is not None and not is_probe_namespace(existing):
            raise SetupError(f"namespace {namespace} exists and is not managed by {APP_NAME}") from err
        console.print(f"[yellow]   Namespace '{namespace}' already exists[/yellow]")


def prepare_namespace(client: KubeClient, namespace: str, cfg: NetTestConfig) -> None:
    """Remove a leftover namespace of the same name, then create it fresh.

    Args:
        client: Cluster API client.
        namespace: Diagnostic namespace for this run.
        cfg: Network test configuration (cleanup bounds).

    Raises:
        SetupError: If the namespace exists without the cluster-probe label,
            a leftover is still terminating, or creation fails.
    """
    console.print(Panel.fit(f"Preparing namespace {namespace}", style="bold blue"))
    try:
        leftover = client.get_namespace(namespace)
    except KubectlError as err:
        logger.warning("Could not check for leftover namespace %s: %s", namespace, err)
        leftover = None
    if leftover is not None:
        if not is_probe_namespace(leftover):
            raise SetupError(
                f"namespace {namespace} exists and is not managed by {APP_NAME}; refusing to reuse it")
        console.print(f"[yellow]   Removing leftover namespace '{namespace}' from a previous run[/yellow]")
        if not reclaim_namespace(client, namespace, cfg.cleanup_timeout, cfg.cleanup_poll_interval):
            raise SetupError(f"leftover namespace {namespace} is still terminating")
    ensure_namespace(client, namespace)


# ============================================================================
# Workload pods
# ============================================================================

def pod_manifest(pod_name: str, node_name: str, namespace: str, image: str) -> dict:
    """Build the Pod manifest for a diagnostic pod pinned to one node.

    The pod bypasses the scheduler via ``spec.nodeName`` and tolerates every
    taint. It sleeps for an hour and is never restarted.

    Args:
        pod_name: Deterministic pod name.
        node_name: Node to pin the pod to.
        namespace: Diagnostic namespace.
        image: Container image.

    Returns:
        Kubernetes Pod resource as a dictionary.
    """
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": pod_name,
            "namespace": namespace,
            "labels": _labels(**{LABEL_PROBE_NODE: node_name}),
        },
        "spec": {
            "nodeName": node_name,
            "restartPolicy": "Never",
            "containers": [
                {"name": POD_CONTAINER_NAME, "image": image, "command": list(POD_SLEEP_COMMAND)},
            ],
            "tolerations": [{"operator": "Exists"}],
        },
    }


def create_test_pods(
    client: KubeClient,
    nodes: list[ClusterNode],
    namespace: str,
    cfg: NetTestConfig,
    cancel: threading.Event | None = None,
) -> list[WorkloadPod]:
    """Create one diagnostic pod per ready node, one node at a time.

    An existing pod with the derived name is reused.

    Args:
        client: Cluster API client.
        nodes: Ready nodes.
        namespace: Diagnostic namespace.
        cfg: Network test configuration (image).
        cancel: Event that aborts provisioning when set.

    Returns:
        The provisioned pods, in node order.

    Raises:
        SetupError: If any pod cannot be created.
        RunCancelledError: If the run was cancelled.
    """
    console.print(Panel.fit(f"Creating test pods on {len(nodes)} nodes", style="bold blue"))
    pods: list[WorkloadPod] = []
    for node in nodes:
        if cancel is not None and cancel.is_set():
            raise RunCancelledError("cancelled during pod provisioning")
        pod = WorkloadPod(name=pod_name_for_node(node.name), node_name=node.name)
        clash = next((p for p in pods if p.name == pod.name), None)
        if clash is not None:
            raise SetupError(f"nodes {clash.node_name} and {node.name} map to the same pod name {pod.name}")
        logger.info("Creating test pod %s on node %s", pod.name, node.name)
        try:
            client.create(pod_manifest(pod.name, node.name, namespace, cfg.image))
        except KubectlError as err:
            if not err.already_exists:
                pod.state = PodState.CREATE_FAILED
                raise SetupError(f"failed to create pod on node {node.name}: {err}") from err
            logger.info("Pod %s already exists, reusing", pod.name)
        pods.append(pod)
    console.print(f"[green]\u2705 Created {len(pods)} test pods[/green]")
    return pods


def _pod_ready_ip(pod: dict) -> str | None:
    status = pod.get("status", {})
    if status.get("phase") != POD_PHASE_RUNNING:
        return None
    if not all(cs.get("ready") for cs in status.get("containerStatuses") or []):
        return None
    return status.get("podIP") or None


def wait_for_pods_ready(
    client: KubeClient,
    pods: list[WorkloadPod],
    namespace: str,
    cfg: NetTestConfig,
    cancel: threading.Event | None = None,
) -> None:
    """Block until every pod is Running with all containers ready.

    Pods are awaited one at a time against a single shared deadline. Each
    ready pod gets its ``pod_ip`` recorded.

    Args:
        client: Cluster API client.
        pods: Pods to wait for, updated in place.
        namespace: Diagnostic namespace.
        cfg: Network test configuration (timeout and poll interval).
        cancel: Event that aborts polling when set.

    Raises:
        ReadinessTimeoutError: Naming the first pod that did not become ready.
        RunCancelledError: If the run was cancelled.
    """
    cancel = cancel or threading.Event()
    console.print(Panel.fit("Waiting for test pods to be ready", style="bold blue"))
    deadline = time.monotonic() + cfg.pod_ready_timeout

    for pod in pods:
        pod.state = PodState.PENDING

        @retry(
            stop=stop_after_delay(max(deadline - time.monotonic(), 0)) | stop_when_event_set(cancel),
            wait=wait_fixed(cfg.pod_ready_poll_interval),
            retry=retry_if_result(lambda ip: ip is None),
            sleep=cancellable_sleep(cancel),
        )
        def _poll() -> str | None:
            try:
                return _pod_ready_ip(client.get_pod(pod.name, namespace))
            except KubectlError as err:
                logger.debug("Pod %s not readable yet: %s", pod.name, err)
                return None

        try:
            pod.pod_ip = _poll()
        except RetryError:
            if cancel.is_set():
                raise RunCancelledError(f"cancelled while waiting for pod {pod.name}")
            pod.state = PodState.TIMED_OUT
            raise ReadinessTimeoutError(pod.name, cfg.pod_ready_timeout)
        pod.state = PodState.READY
        console.print(f"[green]\u2713 {pod.name} ready ({pod.pod_ip})[/green]")


# ============================================================================
# Listeners
# ============================================================================

def listener_command(port: int) -> list[str]:
    """Command that keeps a TCP listener re-armed in the background."""
    loop = f"while true; do nc -l -p {port} >/dev/null 2>&1; done"
    return ["sh", "-c", f"({loop}) >/dev/null 2>&1 &"]


def listener_ack_command(port: int) -> list[str]:
    """Command that succeeds once something listens on the port."""
    return ["sh", "-c", f"netstat -ltn 2>/dev/null | grep -q ':{port} '"]


def _await_listener(
    client: KubeClient,
    pod: WorkloadPod,
    namespace: str,
    cfg: NetTestConfig,
    cancel: threading.Event,
) -> bool:
    @retry(
        stop=stop_after_delay(cfg.listener_ack_timeout) | stop_when_event_set(cancel),
        wait=wait_fixed(cfg.listener_ack_poll_interval),
        retry=retry_if_result(lambda ok: not ok),
        sleep=cancellable_sleep(cancel),
    )
    def _poll() -> bool:
        return client.exec_in_pod(pod.name, namespace, listener_ack_command(cfg.listen_port)).ok

    try:
        return _poll()
    except RetryError:
        return False


def start_listeners(
    client: KubeClient,
    pods: list[WorkloadPod],
    namespace: str,
    cfg: NetTestConfig,
    cancel: threading.Event | None = None,
) -> list[str]:
    """Start a background listener in every pod and wait for each to bind.

    A listener that never acknowledges is not fatal: pod-to-pod probes
    against that pod will simply record failures.

    Args:
        client: Cluster API client.
        pods: Ready pods.
        namespace: Diagnostic namespace.
        cfg: Network test configuration (listen port, acknowledgment bounds).
        cancel: Event that aborts the wait when set.

    Returns:
        Warning messages for pods whose listener did not acknowledge.

    Raises:
        RunCancelledError: If the run was cancelled.
    """
    cancel = cancel or threading.Event()
    console.print(Panel.fit(f"Starting listeners on port {cfg.listen_port}", style="bold blue"))
    for pod in pods:
        if cancel.is_set():
            raise RunCancelledError("cancelled while starting listeners")
        result = client.exec_in_pod(pod.name, namespace, listener_command(cfg.listen_port))
        if not result.ok:
            logger.debug("Listener start in %s reported: %s", pod.name, result.error)

    warnings: list[str] = []
    with ThreadPoolExecutor(max_workers=max(len(pods), 1)) as executor:
        futures = {
            executor.submit(_await_listener, client, pod, namespace, cfg, cancel): pod
            for pod in pods
        }
        for future in as_completed(futures):
            pod = futures[future]
            if future.result():
                logger.info("Listener ready in %s", pod.name)
            else:
                msg = f"listener on {pod.name} ({pod.node_name}) did not acknowledge port {cfg.listen_port}"
                logger.warning(msg)
                warnings.append(msg)
    if cancel.is_set():
        raise RunCancelledError("cancelled while waiting for listeners")
    if not warnings:
        console.print(f"[green]\u2705 Listeners ready on {len(pods)} pods[/green]")
    return sorted(warnings)
