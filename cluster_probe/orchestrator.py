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

"""Network test pipeline: discover, provision, probe, aggregate, and always clean up."""

from __future__ import annotations

import signal
import threading
from contextlib import contextmanager
from datetime import datetime, timezone

from rich.panel import Panel

from cluster_probe import console, logger
from cluster_probe.config import NetTestConfig
from cluster_probe.errors import DiscoveryWarning, RunCancelledError
from cluster_probe.kube import KubeClient
from cluster_probe.models import PodState, Report, WorkloadPod
from cluster_probe.probes import ProbePlan, run_probe_matrix
from cluster_probe.reclaim import reclaim_namespace
from cluster_probe.topology import discover_dns_endpoints, discover_ready_nodes, node_internal_ips
from cluster_probe.workloads import (
    create_test_pods,
    prepare_namespace,
    start_listeners,
    wait_for_pods_ready,
)


def _check_cancelled(cancel: threading.Event, stage: str) -> None:
    if cancel.is_set():
        raise RunCancelledError(f"run cancelled before {stage}")


def _discover_dns(client: KubeClient, report: Report) -> list[str]:
    """Discover cluster DNS addresses, downgrading failure to a report warning."""
    try:
        return discover_dns_endpoints(client)
    except DiscoveryWarning as warn:
        msg = f"could not discover CoreDNS endpoints: {warn}"
        logger.warning(msg)
        console.print(f"[yellow]\u26a0\ufe0f  {msg}; skipping CoreDNS probes[/yellow]")
        report.warnings.append(msg)
        return []


@contextmanager
def _interrupts_ignored():
    """Ignore SIGINT for the duration of the block (main thread only)."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _teardown(client: KubeClient, namespace: str, pods: list[WorkloadPod], cfg: NetTestConfig) -> None:
    console.print(Panel.fit("Cleaning up", style="bold blue"))
    with _interrupts_ignored():
        deleted = reclaim_namespace(client, namespace, cfg.cleanup_timeout, cfg.cleanup_poll_interval)
    if deleted:
        for pod in pods:
            pod.state = PodState.DELETED
    else:
        console.print(f"[yellow]   Remove it later with: cluster-probe nettest cleanup {namespace}[/yellow]")


def run_network_test(
    client: KubeClient,
    cfg: NetTestConfig,
    cancel: threading.Event | None = None,
    namespace: str | None = None,
) -> Report:
    """Run the full network connectivity test against the cluster.

    Steps: ready-node discovery, namespace preparation, one pod per ready
    node, sequential readiness wait, DNS endpoint and node IP discovery,
    listener start-up, concurrent probe matrix. Once this run has created
    the diagnostic namespace, it is deleted on every exit path with its own
    deadline, even when ``cancel`` is set. A namespace the run did not
    create is never touched.

    Args:
        client: Cluster API client.
        cfg: Network test configuration.
        cancel: Event that aborts the run when set.
        namespace: Diagnostic namespace override; defaults to ``cfg.resolve_namespace()``.

    Returns:
        The completed report. Probe failures are reported, not raised.

    Raises:
        NoReadyNodesError: If the cluster has no ready node.
        SetupError: If the namespace or a pod cannot be created.
        ReadinessTimeoutError: If a pod does not become ready in time.
        RunCancelledError: If ``cancel`` was set during the run.
    """
    cancel = cancel or threading.Event()
    namespace = namespace or cfg.resolve_namespace()
    report = Report(timestamp=datetime.now(timezone.utc), namespace=namespace)
    pods: list[WorkloadPod] = []
    owned = False

    try:
        console.print(Panel.fit("Discovering cluster topology", style="bold blue"))
        nodes = discover_ready_nodes(client, cancel)
        report.node_count = len(nodes)
        console.print(f"[green]\u2705 Found {len(nodes)} ready nodes[/green]")

        _check_cancelled(cancel, "namespace preparation")
        prepare_namespace(client, namespace, cfg)
        owned = True

        pods.extend(create_test_pods(client, nodes, namespace, cfg, cancel))
        wait_for_pods_ready(client, pods, namespace, cfg, cancel)
        report.pod_count = len(pods)

        _check_cancelled(cancel, "DNS discovery")
        dns_ips = _discover_dns(client, report)
        node_ips = node_internal_ips(nodes)

        report.warnings.extend(start_listeners(client, pods, namespace, cfg, cancel))

        plan = ProbePlan(dns_ips=tuple(dns_ips), node_ips=node_ips, pods=tuple(pods))
        report.results = run_probe_matrix(client, plan, namespace, cfg, cancel)
        if cancel.is_set():
            raise RunCancelledError("run cancelled during probe execution")

        summary = report.summary
        logger.info("Network test finished: %d passed, %d failed", summary.passed, summary.failed)
        return report
    finally:
        if owned:
            _teardown(client, namespace, pods, cfg)
