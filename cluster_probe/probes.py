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

"""Probe matrix: connectivity checks run from inside every workload pod.

Each pod gets one task that runs its probes strictly in order. Finished
batches are handed to a single collector thread through a queue, so the
collector is the only owner of the result list.
"""

from __future__ import annotations

import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from rich.panel import Panel

from cluster_probe import console, logger
from cluster_probe.config import NetTestConfig
from cluster_probe.kube import KubeClient
from cluster_probe.models import ProbeResult, ProbeTarget, TestType, WorkloadPod


@dataclass(frozen=True)
class ProbePlan:
    """Targets shared by every pod's probe sequence.

    Attributes:
        dns_ips: Cluster DNS endpoint addresses (may be empty).
        node_ips: Node name to internal IP for kubelet probes.
        pods: All ready workload pods, for pod-to-pod probes.
    """

    dns_ips: tuple[str, ...]
    node_ips: dict[str, str]
    pods: tuple[WorkloadPod, ...]


def tcp_check_command(host: str, port: int, timeout: int) -> list[str]:
    return ["nc", "-z", "-w", str(timeout), host, str(port)]


def dns_lookup_command(host: str) -> list[str]:
    return ["nslookup", host]


# ============================================================================
# Target generation
# ============================================================================

def coredns_targets(dns_ips: tuple[str, ...], cfg: NetTestConfig) -> list[ProbeTarget]:
    return [ProbeTarget(TestType.COREDNS, ip, cfg.dns_port) for ip in dns_ips]


def kubelet_targets(source: WorkloadPod, node_ips: dict[str, str], cfg: NetTestConfig) -> list[ProbeTarget]:
    """Kubelet targets on every node except the source pod's own."""
    return [
        ProbeTarget(TestType.KUBELET, ip, cfg.kubelet_port, label=node)
        for node, ip in node_ips.items()
        if node != source.node_name
    ]


def pod_to_pod_targets(source: WorkloadPod, pods: tuple[WorkloadPod, ...], cfg: NetTestConfig) -> list[ProbeTarget]:
    """Listener targets on every workload pod except the source itself."""
    return [
        ProbeTarget(TestType.POD_TO_POD, pod.pod_ip, cfg.listen_port, label=pod.node_name)
        for pod in pods
        if pod.name != source.name and pod.pod_ip
    ]


# ============================================================================
# Probe execution
# ============================================================================

class ProbeRunner:
    """Runs the fixed probe sequence from one source pod.

    Probe failures become failed results; nothing here raises for a failed
    connection.
    """

    def __init__(
        self,
        client: KubeClient,
        namespace: str,
        cfg: NetTestConfig,
        cancel: threading.Event | None = None,
    ) -> None:
        self.client = client
        self.namespace = namespace
        self.cfg = cfg
        self.cancel = cancel or threading.Event()

    def _probe(self, pod: WorkloadPod, test_type: TestType, target: str, argv: list[str]) -> ProbeResult:
        try:
            outcome = self.client.exec_in_pod(pod.name, self.namespace, argv)
            error = outcome.error
        except Exception as exc:  # recorded, never raised
            error = str(exc) or exc.__class__.__name__
        result = ProbeResult(
            source_node=pod.node_name,
            source_pod=pod.name,
            test_type=test_type,
            target=target,
            success=error is None,
            error=error or "",
        )
        status = "[green]OK[/green]" if result.success else "[red]FAILED[/red]"
        if self.cfg.verbose or not result.success:
            console.print(f"  {pod.node_name}: {test_type.display_name} {target} - {status}")
        return result

    def _tcp(self, pod: WorkloadPod, target: ProbeTarget, timeout: int) -> ProbeResult:
        argv = tcp_check_command(target.address, target.port, timeout)
        return self._probe(pod, target.test_type, target.descriptor, argv)

    def run(self, pod: WorkloadPod, plan: ProbePlan) -> list[ProbeResult]:
        """Run cluster DNS, external DNS, egress, kubelet, and pod-to-pod probes in order.

        Args:
            pod: Source pod.
            plan: Shared targets.

        Returns:
            Results in execution order. Shorter than the full matrix only if
            the run was cancelled part way.
        """
        cfg = self.cfg
        steps = []
        steps += [(t, cfg.connect_timeout) for t in coredns_targets(plan.dns_ips, cfg)]
        steps.append((ProbeTarget(TestType.DNS, cfg.external_dns_host), None))
        steps.append((ProbeTarget(TestType.EXTERNAL_TCP, cfg.external_tcp_host, cfg.external_tcp_port),
                      cfg.external_connect_timeout))
        steps += [(t, cfg.connect_timeout) for t in kubelet_targets(pod, plan.node_ips, cfg)]
        steps += [(t, cfg.connect_timeout) for t in pod_to_pod_targets(pod, plan.pods, cfg)]

        results: list[ProbeResult] = []
        for target, timeout in steps:
            if self.cancel.is_set():
                logger.info("Probes from %s stopped: run cancelled", pod.name)
                break
            if target.test_type is TestType.DNS:
                argv = dns_lookup_command(target.address)
                results.append(self._probe(pod, target.test_type, target.descriptor, argv))
            else:
                results.append(self._tcp(pod, target, timeout))
        return results


# ============================================================================
# Fan-out and collection
# ============================================================================

_DONE = object()


def _collect(inbox: queue.Queue, expected: int, batches: dict[int, list[ProbeResult]]) -> None:
    """Drain per-pod batches, keyed by task index, until every task has reported."""
    remaining = expected
    while remaining:
        item = inbox.get()
        if item is _DONE:
            remaining -= 1
            continue
        index, batch = item
        batches[index] = batch


def run_probe_matrix(
    client: KubeClient,
    plan: ProbePlan,
    namespace: str,
    cfg: NetTestConfig,
    cancel: threading.Event | None = None,
) -> list[ProbeResult]:
    """Run every pod's probe sequence concurrently and collect the results.

    One task per pod, with no concurrency cap beyond the pod count.

    Args:
        client: Cluster API client.
        plan: Shared probe targets.
        namespace: Diagnostic namespace.
        cfg: Network test configuration.
        cancel: Event that stops further probes when set.

    Returns:
        All results, grouped by source pod in provisioning order.
    """
    pods = plan.pods
    if not pods:
        return []
    console.print(Panel.fit(f"Running network tests from {len(pods)} pods", style="bold blue"))
    runner = ProbeRunner(client, namespace, cfg, cancel)
    inbox: queue.Queue = queue.Queue()
    batches: dict[int, list[ProbeResult]] = {}
    collector = threading.Thread(target=_collect, args=(inbox, len(pods), batches), name="probe-collector")
    collector.start()

    def _task(index: int, pod: WorkloadPod) -> None:
        try:
            logger.info("Running tests from %s...", pod.node_name)
            with console.buffered() as buf:
                batch = runner.run(pod, plan)
            inbox.put((index, batch))
            output = buf.getvalue()
            if output:
                console.print(output, end="", markup=False, highlight=False)
        finally:
            inbox.put(_DONE)

    try:
        with ThreadPoolExecutor(max_workers=len(pods)) as executor:
            futures = [executor.submit(_task, index, pod) for index, pod in enumerate(pods)]
            for future in futures:
                future.result()
    finally:
        collector.join()

    return [result for index in range(len(pods)) for result in batches.get(index, [])]
