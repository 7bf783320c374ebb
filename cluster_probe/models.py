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

"""Data model for nodes, workload pods, probe targets, and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class TestType(str, Enum):
    """The five probe kinds, declared in display order."""

    __test__ = False

    COREDNS = "coredns"
    DNS = "dns"
    EXTERNAL_TCP = "external-tcp"
    KUBELET = "kubelet"
    POD_TO_POD = "pod-to-pod"

    @property
    def display_name(self) -> str:
        return TEST_TYPE_TITLES[self]


TEST_TYPE_TITLES: dict[TestType, str] = {
    TestType.COREDNS: "CoreDNS Connectivity",
    TestType.DNS: "DNS Resolution",
    TestType.EXTERNAL_TCP: "External TCP Connectivity",
    TestType.KUBELET: "Kubelet Connectivity",
    TestType.POD_TO_POD: "Pod-to-Pod Connectivity",
}

TEST_TYPE_ORDER: tuple[TestType, ...] = tuple(TestType)


class PodState(str, Enum):
    """Lifecycle of a diagnostic workload pod within one run."""

    CREATED = "created"
    CREATE_FAILED = "create-failed"
    PENDING = "pending"
    READY = "ready"
    TIMED_OUT = "timed-out"
    DELETED = "deleted"


@dataclass(frozen=True)
class ClusterNode:
    """A cluster node as observed at the start of a run.

    Attributes:
        name: Kubernetes node name.
        internal_ip: First InternalIP address, or None if the node has none.
        ready: Whether the Ready condition is explicitly True.
    """

    name: str
    internal_ip: str | None
    ready: bool


@dataclass
class WorkloadPod:
    """A diagnostic pod pinned to one node.

    Attributes:
        name: Pod name derived from the node name.
        node_name: Node the pod is pinned to.
        pod_ip: Pod IP, populated once the pod is ready.
        state: Current lifecycle state.
    """

    name: str
    node_name: str
    pod_ip: str | None = None
    state: PodState = PodState.CREATED


@dataclass(frozen=True)
class ProbeTarget:
    """An address a probe connects to, tagged with its test type."""

    test_type: TestType
    address: str
    port: int | None = None
    label: str | None = None

    @property
    def descriptor(self) -> str:
        text = self.address if self.port is None else f"{self.address}:{self.port}"
        if self.label:
            text = f"{text} ({self.label})"
        return text


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single probe. Immutable once recorded."""

    source_node: str
    source_pod: str
    test_type: TestType
    target: str
    success: bool
    error: str = ""


@dataclass(frozen=True)
class TestSummary:
    """Pass/fail counts derived from a result list."""

    __test__ = False

    total: int = 0
    passed: int = 0
    failed: int = 0

    @classmethod
    def from_results(cls, results: list[ProbeResult]) -> TestSummary:
        passed = sum(1 for r in results if r.success)
        return cls(total=len(results), passed=passed, failed=len(results) - passed)


@dataclass(frozen=True)
class TypeTally:
    """Pass/fail counts for one test type."""

    test_type: TestType
    passed: int
    failed: int

    @property
    def display_name(self) -> str:
        return self.test_type.display_name

    @property
    def total(self) -> int:
        return self.passed + self.failed


@dataclass
class Report:
    """Result of one network test run, handed to the renderer.

    Attributes:
        timestamp: UTC start time of the run.
        namespace: Diagnostic namespace used by the run.
        node_count: Number of ready nodes tested.
        pod_count: Number of workload pods that became ready.
        results: Probe results in pod provisioning order.
        warnings: Non-fatal issues (DNS discovery, listener acknowledgment).
    """

    timestamp: datetime
    namespace: str
    node_count: int = 0
    pod_count: int = 0
    results: list[ProbeResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def summary(self) -> TestSummary:
        return TestSummary.from_results(self.results)
