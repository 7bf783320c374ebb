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

"""Result aggregation: per-type grouping, tallies, and the renderer payload."""

from __future__ import annotations

from cluster_probe.models import (
    TEST_TYPE_ORDER,
    ProbeResult,
    Report,
    TestSummary,
    TestType,
    TypeTally,
)

REMEDIATIONS: dict[TestType, str] = {
    TestType.COREDNS: (
        "Check CoreDNS pod status and network policies: "
        "kubectl get pods -n kube-system -l k8s-app=kube-dns"
    ),
    TestType.DNS: "Verify DNS resolution works and external DNS is reachable",
    TestType.EXTERNAL_TCP: "Check firewall rules and network egress policies for external connectivity",
    TestType.KUBELET: "Verify node-to-node connectivity and firewall rules allow port 10250",
    TestType.POD_TO_POD: "Check CNI plugin status and network policies between namespaces",
}


def group_by_type(results: list[ProbeResult]) -> dict[TestType, list[ProbeResult]]:
    """Group results by test type in display order, omitting empty types."""
    grouped: dict[TestType, list[ProbeResult]] = {t: [] for t in TEST_TYPE_ORDER}
    for result in results:
        grouped[result.test_type].append(result)
    return {t: items for t, items in grouped.items() if items}


def summarize(results: list[ProbeResult]) -> TestSummary:
    return TestSummary.from_results(results)


def type_tallies(results: list[ProbeResult]) -> list[TypeTally]:
    """Per-type pass/fail counts in display order."""
    tallies = []
    for test_type, items in group_by_type(results).items():
        passed = sum(1 for r in items if r.success)
        tallies.append(TypeTally(test_type, passed=passed, failed=len(items) - passed))
    return tallies


def to_consumer_payload(report: Report) -> dict:
    """Build the structure handed to the report renderer.

    Args:
        report: Completed network test report.

    Returns:
        JSON-serializable dictionary with tallies, failures, and warnings.
    """
    summary = report.summary
    return {
        "timestamp": report.timestamp.isoformat(),
        "namespace": report.namespace,
        "node_count": report.node_count,
        "pod_count": report.pod_count,
        "summary": {"total": summary.total, "passed": summary.passed, "failed": summary.failed},
        "tallies": [
            {
                "test_type": tally.test_type.value,
                "name": tally.display_name,
                "passed": tally.passed,
                "failed": tally.failed,
            }
            for tally in type_tallies(report.results)
        ],
        "failures": [
            {
                "test_type": r.test_type.value,
                "source_node": r.source_node,
                "source_pod": r.source_pod,
                "target": r.target,
                "error": r.error,
                "remediation": REMEDIATIONS[r.test_type],
            }
            for r in report.results
            if not r.success
        ],
        "warnings": list(report.warnings),
    }
