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

"""Ready-node selection, node internal IPs, and cluster DNS endpoint discovery."""

from __future__ import annotations

import threading

from cluster_probe import console, logger
from cluster_probe.constants import (
    DNS_POD_NAME_PATTERNS,
    DNS_SERVICE_NAMES,
    NODE_ADDRESS_INTERNAL_IP,
    NODE_CONDITION_READY,
    NS_KUBE_SYSTEM,
    POD_PHASE_RUNNING,
)
from cluster_probe.errors import DiscoveryWarning, KubectlError, NoReadyNodesError, RunCancelledError
from cluster_probe.kube import KubeClient
from cluster_probe.models import ClusterNode


def _is_ready(node: dict) -> bool:
    for cond in node.get("status", {}).get("conditions") or []:
        if cond.get("type") == NODE_CONDITION_READY:
            return cond.get("status") == "True"
    return False


def _internal_ip(node: dict) -> str | None:
    for addr in node.get("status", {}).get("addresses") or []:
        if addr.get("type") == NODE_ADDRESS_INTERNAL_IP and addr.get("address"):
            return addr["address"]
    return None


def parse_node(node: dict) -> ClusterNode:
    """Build a ClusterNode from a Node object.

    Args:
        node: Node object as returned by ``kubectl get nodes -o json``.

    Returns:
        The parsed node.
    """
    return ClusterNode(
        name=node["metadata"]["name"],
        internal_ip=_internal_ip(node),
        ready=_is_ready(node),
    )


def filter_ready_nodes(items: list[dict]) -> list[ClusterNode]:
    """Keep only nodes whose Ready condition is explicitly True.

    Nodes reporting no Ready condition at all are excluded.

    Args:
        items: Node objects from the API.

    Returns:
        Ready nodes in API order.
    """
    return [node for node in map(parse_node, items) if node.ready]


def discover_ready_nodes(client: KubeClient, cancel: threading.Event | None = None) -> list[ClusterNode]:
    """List nodes and return the ready ones.

    Raises:
        NoReadyNodesError: If no node is ready.
        RunCancelledError: If the run was cancelled.
    """
    if cancel is not None and cancel.is_set():
        raise RunCancelledError("cancelled before node discovery")
    nodes = client.list_nodes()
    ready = filter_ready_nodes(nodes)
    logger.info("Found %d ready nodes (of %d)", len(ready), len(nodes))
    if not ready:
        raise NoReadyNodesError()
    skipped = len(nodes) - len(ready)
    if skipped:
        console.print(f"[yellow]\u26a0\ufe0f  Skipping {skipped} node(s) that are not Ready[/yellow]")
    return ready


def node_internal_ips(nodes: list[ClusterNode]) -> dict[str, str]:
    """Map node name to internal IP, omitting nodes without one."""
    return {node.name: node.internal_ip for node in nodes if node.internal_ip}


def _endpoint_addresses(endpoints: dict) -> list[str]:
    return [
        addr["ip"]
        for subset in endpoints.get("subsets") or []
        for addr in subset.get("addresses") or []
        if addr.get("ip")
    ]


def _is_dns_pod(name: str) -> bool:
    return any(pattern in name for pattern in DNS_POD_NAME_PATTERNS)


def discover_dns_endpoints(client: KubeClient, namespace: str = NS_KUBE_SYSTEM) -> list[str]:
    """Find cluster DNS addresses.

    Tries the well-known DNS service names in priority order and returns the
    addresses of the first endpoints object that has any. Falls back to
    running system pods whose name looks like a DNS component.

    Args:
        client: Cluster API client.
        namespace: System namespace that hosts cluster DNS.

    Returns:
        DNS endpoint addresses.

    Raises:
        DiscoveryWarning: If neither strategy finds an address.
    """
    for service in DNS_SERVICE_NAMES:
        try:
            endpoints = client.get_endpoints(service, namespace)
        except KubectlError as err:
            logger.debug("No endpoints for %s/%s: %s", namespace, service, err)
            continue
        addresses = _endpoint_addresses(endpoints)
        if addresses:
            logger.info("Found %d CoreDNS endpoints via %s", len(addresses), service)
            return addresses

    try:
        pods = client.list_pods(namespace)
    except KubectlError as err:
        raise DiscoveryWarning(f"failed to list {namespace} pods: {err}") from err

    addresses = [
        pod["status"]["podIP"]
        for pod in pods
        if _is_dns_pod(pod.get("metadata", {}).get("name", ""))
        and pod.get("status", {}).get("phase") == POD_PHASE_RUNNING
        and pod.get("status", {}).get("podIP")
    ]
    if not addresses:
        raise DiscoveryWarning("no CoreDNS pods found")
    logger.info("Found %d CoreDNS pods by name pattern", len(addresses))
    return addresses
