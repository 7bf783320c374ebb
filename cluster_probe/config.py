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

"""Network test configuration and display."""

from __future__ import annotations

import uuid

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from cluster_probe import console
from cluster_probe.constants import (
    DEFAULT_CLEANUP_POLL_INTERVAL,
    DEFAULT_CLEANUP_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_DNS_PORT,
    DEFAULT_EXTERNAL_CONNECT_TIMEOUT,
    DEFAULT_EXTERNAL_DNS_HOST,
    DEFAULT_EXTERNAL_TCP_HOST,
    DEFAULT_EXTERNAL_TCP_PORT,
    DEFAULT_IMAGE,
    DEFAULT_KUBECTL_TIMEOUT,
    DEFAULT_KUBELET_PORT,
    DEFAULT_LISTEN_PORT,
    DEFAULT_LISTENER_ACK_POLL_INTERVAL,
    DEFAULT_LISTENER_ACK_TIMEOUT,
    DEFAULT_NAMESPACE_PREFIX,
    DEFAULT_POD_READY_POLL_INTERVAL,
    DEFAULT_POD_READY_TIMEOUT,
)

_DNS_LABEL = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"


def new_run_id() -> str:
    """Return a short random identifier for one network test run."""
    return uuid.uuid4().hex[:8]


class NetTestConfig(BaseSettings):
    """Network test configuration, auto-loaded from PROBE_* env vars.

    Attributes:
        namespace: Pinned diagnostic namespace, or None to generate one per run.
        namespace_prefix: Prefix for generated namespace names.
        image: Container image for workload pods (needs sh, nc, nslookup, netstat).
        listen_port: Port the in-pod listener binds for pod-to-pod probes.
        kubelet_port: Node-agent port probed on every other node.
        dns_port: Cluster DNS port probed on every DNS endpoint.
        external_dns_host: Hostname resolved by the external DNS probe.
        external_tcp_host: Host dialled by the external egress probe.
        external_tcp_port: Port dialled by the external egress probe.
        connect_timeout: In-pod connect timeout for cluster-internal probes.
        external_connect_timeout: In-pod connect timeout for the egress probe.
        pod_ready_timeout: Overall bound on waiting for all pods to be ready.
        pod_ready_poll_interval: Seconds between pod readiness polls.
        cleanup_timeout: Bound on waiting for namespace deletion.
        cleanup_poll_interval: Seconds between namespace deletion polls.
        listener_ack_timeout: Bound on waiting for each listener to bind.
        kubectl_timeout: Maximum seconds for any single kubectl call.
        kubeconfig: Path passed as ``--kubeconfig``, or None for kubectl's default.
        context: kubeconfig context passed as ``--context``, or None.
        verbose: Whether to print per-probe progress.
    """

    model_config = SettingsConfigDict(env_prefix="PROBE_", extra="ignore")

    namespace: str | None = Field(default=None, max_length=63, pattern=_DNS_LABEL)
    namespace_prefix: str = Field(default=DEFAULT_NAMESPACE_PREFIX, max_length=50, pattern=_DNS_LABEL)
    image: str = DEFAULT_IMAGE
    listen_port: int = Field(default=DEFAULT_LISTEN_PORT, ge=1, le=65535)
    kubelet_port: int = Field(default=DEFAULT_KUBELET_PORT, ge=1, le=65535)
    dns_port: int = Field(default=DEFAULT_DNS_PORT, ge=1, le=65535)
    external_dns_host: str = DEFAULT_EXTERNAL_DNS_HOST
    external_tcp_host: str = DEFAULT_EXTERNAL_TCP_HOST
    external_tcp_port: int = Field(default=DEFAULT_EXTERNAL_TCP_PORT, ge=1, le=65535)
    connect_timeout: int = Field(default=DEFAULT_CONNECT_TIMEOUT, ge=1, le=60)
    external_connect_timeout: int = Field(default=DEFAULT_EXTERNAL_CONNECT_TIMEOUT, ge=1, le=60)
    pod_ready_timeout: float = Field(default=DEFAULT_POD_READY_TIMEOUT, gt=0)
    pod_ready_poll_interval: float = Field(default=DEFAULT_POD_READY_POLL_INTERVAL, ge=0)
    cleanup_timeout: float = Field(default=DEFAULT_CLEANUP_TIMEOUT, gt=0)
    cleanup_poll_interval: float = Field(default=DEFAULT_CLEANUP_POLL_INTERVAL, ge=0)
    listener_ack_timeout: float = Field(default=DEFAULT_LISTENER_ACK_TIMEOUT, ge=0)
    listener_ack_poll_interval: float = Field(default=DEFAULT_LISTENER_ACK_POLL_INTERVAL, ge=0)
    kubectl_timeout: int = Field(default=DEFAULT_KUBECTL_TIMEOUT, ge=1)
    kubeconfig: str | None = None
    context: str | None = None
    verbose: bool = False

    def resolve_namespace(self, run_id: str | None = None) -> str:
        """Return the diagnostic namespace for one run.

        Args:
            run_id: Run identifier used as suffix, or None to generate one.

        Returns:
            The pinned namespace if set, otherwise ``<prefix>-<run_id>``.
        """
        if self.namespace:
            return self.namespace
        return f"{self.namespace_prefix}-{run_id or new_run_id()}"


def resolve_config(**overrides) -> NetTestConfig:
    """Merge CLI overrides onto env/default config.

    Resolution priority: CLI arguments > PROBE_* environment variables > defaults.
    Overrides whose value is None are ignored.

    Returns:
        The resolved configuration.
    """
    cfg = NetTestConfig()
    update = {key: value for key, value in overrides.items() if value is not None}
    if update:
        cfg = cfg.model_copy(update=update)
    return cfg


def display_config(cfg: NetTestConfig, namespace: str) -> None:
    """Print the configuration relevant to a network test run.

    Args:
        cfg: Resolved network test configuration.
        namespace: Namespace chosen for this run.
    """
    console.print(Panel.fit("Configuration", style="bold blue"))
    console.print(f"  namespace         : {namespace}")
    console.print(f"  image             : {cfg.image}")
    console.print(f"  listen_port       : {cfg.listen_port}")
    console.print(f"  external targets  : {cfg.external_dns_host} (dns), "
                  f"{cfg.external_tcp_host}:{cfg.external_tcp_port} (tcp)")
    console.print(f"  pod_ready_timeout : {cfg.pod_ready_timeout:g}s")
    console.print(f"  cleanup_timeout   : {cfg.cleanup_timeout:g}s")
    if cfg.kubeconfig:
        console.print(f"  kubeconfig        : {cfg.kubeconfig}")
    if cfg.context:
        console.print(f"  context           : {cfg.context}")
