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

"""Constants, defaults loading, and default_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_defaults() -> dict:
    """Load static defaults (images, DNS service names) from defaults.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    defaults_file = Path(__file__).resolve().parent / "defaults.yaml"
    with open(defaults_file) as f:
        return yaml.safe_load(f)


DEFAULTS = load_defaults()


def default_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEFAULTS dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEFAULTS
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


# -- Namespaces --
NS_KUBE_SYSTEM = default_value("cluster_dns", "namespace", default="kube-system")
DEFAULT_NAMESPACE_PREFIX = "cluster-probe-nettest"

# -- Labels --
LABEL_APP_NAME = "app.kubernetes.io/name"
LABEL_APP_COMPONENT = "app.kubernetes.io/component"
LABEL_PROBE_NODE = "cluster-probe/node"
APP_NAME = "cluster-probe"
APP_COMPONENT = "network-test"

# -- Workload pods --
POD_NAME_PREFIX = "nettest-"
POD_CONTAINER_NAME = "nettest"
POD_NAME_MAX_SANITIZED_LEN = 50
POD_NAME_DIGEST_LEN = 6
POD_SLEEP_COMMAND = ["sleep", "3600"]
DEFAULT_IMAGE = default_value("images", "nettest", default="busybox:1.36")

# -- Node status --
NODE_CONDITION_READY = "Ready"
NODE_ADDRESS_INTERNAL_IP = "InternalIP"
POD_PHASE_RUNNING = "Running"

# -- Cluster DNS discovery --
DNS_SERVICE_NAMES: tuple[str, ...] = tuple(
    default_value("cluster_dns", "services", default=["kube-dns", "coredns", "rke2-coredns-rke2-coredns"])
)
DNS_POD_NAME_PATTERNS: tuple[str, ...] = tuple(
    default_value("cluster_dns", "pod_name_patterns", default=["coredns", "kube-dns"])
)

# -- Ports --
DEFAULT_DNS_PORT = 53
DEFAULT_KUBELET_PORT = 10250
DEFAULT_LISTEN_PORT = 8080

# -- External targets --
DEFAULT_EXTERNAL_DNS_HOST = default_value("external", "dns_host", default="github.com")
DEFAULT_EXTERNAL_TCP_HOST = default_value("external", "tcp_host", default="github.com")
DEFAULT_EXTERNAL_TCP_PORT = default_value("external", "tcp_port", default=443)

# -- Timeouts & polling (seconds) --
DEFAULT_CONNECT_TIMEOUT = 3
DEFAULT_EXTERNAL_CONNECT_TIMEOUT = 5
DEFAULT_POD_READY_TIMEOUT = 90
DEFAULT_POD_READY_POLL_INTERVAL = 2
DEFAULT_CLEANUP_TIMEOUT = 30
DEFAULT_CLEANUP_POLL_INTERVAL = 1
DEFAULT_LISTENER_ACK_TIMEOUT = 10
DEFAULT_LISTENER_ACK_POLL_INTERVAL = 1
DEFAULT_KUBECTL_TIMEOUT = 30

# -- kubectl error markers --
ERR_ALREADY_EXISTS = "AlreadyExists"
ERR_NOT_FOUND = "NotFound"

# -- Process exit codes --
EXIT_OK = 0
EXIT_WARNING = 1
EXIT_CRITICAL = 2
EXIT_NO_CONNECT = 3
EXIT_INTERNAL_ERROR = 4
EXIT_INTERRUPTED = 130
