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

"""Exception hierarchy for the network test pipeline.

Probe failures are never raised; they are recorded as failed results.
"""

from __future__ import annotations

from cluster_probe.constants import ERR_ALREADY_EXISTS, ERR_NOT_FOUND


class NetTestError(RuntimeError):
    """Base class for fatal network test errors."""


class SetupError(NetTestError):
    """Namespace or pod creation failed for a reason other than AlreadyExists."""


class NoReadyNodesError(SetupError):
    """The cluster reports no node whose Ready condition is True."""

    def __init__(self) -> None:
        super().__init__("no ready nodes found in cluster")


class ReadinessTimeoutError(SetupError):
    """A provisioned pod did not become ready within the timeout.

    Attributes:
        pod_name: Name of the pod that never became ready.
        timeout: Timeout in seconds that elapsed.
    """

    def __init__(self, pod_name: str, timeout: float) -> None:
        self.pod_name = pod_name
        self.timeout = timeout
        super().__init__(f"pod {pod_name} failed to become ready within {timeout:g}s")


class RunCancelledError(NetTestError):
    """The run was cancelled before it could complete."""


class DiscoveryWarning(Exception):
    """Cluster DNS discovery found no addresses. Non-fatal."""


class KubectlError(RuntimeError):
    """A kubectl invocation failed.

    Attributes:
        args: kubectl arguments that were run.
        stderr: Captured standard error.
    """

    def __init__(self, args: list[str], stderr: str) -> None:
        self.kubectl_args = list(args)
        self.stderr = stderr.strip()
        verb = " ".join(args[:2]) if args else "kubectl"
        super().__init__(f"kubectl {verb} failed: {self.stderr[:200]}")

    @property
    def already_exists(self) -> bool:
        return ERR_ALREADY_EXISTS in self.stderr

    @property
    def not_found(self) -> bool:
        return ERR_NOT_FOUND in self.stderr
