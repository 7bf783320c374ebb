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

"""kubectl-backed access to the cluster control plane and in-pod exec."""

from __future__ import annotations

import json
from dataclasses import dataclass

import yaml

from cluster_probe import logger
from cluster_probe.constants import DEFAULT_KUBECTL_TIMEOUT
from cluster_probe.errors import KubectlError
from cluster_probe.utils import run_kubectl


@dataclass(frozen=True)
class ExecResult:
    """Outcome of a command run inside a pod.

    Attributes:
        stdout: Captured standard output.
        stderr: Captured standard error.
        error: None if the command exited 0, otherwise a description.
    """

    stdout: str
    stderr: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class KubeClient:
    """Thin wrapper over kubectl that returns parsed JSON objects.

    Every call is bounded by ``timeout`` seconds. Failures raise
    :class:`KubectlError`, except :meth:`exec_in_pod`, which reports them in
    its :class:`ExecResult`.
    """

    def __init__(
        self,
        kubeconfig: str | None = None,
        context: str | None = None,
        timeout: int = DEFAULT_KUBECTL_TIMEOUT,
    ) -> None:
        self.kubeconfig = kubeconfig
        self.context = context
        self.timeout = timeout

    def _global_args(self) -> list[str]:
        args: list[str] = []
        if self.kubeconfig:
            args += ["--kubeconfig", self.kubeconfig]
        if self.context:
            args += ["--context", self.context]
        return args

    def _run(self, args: list[str], input: str | None = None, timeout: int | None = None) -> str:
        full_args = [*self._global_args(), *args]
        logger.debug("kubectl %s", " ".join(args))
        ok, stdout, stderr = run_kubectl(full_args, timeout=timeout or self.timeout, input=input)
        if not ok:
            raise KubectlError(args, stderr)
        return stdout

    def _get_json(self, args: list[str]) -> dict:
        return json.loads(self._run([*args, "-o", "json"]) or "{}")

    # ------------------------------------------------------------------
    # Cluster
    # ------------------------------------------------------------------

    def server_version(self) -> str:
        """Return the API server's git version, verifying connectivity."""
        info = self._get_json(["version"])
        return info.get("serverVersion", {}).get("gitVersion", "unknown")

    def list_nodes(self) -> list[dict]:
        return self._get_json(["get", "nodes"]).get("items", [])

    # ------------------------------------------------------------------
    # Namespaces
    # ------------------------------------------------------------------

    def get_namespace(self, name: str) -> dict | None:
        """Return the namespace object, or None if it does not exist."""
        try:
            return self._get_json(["get", "namespace", name])
        except KubectlError as err:
            if err.not_found:
                return None
            raise

    def delete_namespace(self, name: str) -> None:
        """Request foreground (cascading) deletion without waiting for it."""
        self._run(["delete", "namespace", name, "--cascade=foreground", "--wait=false"])

    # ------------------------------------------------------------------
    # Generic objects
    # ------------------------------------------------------------------

    def create(self, manifest: dict) -> None:
        """Create an object from a manifest. Raises KubectlError on AlreadyExists."""
        self._run(["create", "-f", "-"], input=yaml.safe_dump(manifest, default_flow_style=False))

    # ------------------------------------------------------------------
    # Pods & endpoints
    # ------------------------------------------------------------------

    def get_pod(self, name: str, namespace: str) -> dict:
        return self._get_json(["get", "pod", name, "-n", namespace])

    def list_pods(self, namespace: str) -> list[dict]:
        return self._get_json(["get", "pods", "-n", namespace]).get("items", [])

    def get_endpoints(self, name: str, namespace: str) -> dict:
        return self._get_json(["get", "endpoints", name, "-n", namespace])

    def exec_in_pod(self, pod: str, namespace: str, argv: list[str], timeout: int | None = None) -> ExecResult:
        """Run ``argv`` inside the pod's first container.

        The command itself is responsible for enforcing any connect timeout;
        ``timeout`` only bounds the kubectl call.

        Args:
            pod: Pod name.
            namespace: Pod namespace.
            argv: Command and arguments to run.
            timeout: Bound on the kubectl call, or None for the client default.

        Returns:
            The captured output and an error description if the command failed.
        """
        args = [*self._global_args(), "exec", pod, "-n", namespace, "--", *argv]
        ok, stdout, stderr = run_kubectl(args, timeout=timeout or self.timeout)
        if ok:
            return ExecResult(stdout, stderr)
        return ExecResult(stdout, stderr, error=stderr.strip() or "command failed")
