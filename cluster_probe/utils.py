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

"""Utility functions for kubectl, command checks, and naming."""

from __future__ import annotations

import hashlib
import re
import subprocess
import threading
from collections.abc import Callable

import sh

from cluster_probe.constants import POD_NAME_DIGEST_LEN, POD_NAME_MAX_SANITIZED_LEN, POD_NAME_PREFIX

_INVALID_NAME_CHARS = re.compile(r"[^a-z0-9-]")


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        RuntimeError: If the command is not found.
    """
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise RuntimeError(f"Required command '{cmd}' not found. Please install it first.") from err


def run_kubectl(args: list[str], timeout: int = 30, input: str | None = None) -> tuple[bool, str, str]:
    """Run a kubectl command via subprocess and return (success, stdout, stderr).

    Uses subprocess instead of sh because callers inspect stderr separately
    (AlreadyExists / NotFound markers, exec failure text).

    Args:
        args: kubectl arguments (e.g. ``["get", "pods", "-n", "default"]``).
        timeout: Maximum seconds to wait for the command to complete.
        input: Text fed to kubectl's stdin (for ``-f -``), or None.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    try:
        result = subprocess.run(
            ["kubectl", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            input=input,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)


def sanitize_node_name(name: str) -> str:
    """Map a node name onto a string usable inside a pod name.

    Lowercases and replaces anything outside ``[a-z0-9-]`` with ``-``. The
    result is truncated to a bounded length without a trailing ``-``.

    Args:
        name: Kubernetes node name.

    Returns:
        The sanitized name.
    """
    return _INVALID_NAME_CHARS.sub("-", name.lower())[:POD_NAME_MAX_SANITIZED_LEN].rstrip("-")


def pod_name_for_node(node_name: str) -> str:
    """Return the deterministic workload pod name for a node.

    A node name that sanitizing altered gets a short digest of the original
    appended, so ``node.a`` and ``node-a`` never share a pod.
    """
    sanitized = sanitize_node_name(node_name)
    if sanitized == node_name:
        return POD_NAME_PREFIX + sanitized
    digest = hashlib.sha256(node_name.encode()).hexdigest()[:POD_NAME_DIGEST_LEN]
    stem = sanitized[:POD_NAME_MAX_SANITIZED_LEN - POD_NAME_DIGEST_LEN - 1].rstrip("-")
    return POD_NAME_PREFIX + "-".join(part for part in (stem, digest) if part)


def cancellable_sleep(cancel: threading.Event) -> Callable[[float], None]:
    """Return a tenacity ``sleep`` function that wakes early when cancelled.

    Args:
        cancel: Event that aborts the wait when set.

    Returns:
        Callable accepting a number of seconds.
    """
    def _sleep(seconds: float) -> None:
        cancel.wait(seconds)
    return _sleep
