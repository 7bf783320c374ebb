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

"""Teardown of the diagnostic namespace and everything in it."""

from __future__ import annotations

from tenacity import RetryError, retry, retry_if_result, stop_after_delay, wait_fixed

from cluster_probe import console, logger
from cluster_probe.constants import DEFAULT_CLEANUP_POLL_INTERVAL, DEFAULT_CLEANUP_TIMEOUT
from cluster_probe.errors import KubectlError
from cluster_probe.kube import KubeClient


def reclaim_namespace(
    client: KubeClient,
    namespace: str,
    timeout: float = DEFAULT_CLEANUP_TIMEOUT,
    poll_interval: float = DEFAULT_CLEANUP_POLL_INTERVAL,
) -> bool:
    """Delete the namespace with foreground propagation and wait until it is gone.

    Failures are logged, never raised. Takes no cancellation token: teardown
    must complete after a cancelled run.

    Args:
        client: Cluster API client.
        namespace: Namespace to delete.
        timeout: Maximum seconds to wait for the namespace to disappear.
        poll_interval: Seconds between existence checks.

    Returns:
        True if the namespace is confirmed absent.
    """
    console.print(f"[yellow]\u2139\ufe0f  Deleting namespace '{namespace}'...[/yellow]")
    try:
        client.delete_namespace(namespace)
    except KubectlError as err:
        if err.not_found:
            console.print(f"[yellow]   Namespace '{namespace}' not found or already deleted[/yellow]")
            return True
        logger.warning("Failed to delete namespace %s: %s", namespace, err)
        console.print(f"[yellow]\u26a0\ufe0f  Could not delete namespace '{namespace}': {err}[/yellow]")
        return False

    @retry(
        stop=stop_after_delay(timeout),
        wait=wait_fixed(poll_interval),
        retry=retry_if_result(lambda gone: not gone),
    )
    def _wait_gone() -> bool:
        try:
            return client.get_namespace(namespace) is None
        except KubectlError as err:
            logger.debug("Namespace poll failed for %s: %s", namespace, err)
            return False

    try:
        _wait_gone()
    except RetryError:
        logger.warning("Namespace %s still terminating after %gs", namespace, timeout)
        console.print(f"[yellow]\u26a0\ufe0f  Namespace '{namespace}' still terminating after {timeout:g}s[/yellow]")
        return False
    console.print(f"[green]\u2705 Namespace '{namespace}' deleted[/green]")
    return True
