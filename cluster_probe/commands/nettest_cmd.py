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

"""Network test subcommands (run, cleanup, config)."""

from __future__ import annotations

import signal
import sys
import threading
from contextlib import contextmanager

import typer

from cluster_probe import console
from cluster_probe.config import display_config, resolve_config
from cluster_probe.constants import (
    APP_NAME,
    EXIT_CRITICAL,
    EXIT_INTERNAL_ERROR,
    EXIT_INTERRUPTED,
    EXIT_NO_CONNECT,
    EXIT_OK,
)
from cluster_probe.errors import KubectlError, NetTestError, RunCancelledError
from cluster_probe.kube import KubeClient
from cluster_probe.orchestrator import run_network_test
from cluster_probe.reclaim import reclaim_namespace
from cluster_probe.report import FORMAT_JSON, FORMAT_TEXT, render
from cluster_probe.utils import require_command
from cluster_probe.workloads import is_probe_namespace

app = typer.Typer(help="Network connectivity tests.", no_args_is_help=True)


@contextmanager
def _cancel_on_interrupt(cancel: threading.Event):
    """Turn the first Ctrl-C into a cancellation request; the second one aborts."""
    def _handler(signum, frame) -> None:
        if cancel.is_set():
            raise KeyboardInterrupt
        console.print("[yellow]\u26a0\ufe0f  Interrupted: stopping tests and cleaning up (Ctrl-C again to force)[/yellow]")
        cancel.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _connect(kubeconfig: str | None, context: str | None, timeout: int) -> tuple[KubeClient, str]:
    """Build a client and verify the API server answers.

    Raises:
        typer.Exit: With the no-connect exit code if kubectl or the cluster is unavailable.
    """
    try:
        require_command("kubectl")
    except RuntimeError as err:
        console.print(f"[red]\u274c {err}[/red]")
        raise typer.Exit(EXIT_NO_CONNECT) from err
    client = KubeClient(kubeconfig, context, timeout)
    try:
        return client, client.server_version()
    except KubectlError as err:
        console.print(f"[red]\u274c Cannot reach the cluster: {err}[/red]")
        raise typer.Exit(EXIT_NO_CONNECT) from err


@app.command()
def run(
    output: str = typer.Option(
        FORMAT_TEXT, "--output", "-o", help="Report format: text or json"),
    namespace: str | None = typer.Option(
        None, "--namespace", help="Pin the diagnostic namespace (default: generated per run)"),
    image: str | None = typer.Option(
        None, "--image", help="Test pod image (overrides PROBE_IMAGE)"),
    pod_ready_timeout: float | None = typer.Option(
        None, "--pod-ready-timeout", help="Seconds to wait for all test pods to be ready"),
    cleanup_timeout: float | None = typer.Option(
        None, "--cleanup-timeout", help="Seconds to wait for namespace deletion"),
    kubeconfig: str | None = typer.Option(
        None, "--kubeconfig", help="Path to kubeconfig"),
    context: str | None = typer.Option(
        None, "--context", help="kubeconfig context"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Print every probe result as it completes"),
) -> None:
    """Create a test pod on every ready node and run the connectivity matrix.

    Exits 0 when every probe passed and 2 when any probe failed.
    """
    if output not in (FORMAT_TEXT, FORMAT_JSON):
        raise typer.BadParameter(f"unsupported output format '{output}'", param_hint="--output")

    cfg = resolve_config(
        namespace=namespace,
        image=image,
        pod_ready_timeout=pod_ready_timeout,
        cleanup_timeout=cleanup_timeout,
        kubeconfig=kubeconfig,
        context=context,
        verbose=verbose or None,
    )
    run_namespace = cfg.resolve_namespace()
    display_config(cfg, run_namespace)

    client, cluster_info = _connect(cfg.kubeconfig, cfg.context, cfg.kubectl_timeout)

    cancel = threading.Event()
    with _cancel_on_interrupt(cancel):
        try:
            report = run_network_test(client, cfg, cancel, namespace=run_namespace)
        except RunCancelledError as err:
            console.print(f"[yellow]\u26a0\ufe0f  {err}[/yellow]")
            raise typer.Exit(EXIT_INTERRUPTED) from err
        except NetTestError as err:
            console.print(f"[red]\u274c Network test failed: {err}[/red]")
            raise typer.Exit(EXIT_INTERNAL_ERROR) from err
        except KeyboardInterrupt as err:
            console.print(f"[yellow]\u26a0\ufe0f  Aborted. If namespace '{run_namespace}' remains, remove it with:[/yellow]")
            console.print(f"[yellow]   cluster-probe nettest cleanup {run_namespace}[/yellow]")
            raise typer.Exit(EXIT_INTERRUPTED) from err

    render(report, sys.stdout, output, cluster_info)
    raise typer.Exit(EXIT_CRITICAL if report.summary.failed else EXIT_OK)


@app.command()
def cleanup(
    namespace: str = typer.Argument(..., help="Diagnostic namespace left over from an aborted run"),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Seconds to wait for namespace deletion"),
    kubeconfig: str | None = typer.Option(None, "--kubeconfig", help="Path to kubeconfig"),
    context: str | None = typer.Option(None, "--context", help="kubeconfig context"),
) -> None:
    """Delete a diagnostic namespace created by a previous run."""
    cfg = resolve_config(cleanup_timeout=timeout, kubeconfig=kubeconfig, context=context)
    client, _ = _connect(cfg.kubeconfig, cfg.context, cfg.kubectl_timeout)

    existing = client.get_namespace(namespace)
    if existing is None:
        console.print(f"[yellow]   Namespace '{namespace}' not found or already deleted[/yellow]")
        raise typer.Exit(EXIT_OK)
    if not is_probe_namespace(existing):
        console.print(f"[red]\u274c Namespace '{namespace}' was not created by {APP_NAME}; refusing to delete[/red]")
        raise typer.Exit(EXIT_INTERNAL_ERROR)

    if not reclaim_namespace(client, namespace, cfg.cleanup_timeout, cfg.cleanup_poll_interval):
        raise typer.Exit(EXIT_INTERNAL_ERROR)


@app.command("config")
def show_config() -> None:
    """Show the configuration a run would use (CLI defaults + PROBE_* env)."""
    cfg = resolve_config()
    display_config(cfg, cfg.resolve_namespace("<run-id>"))
