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

"""
cli.py - Command line entry point for cluster-probe.

Subcommands:
    nettest run      Run the network connectivity test matrix
    nettest cleanup  Delete a diagnostic namespace left behind by an aborted run
    nettest config   Show the resolved configuration
    version          Print the cluster-probe version

Examples:
    # Run the network test and print a text report
    cluster-probe nettest run

    # JSON report, pinned namespace, custom image
    cluster-probe nettest run -o json --namespace probe-ci --image busybox:1.36

    # Remove a namespace left behind after a killed run
    cluster-probe nettest cleanup cluster-probe-nettest-3f2a9c1d

Exit codes: 0 all probes passed, 2 probe failures, 3 cluster unreachable,
4 setup or internal error, 130 interrupted.
"""

from __future__ import annotations

import logging
import sys

import typer

from cluster_probe import __version__, console
from cluster_probe.commands import nettest_cmd
from cluster_probe.constants import EXIT_INTERNAL_ERROR

app = typer.Typer(
    help="Kubernetes cluster network diagnostics.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


@app.command()
def version() -> None:
    """Print the cluster-probe version."""
    typer.echo(__version__)


app.add_typer(nettest_cmd.app, name="nettest")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(EXIT_INTERNAL_ERROR)


if __name__ == "__main__":
    main()
