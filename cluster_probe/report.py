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

"""Text and JSON rendering of the network test report."""

from __future__ import annotations

import json
from typing import TextIO

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cluster_probe.aggregate import to_consumer_payload
from cluster_probe.models import Report

FORMAT_TEXT = "text"
FORMAT_JSON = "json"


def render_json(report: Report, out: TextIO) -> None:
    json.dump(to_consumer_payload(report), out, indent=2)
    out.write("\n")


def render_text(report: Report, out: TextIO, cluster_info: str = "unknown") -> None:
    """Print per-type tallies, failures with remediation, and warnings."""
    payload = to_consumer_payload(report)
    con = Console(file=out, highlight=False, soft_wrap=True)
    summary = payload["summary"]

    con.rule("[bold]CLUSTER PROBE NETWORK TEST[/bold]")
    con.print(f"Cluster   : {escape(cluster_info)}")
    con.print(f"Timestamp : {payload['timestamp']}")
    con.print(f"Namespace : {payload['namespace']}")
    con.print(f"Nodes     : {payload['node_count']}    Pods: {payload['pod_count']}")

    table = Table(title="Networking Checks", title_justify="left")
    table.add_column("Check")
    table.add_column("Passed", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    for tally in payload["tallies"]:
        icon = "\u2713" if tally["failed"] == 0 else "\u2717"
        table.add_row(f"{icon} {tally['name']}", str(tally["passed"]), str(tally["failed"]))
    con.print(table)

    if payload["failures"]:
        con.print("[bold red]Failures[/bold red]")
        for failure in payload["failures"]:
            con.print(
                f"  [red]\u2717[/red] {failure['test_type']}: {escape(failure['source_node'])} -> "
                f"{escape(failure['target'])} failed"
            )
            if failure["error"]:
                con.print(f"      {escape(failure['error'])}")
            con.print(f"      \u2192 {escape(failure['remediation'])}")

    for warning in payload["warnings"]:
        con.print(f"[yellow]\u26a0 {escape(warning)}[/yellow]")

    style = "green" if summary["failed"] == 0 else "red"
    con.print(
        f"[{style}]Summary: {summary['total']} tests, {summary['passed']} passed, "
        f"{summary['failed']} failed[/{style}]"
    )


def render(report: Report, out: TextIO, fmt: str = FORMAT_TEXT, cluster_info: str = "unknown") -> None:
    if fmt == FORMAT_JSON:
        render_json(report, out)
    else:
        render_text(report, out, cluster_info)
