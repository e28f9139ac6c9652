"""Human and machine renderings of a VerificationResult."""

from __future__ import annotations

import json

from rich.console import Console
from rich.table import Table

from readycheck.verifier.models import CheckMode, Outcome, Overall, VerificationResult

_OUTCOME_STYLE: dict[Outcome, str] = {
    Outcome.HEALTHY: "green",
    Outcome.DEGRADED: "yellow",
    Outcome.ROUNDTRIP_FAILED: "yellow",
    Outcome.DOWN: "red",
    Outcome.CONFIGURATION_ERROR: "red",
}


def _flag(up: bool, reachable: bool) -> str:
    if not reachable:
        return "[dim]unknown[/dim]"
    return "[green]up[/green]" if up else "[red]down[/red]"


def render_json(result: VerificationResult) -> str:
    return json.dumps(result.to_json_dict())


def render_text(result: VerificationResult, console: Console | None = None) -> None:
    """Print the result as a short status table plus a one-line verdict."""
    console = console or Console()
    status = result.status
    style = _OUTCOME_STYLE[result.outcome]

    table = Table(title="Conversion Service Health", show_header=False)
    table.add_column("Check", style="cyan")
    table.add_column("Result")
    table.add_row("Status", f"[{style}]{result.reported_status.value}[/{style}]")
    table.add_row("Chromium", _flag(status.chromium_up, status.reachable))
    table.add_row("LibreOffice", _flag(status.libreoffice_up, status.reachable))
    if result.mode is CheckMode.FULL:
        verified = "[green]verified[/green]" if result.roundtrip_verified else "[red]failed[/red]"
        if status.overall is Overall.HEALTHY:
            table.add_row("Roundtrip", verified)
        else:
            table.add_row("Roundtrip", "[dim]skipped[/dim]")
    table.add_row("Checked at", status.timestamp)
    console.print(table)

    mark = "✓" if result.outcome is Outcome.HEALTHY else "✗"
    console.print(f"[{style}]{mark} {result.message}[/{style}]")
