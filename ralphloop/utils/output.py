"""Output formatting utilities.

Provides TTY-aware console output for loop runs:
- stdout console: outcome summaries
- JSON output for CI integration

When stdout is a TTY, Rich formatting and colors are used; when it is
redirected, output is plain text.
"""

import json
import sys
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.loop import IterationOutcome

_stdout_is_tty = sys.stdout.isatty()

console = Console(
    force_terminal=_stdout_is_tty,
    no_color=not _stdout_is_tty,
)


def render_outcome(outcome: IterationOutcome, title: str = "Ralph Loop") -> Table:
    """Build a two-column summary table for an outcome."""
    table = Table(title=title, show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    if outcome.error is not None:
        status = f"[red]failed[/red] ({type(outcome.error).__name__})"
    elif outcome.complete:
        status = "[green]complete[/green]"
    else:
        status = "[yellow]incomplete[/yellow]"

    table.add_row("Status", status)
    table.add_row("Iteration", str(outcome.number))
    table.add_row("Session", escape(outcome.session_id) or "-")
    table.add_row("Messages", str(len(outcome.messages)))
    table.add_row("Last iteration cost", f"${outcome.cost_usd:.4f}")
    table.add_row("Total cost", f"${outcome.total_cost_usd:.4f}")
    if outcome.error is not None:
        table.add_row("Error", escape(str(outcome.error)))
    return table


def print_outcome(outcome: IterationOutcome, out: Optional[Console] = None) -> None:
    """Print an outcome summary to stdout (or the given console)."""
    (out or console).print(render_outcome(outcome))


def format_outcome_json(outcome: IterationOutcome) -> str:
    """Format an outcome summary as JSON."""
    return json.dumps(outcome.to_dict(), indent=2, default=str)

