"""Terminal rendering of query states."""

from __future__ import annotations

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from editpilot.dispatch.state import QueryState, QueryStatus


class StateRenderer:
    """Prints one line or panel per state transition."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def __call__(self, state: QueryState) -> None:
        if state.status is QueryStatus.QUERYING:
            self.console.print("[dim]… asking the assistant[/dim]")
        elif state.status is QueryStatus.SUCCESS:
            self.console.print(
                Panel(Markdown(state.feedback or ""), title="Feedback", border_style="green")
            )
        elif state.status is QueryStatus.ERROR:
            stamp = state.occurred_at.strftime("%H:%M:%S") if state.occurred_at else ""
            self.console.print(Text.assemble(("✗ ", "red"), (f"{stamp} ", "dim"), state.error or ""))
            if state.retryable:
                self.console.print("  [dim]The next edit will try again.[/dim]")
            else:
                self.console.print("  [yellow]Fix the problem above, then edit to retry.[/yellow]")
