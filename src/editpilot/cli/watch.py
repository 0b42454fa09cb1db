"""epl watch command - query the assistant as a file is edited."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click
from rich.console import Console

from editpilot.cli.render import StateRenderer
from editpilot.cli.utils import load_cli_config, resolve_workspace
from editpilot.config import EditPilotConfig
from editpilot.dispatch import QueryDispatcher, create_dispatcher
from editpilot.watch import FileEditSource, display_path
from editpilot.watch.source import EditCallback


def _edit_handler(dispatcher: QueryDispatcher) -> EditCallback:
    """Each edit clears a shown error before it is scheduled."""

    def on_edit(content: str, cursor_position: int, file_path: str) -> None:
        dispatcher.acknowledge_error()
        dispatcher.on_editor_content_changed(content, cursor_position, file_path)

    return on_edit


async def _watch(file: Path, workspace: Path, config: EditPilotConfig, console: Console) -> None:
    dispatcher = create_dispatcher(workspace, config, on_state_change=StateRenderer(console))
    source = FileEditSource(
        path=file,
        on_edit=_edit_handler(dispatcher),
        file_label=display_path(file, workspace),
    )
    await source.start()
    try:
        await asyncio.Event().wait()
    finally:
        await source.stop()
        await dispatcher.stop()


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--workspace",
    "-w",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Workspace root the assistant runs in (default: the file's directory)",
)
@click.option(
    "--debounce-ms",
    type=click.IntRange(min=1),
    default=None,
    help="Quiet period after the last edit before querying",
)
@click.pass_context
def watch_command(
    ctx: click.Context, file: Path, workspace: Path | None, debounce_ms: int | None
) -> None:
    """Watch FILE and show assistant feedback after each burst of edits.

    Stop with Ctrl+C.
    """
    file = file.resolve()
    workspace = resolve_workspace(file, workspace)
    overrides: dict[str, object] = {}
    if debounce_ms is not None:
        overrides["query"] = {"debounce_delay_ms": debounce_ms}
    config = load_cli_config(ctx, workspace, **overrides)

    console = Console()
    console.print(f"Watching [bold]{display_path(file, workspace)}[/bold] in {workspace}")
    try:
        asyncio.run(_watch(file, workspace, config, console))
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")
