"""epl ask command - one-off query for a file."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.markdown import Markdown

from editpilot.assistant import AssistantClient
from editpilot.cli.utils import load_cli_config, resolve_workspace
from editpilot.core.errors import EditPilotError
from editpilot.prompt import EditSnapshot, PromptTemplateStore, build_prompt
from editpilot.watch import display_path


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--cursor",
    type=click.IntRange(min=0),
    default=None,
    help="Cursor offset in characters (default: end of file)",
)
@click.option(
    "--workspace",
    "-w",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Workspace root the assistant runs in (default: the file's directory)",
)
@click.pass_context
def ask_command(ctx: click.Context, file: Path, cursor: int | None, workspace: Path | None) -> None:
    """Ask for feedback on FILE once and print it.

    Every run starts a fresh client, so the full document is always sent.
    If the assistant already holds this workspace's session, the run
    resumes it and the full document is added to that conversation.
    """
    file = file.resolve()
    workspace = resolve_workspace(file, workspace)
    config = load_cli_config(ctx, workspace)

    content = file.read_text(encoding="utf-8")
    snapshot = EditSnapshot(
        content=content,
        cursor_position=len(content) if cursor is None else cursor,
        file_path=display_path(file, workspace),
    )
    client = AssistantClient(workspace, config.assistant)

    try:
        template = PromptTemplateStore(config.prompt.resolve(workspace)).load()
        prompt = build_prompt(
            snapshot,
            is_new_session=client.is_new_session(),
            template=template,
            lines_before=config.query.context_lines_before,
        )
        feedback = asyncio.run(client.get_feedback(prompt))
    except EditPilotError as e:
        raise click.ClickException(e.message) from e

    Console().print(Markdown(feedback))
