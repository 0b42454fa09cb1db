"""epl template command - locate or restore the prompt template."""

from __future__ import annotations

from pathlib import Path

import click

from editpilot.cli.utils import load_cli_config, resolve_workspace
from editpilot.prompt import PromptTemplateStore


@click.command()
@click.option(
    "--workspace",
    "-w",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Workspace root (default: current directory)",
)
@click.option("--restore", is_flag=True, help="Overwrite the template with the default")
@click.pass_context
def template_command(ctx: click.Context, workspace: Path | None, restore: bool) -> None:
    """Print the prompt template path, creating the default if it is missing.

    The template must contain {{doc}} exactly once; it is replaced by the
    document with a <|cursor|> marker at the cursor position.
    """
    workspace = resolve_workspace(None, workspace)
    config = load_cli_config(ctx, workspace)
    store = PromptTemplateStore(config.prompt.resolve(workspace))

    if restore:
        path = store.restore_default()
        click.echo(f"Restored default template: {path}")
        return

    click.echo(str(store.ensure()))
