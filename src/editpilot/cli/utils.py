"""Shared helpers for CLI commands."""

from __future__ import annotations

from pathlib import Path

import click

from editpilot.config import EditPilotConfig, load_config
from editpilot.core.errors import EditPilotError
from editpilot.core.logging import configure_logging


def resolve_workspace(file: Path | None, workspace: Path | None) -> Path:
    """Explicit workspace, else the file's directory, else the current directory."""
    if workspace is not None:
        return workspace.resolve()
    if file is not None:
        return file.resolve().parent
    return Path.cwd().resolve()


def load_cli_config(ctx: click.Context, workspace: Path, **overrides: object) -> EditPilotConfig:
    """Load config for ``workspace`` and apply its logging section.

    ``--verbose`` keeps the DEBUG console logging set up by the group.
    """
    try:
        config = load_config(workspace, **overrides)
    except EditPilotError as e:
        raise click.ClickException(e.message) from e

    if not (ctx.obj or {}).get("verbose"):
        configure_logging(config=config.logging)
    return config
