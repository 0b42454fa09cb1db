"""EditPilot CLI - epl command."""

import click

from editpilot import __version__
from editpilot.cli.ask import ask_command
from editpilot.cli.template import template_command
from editpilot.cli.watch import watch_command
from editpilot.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="epl")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """EditPilot - writing feedback from a local assistant CLI while you edit."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(watch_command, name="watch")
cli.add_command(ask_command, name="ask")
cli.add_command(template_command, name="template")


if __name__ == "__main__":
    cli()
