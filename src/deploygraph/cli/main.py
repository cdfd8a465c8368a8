"""Main CLI entry point for deploygraph."""

import click
from .commands.validate import validate
from .commands.graph import graph
from .commands.plan import plan
from .commands.apply import apply
from .commands.version import version
from .. import __version__
from ..utils.logging import get_logger

logger = get_logger("cli.main")


@click.group()
@click.version_option(version=__version__, prog_name="deploygraph", message="%(prog)s version %(version)s")
def cli():
    """deploygraph - Declarative resource graph deployments."""
    pass


cli.add_command(validate)
cli.add_command(graph)
cli.add_command(plan)
cli.add_command(apply)
cli.add_command(version)
