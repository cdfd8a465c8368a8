"""Version command - show deploygraph version."""

import click
from ... import __version__


@click.command()
def version():
    """Show deploygraph version."""
    click.echo(f"deploygraph version {__version__}")
