"""Validate command - load, parse and order a template without touching state."""

import sys
import click
from ...utils.errors import DeployGraphError
from ...utils.logging import get_logger
from ..utils import configure_verbosity, format_error, load_from_options, template_options

logger = get_logger("cli.validate")


@click.command()
@click.argument('template', type=click.Path(exists=False))
@template_options
def validate(template, params, params_file, config_path, subscription, resource_group, quiet, verbose):
    """
    Validate a template: structure, parameters, expressions, references and cycles.
    """
    configure_verbosity(quiet, verbose)
    try:
        deployment = load_from_options(template, params, params_file, config_path, subscription, resource_group)
        order = deployment.graph.topological_order()
        click.echo(f"Template valid: {len(order)} resources at scope {deployment.template.scope_id}")
        if not quiet:
            for idx, address in enumerate(order, start=1):
                click.echo(f"{idx:>3}. {address}")
    except FileNotFoundError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except DeployGraphError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Validation failed: {e}"), err=True)
        sys.exit(1)
