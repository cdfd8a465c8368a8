"""Graph command - show dependency order of a template."""

import json
import sys
import click
from ...presentation.human_formatter import format_order
from ...utils.errors import DeployGraphError
from ...utils.logging import get_logger
from ..utils import configure_verbosity, format_error, load_from_options, template_options, write_output

logger = get_logger("cli.graph")


@click.command()
@click.argument('template', type=click.Path(exists=False))
@click.option('--json', 'as_json', is_flag=True, help='Output order and edges as JSON')
@click.option('--output', '-o', type=click.Path(), help='Save output to file')
@template_options
def graph(template, as_json, output, params, params_file, config_path, subscription, resource_group, quiet, verbose):
    """Print resources in dependency order with their direct dependencies."""
    configure_verbosity(quiet, verbose)
    try:
        deployment = load_from_options(template, params, params_file, config_path, subscription, resource_group)
        order = deployment.graph.topological_order()
        dependencies = {address: deployment.graph.dependencies_of(address) for address in order}

        if as_json:
            output_text = json.dumps({"order": order, "dependencies": dependencies}, indent=2)
        else:
            output_text = format_order(order, dependencies)
        write_output(output_text, output, quiet)
    except FileNotFoundError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except DeployGraphError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Graph failed: {e}"), err=True)
        sys.exit(1)
