"""Plan command - show what apply would change."""

import sys
from pathlib import Path
import click
from ...contracts.reports import PlanReport
from ...presentation.human_formatter import format_plan
from ...report.artifact import report_to_json
from ...report.markdown import generate_plan_markdown
from ...state import RemoteState, load_state
from ...utils.errors import DeployGraphError
from ...utils.logging import get_logger
from ...workflow import plan_deployment
from ..utils import configure_verbosity, format_error, load_from_options, template_options, write_output

logger = get_logger("cli.plan")


@click.command()
@click.argument('template', type=click.Path(exists=False))
@click.option('--state', 'state_path', type=click.Path(), help='State file (missing file means nothing deployed)')
@click.option('--json', 'as_json', is_flag=True, help='Output structured JSON instead of human-readable')
@click.option('--markdown', 'markdown_path', type=click.Path(), help='Also write a markdown report to this file')
@click.option('--output', '-o', type=click.Path(), help='Save output to file')
@click.option('--show-unchanged', is_flag=True, help='List resources that need no change')
@template_options
def plan(template, state_path, as_json, markdown_path, output, show_unchanged,
         params, params_file, config_path, subscription, resource_group, quiet, verbose):
    """
    Diff a template against saved state and print the ordered plan.
    """
    configure_verbosity(quiet, verbose)
    try:
        deployment = load_from_options(template, params, params_file, config_path, subscription, resource_group)
        state = load_state(state_path) if state_path else RemoteState()

        if not quiet:
            click.echo(f"Planning {len(deployment.graph)} resources against {len(state)} known...", err=True)

        result, _ = plan_deployment(deployment, state)
        report = PlanReport.from_plan(result, deployment.template)

        if markdown_path:
            generate_plan_markdown(report, Path(markdown_path))
            if not quiet:
                click.echo(f"Markdown report saved to: {markdown_path}", err=True)

        output_text = report_to_json(report) if as_json else format_plan(report, show_unchanged=show_unchanged)
        write_output(output_text, output, quiet)
    except FileNotFoundError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except DeployGraphError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Planning failed: {e}"), err=True)
        sys.exit(1)
