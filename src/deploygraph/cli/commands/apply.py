"""Apply command - reconcile the simulated provider with a template."""

import sys
import click
from ...contracts.reports import ApplyReport, PlanReport
from ...presentation.human_formatter import format_apply, format_plan
from ...provider import InMemoryProvider
from ...report.artifact import report_to_json
from ...state import load_state, save_state
from ...utils.errors import DeployGraphError
from ...utils.logging import get_logger
from ...workflow import apply_deployment
from ..utils import configure_verbosity, format_error, load_from_options, template_options, write_output

logger = get_logger("cli.apply")

EXIT_APPLY_FAILED = 2


@click.command()
@click.argument('template', type=click.Path(exists=False))
@click.option('--state', 'state_path', required=True, type=click.Path(), help='State file, read and written back')
@click.option('--concurrency', type=click.IntRange(min=1), help='Maximum operations running at once')
@click.option('--json', 'as_json', is_flag=True, help='Output structured JSON instead of human-readable')
@click.option('--output', '-o', type=click.Path(), help='Save output to file')
@template_options
def apply(template, state_path, concurrency, as_json, output,
          params, params_file, config_path, subscription, resource_group, quiet, verbose):
    """
    Plan and apply a template, then save state.

    Resources come from a simulated provider seeded with the state file.
    Exits 2 when some operations failed, were blocked or were cancelled.
    """
    configure_verbosity(quiet, verbose)
    try:
        deployment = load_from_options(template, params, params_file, config_path, subscription, resource_group)
        state = load_state(state_path)

        provider = InMemoryProvider(scope_id=deployment.template.scope_id)
        provider.seed(state)

        planned, result, current = apply_deployment(deployment, state, provider, max_concurrency=concurrency)
        save_state(current, state_path)

        report = ApplyReport.from_result(result, planned)
        if as_json:
            output_text = report_to_json(report)
        else:
            plan_text = format_plan(PlanReport.from_plan(planned, deployment.template))
            output_text = plan_text + "\n\n" + format_apply(report)
        write_output(output_text, output, quiet)

        if not result.succeeded:
            sys.exit(EXIT_APPLY_FAILED)
    except FileNotFoundError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except DeployGraphError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Apply failed: {e}"), err=True)
        sys.exit(1)
