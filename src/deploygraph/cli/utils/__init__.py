"""CLI utilities package."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import click
import yaml
from ...utils.errors import DeployGraphError, ParseError
from ...utils.logging import get_logger, set_log_level
from .file_resolver import resolve_file_path

logger = get_logger("cli.utils")


def format_error(message: str, suggestion: Optional[str] = None) -> str:
    """
    Format error message with optional suggestion.

    Args:
        message: Error message
        suggestion: Optional suggestion or help text

    Returns:
        Formatted error string
    """
    error = f"Error: {message}"
    if suggestion:
        error += f"\nTip: {suggestion}"
    return error


def parse_param_value(raw: str) -> Any:
    """Values starting with '{' or '[' are JSON; everything else stays a string."""
    stripped = raw.strip()
    if stripped.startswith(("{", "[")):
        try:
            return json.loads(stripped)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON parameter value {raw!r}: {e}")
    return raw


def parse_params(pairs: Tuple[str, ...]) -> Dict[str, Any]:
    """Turn repeated --param key=value options into a mapping."""
    values = {}
    for pair in pairs:
        if "=" not in pair:
            raise ParseError(f"Parameter must be key=value, got {pair!r}")
        key, raw = pair.split("=", 1)
        key = key.strip()
        if not key:
            raise ParseError(f"Parameter name is empty in {pair!r}")
        values[key] = parse_param_value(raw)
    return values


def load_params_file(params_file: str) -> Dict[str, Any]:
    """
    Load parameter values from YAML/JSON.

    Accepts a plain mapping or the {"parameters": {"name": {"value": ...}}} shape.

    Raises:
        ParseError: If the file is unreadable or not a mapping
    """
    path = resolve_file_path(params_file)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ParseError(f"Cannot read parameters file {params_file}: {e}")

    if not isinstance(data, dict):
        raise ParseError(f"Parameters file {params_file} must contain a mapping")
    if isinstance(data.get("parameters"), dict):
        data = data["parameters"]

    values = {}
    for name, value in data.items():
        if isinstance(value, dict) and set(value) == {"value"}:
            value = value["value"]
        values[name] = value
    return values


def collect_params(params_file: Optional[str], pairs: Tuple[str, ...]) -> Dict[str, Any]:
    """Parameters file first, then --param overrides."""
    values = load_params_file(params_file) if params_file else {}
    values.update(parse_params(pairs))
    return values


def build_scope(subscription: Optional[str], resource_group: Optional[str]) -> Dict[str, Any]:
    scope = {}
    if subscription:
        scope["subscriptionId"] = subscription
    if resource_group:
        scope["resourceGroup"] = resource_group
    return scope


def configure_verbosity(quiet: bool, verbose: bool = False) -> None:
    if verbose:
        set_log_level(logging.DEBUG)
    elif quiet:
        set_log_level(logging.WARNING)


def write_output(text: str, output: Optional[str], quiet: bool) -> None:
    """Echo text, or write it to a file when --output is given."""
    if output:
        output_path = Path(output)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(text)
        except OSError as e:
            raise DeployGraphError(f"Failed to write output file {output_path}: {e}")
        if not quiet:
            click.echo(f"Output saved to: {output_path}", err=True)
        return
    try:
        click.echo(text)
    except UnicodeEncodeError:
        click.echo(text.encode('ascii', errors='replace').decode('ascii'))


def template_options(func):
    """Options shared by every command that loads a template."""
    options = [
        click.option('--param', '-p', 'params', multiple=True, help='Parameter value as key=value (repeatable)'),
        click.option('--params-file', type=click.Path(), help='YAML/JSON file with parameter values'),
        click.option('--config', 'config_path', type=click.Path(), help='Engine config YAML file'),
        click.option('--subscription', help='Subscription id for the deployment scope'),
        click.option('--resource-group', help='Resource group for the deployment scope'),
        click.option('--quiet', '-q', is_flag=True, help='Suppress progress messages'),
        click.option('--verbose', '-v', is_flag=True, help='Debug logging'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def load_from_options(template: str, params, params_file, config_path, subscription, resource_group):
    """Shared template loading for commands - returns a Deployment."""
    from ...workflow import load_deployment

    template_path = resolve_file_path(template)
    if config_path:
        config_path = str(resolve_file_path(config_path))
    return load_deployment(
        str(template_path),
        collect_params(params_file, params),
        scope=build_scope(subscription, resource_group),
        config_path=config_path,
    )


__all__ = [
    "resolve_file_path",
    "format_error",
    "parse_params",
    "load_params_file",
    "collect_params",
    "build_scope",
    "configure_verbosity",
    "write_output",
    "template_options",
    "load_from_options",
]
