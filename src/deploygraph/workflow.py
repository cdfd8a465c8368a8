"""Shared load -> plan -> apply pipeline used by the CLI and the package API."""

import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from .config import EngineConfig, load_engine_config
from .executor import ApplyResult, Executor
from .graph import DependencyGraph, build_graph
from .ingest import Template, load_template, parse_template
from .planner import Plan, Planner
from .provider import ProviderLike
from .registry import ResourceTypeCatalog, load_catalog
from .state import RemoteState
from .utils.errors import StateError
from .utils.logging import get_logger
from .utils.retry import build_retrying

logger = get_logger("workflow")


@dataclass
class Deployment:
    """Everything derived from one template before touching state."""
    config: EngineConfig
    catalog: ResourceTypeCatalog
    template: Template
    graph: DependencyGraph


def load_deployment(
    template_path: str,
    parameter_values: Optional[Dict[str, Any]] = None,
    scope: Optional[Dict[str, Any]] = None,
    config_path: Optional[str] = None,
    config: Optional[EngineConfig] = None,
) -> Deployment:
    """
    Load config, catalog and template, then build and order the graph.

    Raises:
        ConfigError, ParseError, GraphError: Before any provider call
    """
    config = config or load_engine_config(config_path)
    catalog = load_catalog(config.resource_types)
    data = load_template(template_path)
    template = parse_template(data, parameter_values, scope=scope, catalog=catalog)
    graph = build_graph(template.nodes)
    return Deployment(config=config, catalog=catalog, template=template, graph=graph)


def _check_scope(deployment: Deployment, state: RemoteState) -> None:
    if state.scope_id is None:
        state.scope_id = deployment.template.scope_id
    elif state.scope_id != deployment.template.scope_id:
        raise StateError(
            f"State belongs to scope {state.scope_id}, template deploys to {deployment.template.scope_id}"
        )


def plan_deployment(deployment: Deployment, state: RemoteState, provider: Optional[ProviderLike] = None) -> Tuple[Plan, RemoteState]:
    """
    Plan a deployment, refreshing state first when a provider is given.

    Returns:
        (plan, state the plan was computed against)
    """
    _check_scope(deployment, state)
    planner = Planner(
        provider=provider,
        catalog=deployment.catalog,
        retrying=build_retrying(**deployment.config.retry.model_dump()),
    )
    if provider is not None:
        state = planner.refresh(state, deployment.graph)
    plan = planner.plan(
        deployment.graph,
        state,
        scope_id=deployment.template.scope_id,
        target_scope=deployment.template.target_scope.value,
    )
    return plan, state


def apply_deployment(
    deployment: Deployment,
    state: RemoteState,
    provider: ProviderLike,
    max_concurrency: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Tuple[Plan, ApplyResult, RemoteState]:
    """
    Refresh, plan and execute.

    Returns:
        (plan, apply result, updated state); the state holds every
        operation that succeeded, even when others failed
    """
    plan, current = plan_deployment(deployment, state, provider)
    executor = Executor.from_config(provider, deployment.config)
    if max_concurrency is not None:
        executor.max_concurrency = max_concurrency
    result = executor.execute(plan, current, cancel_event=cancel_event)
    return plan, result, current
