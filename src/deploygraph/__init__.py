"""deploygraph - Declarative resource graph deployment engine."""

import threading
from typing import Any, Dict, Optional
from .contracts.reports import ApplyReport, PlanReport
from .provider import InMemoryProvider, ProviderLike
from .state import load_state, save_state
from .utils.errors import DeployGraphError
from .utils.logging import setup_logging, get_logger

__version__ = "0.1.0"

__all__ = ["plan", "apply"]

setup_logging()
logger = get_logger("deploygraph")


def plan(
    template_path: str,
    parameters: Optional[Dict[str, Any]] = None,
    state_path: Optional[str] = None,
    config_path: Optional[str] = None,
    scope: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Plan a template against saved state and return the plan report."""
    from .state import RemoteState
    from .workflow import load_deployment, plan_deployment

    try:
        logger.info(f"Planning template: {template_path}")
        deployment = load_deployment(template_path, parameters, scope=scope, config_path=config_path)
        state = load_state(state_path) if state_path else RemoteState()
        result, _ = plan_deployment(deployment, state)
        return PlanReport.from_plan(result, deployment.template).model_dump(mode="json")
    except DeployGraphError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during planning: {e}", exc_info=True)
        raise DeployGraphError(f"Planning failed: {e}") from e


def apply(
    template_path: str,
    state_path: str,
    parameters: Optional[Dict[str, Any]] = None,
    config_path: Optional[str] = None,
    scope: Optional[Dict[str, Any]] = None,
    provider: Optional[ProviderLike] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Dict[str, Any]:
    """
    Apply a template and save the resulting state.

    Without a provider, a simulated provider seeded from the state file is used.
    """
    from .workflow import apply_deployment, load_deployment

    try:
        logger.info(f"Applying template: {template_path}")
        deployment = load_deployment(template_path, parameters, scope=scope, config_path=config_path)
        state = load_state(state_path)
        if provider is None:
            provider = InMemoryProvider(scope_id=deployment.template.scope_id)
            provider.seed(state)
        planned, result, current = apply_deployment(deployment, state, provider, cancel_event=cancel_event)
        save_state(current, state_path)
        return ApplyReport.from_result(result, planned).model_dump(mode="json")
    except DeployGraphError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during apply: {e}", exc_info=True)
        raise DeployGraphError(f"Apply failed: {e}") from e
