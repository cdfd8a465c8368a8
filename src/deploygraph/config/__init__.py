"""Configuration module: load engine settings from layered YAML and environment."""

import os
from typing import Dict, Any, Optional
from pydantic import ValidationError
from ..utils.errors import ConfigError
from ..utils.logging import get_logger
from .manager import load_config
from .models import EngineConfig, ExecutorSettings, RetrySettings, ResourceTypeSettings
from .paths import get_defaults_path, get_user_config_path, get_project_config_path

logger = get_logger("config")

ENV_OVERRIDES = {
    "DEPLOYGRAPH_MAX_CONCURRENCY": ("executor", "max_concurrency", int),
    "DEPLOYGRAPH_OPERATION_TIMEOUT": ("executor", "operation_timeout", float),
    "DEPLOYGRAPH_RETRY_ATTEMPTS": ("retry", "max_attempts", int),
}


def load_engine_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load and validate engine configuration.
    
    Args:
        config_path: Optional explicit YAML file, applied over user/project config
        
    Returns:
        Validated EngineConfig
        
    Raises:
        ConfigError: If a file is invalid or a value fails validation
    """
    config = load_config(config_path)
    _apply_env_overrides(config)
    
    if config.get("resource_types") is None:
        config["resource_types"] = {}
    
    try:
        engine_config = EngineConfig(**config)
    except ValidationError as e:
        raise ConfigError(f"Invalid engine configuration: {e}")
    except TypeError as e:
        raise ConfigError(f"Invalid engine configuration: {e}")
    
    logger.debug(
        f"Engine config: concurrency={engine_config.executor.max_concurrency}, "
        f"timeout={engine_config.executor.operation_timeout}, "
        f"retries={engine_config.retry.max_attempts}"
    )
    return engine_config


def _apply_env_overrides(config: Dict[str, Any]) -> None:
    """Apply DEPLOYGRAPH_* environment variables (mutates config)."""
    for env_var, (section, key, cast) in ENV_OVERRIDES.items():
        raw = os.getenv(env_var)
        if raw is None or raw.strip() == "":
            continue
        try:
            value = cast(raw)
        except ValueError:
            raise ConfigError(f"Invalid value for {env_var}: {raw!r}")
        config.setdefault(section, {})[key] = value
        logger.debug(f"Config override from {env_var}: {section}.{key}={value}")


__all__ = [
    "EngineConfig",
    "ExecutorSettings",
    "RetrySettings",
    "ResourceTypeSettings",
    "load_engine_config",
    "load_config",
    "get_defaults_path",
    "get_user_config_path",
    "get_project_config_path",
]
