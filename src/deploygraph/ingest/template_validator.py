"""Validate template document structure before parsing."""

from typing import Dict, Any
from .models import TargetScope
from ..utils.errors import ParseError
from ..utils.logging import get_logger

logger = get_logger("ingest.template_validator")

KNOWN_TOP_LEVEL_KEYS = {"$schema", "contentVersion", "targetScope", "scope", "parameters", "variables", "resources", "outputs", "metadata"}


def validate_template_structure(data: Any) -> None:
    """
    Validate template document structure.
    
    Args:
        data: Parsed template document
        
    Raises:
        ParseError: If the structure is invalid
    """
    if not isinstance(data, dict):
        raise ParseError("Template must be a mapping at the top level.")
    
    if "resources" not in data:
        raise ParseError("Template missing required field: resources")
    
    resources = data["resources"]
    if not isinstance(resources, list):
        raise ParseError("Template 'resources' must be a list.")
    
    for key in ("parameters", "variables", "scope", "outputs"):
        if key in data and data[key] is not None and not isinstance(data[key], dict):
            raise ParseError(f"Template '{key}' must be a mapping.")
    
    scope = data.get("targetScope", TargetScope.RESOURCE_GROUP.value)
    valid_scopes = [s.value for s in TargetScope]
    if scope not in valid_scopes:
        raise ParseError(f"Invalid targetScope '{scope}'. Expected one of: {', '.join(valid_scopes)}")
    
    for name, declaration in (data.get("parameters") or {}).items():
        if not isinstance(declaration, dict):
            raise ParseError(f"Parameter '{name}' declaration must be a mapping.")
    
    for idx, resource in enumerate(resources):
        if not isinstance(resource, dict):
            raise ParseError(f"Resource at index {idx} must be a mapping.")
        for field in ("type", "name"):
            if field not in resource:
                raise ParseError(f"Resource at index {idx} missing required field: {field}")
            if not isinstance(resource[field], str) or not resource[field].strip():
                raise ParseError(f"Resource at index {idx} field '{field}' must be a non-empty string.")
        depends_on = resource.get("dependsOn", [])
        if depends_on is not None and not isinstance(depends_on, list):
            raise ParseError(f"Resource '{resource['name']}' dependsOn must be a list.")
    
    unknown_keys = set(data) - KNOWN_TOP_LEVEL_KEYS
    if unknown_keys:
        logger.warning(f"Ignoring unknown template keys: {', '.join(sorted(unknown_keys))}")


def get_template_summary(data: Dict[str, Any]) -> Dict[str, Any]:
    """Summary of a validated template for logging."""
    return {
        "target_scope": data.get("targetScope", TargetScope.RESOURCE_GROUP.value),
        "parameter_count": len(data.get("parameters") or {}),
        "resource_count": len(data.get("resources") or []),
    }
