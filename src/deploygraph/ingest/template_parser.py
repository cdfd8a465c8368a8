"""Turn a validated template document into ResourceNodes."""

from typing import Any, Dict, List, Optional, Set, Tuple
from pydantic import ValidationError
from .expressions import ExpressionEvaluator, is_expression
from .models import (
    ParameterDeclaration,
    ParameterType,
    Reference,
    ResourceId,
    ResourceNode,
    TargetScope,
    Template,
)
from ..registry import ResourceTypeCatalog, load_catalog
from ..utils.errors import DuplicateNameError, ParseError
from ..utils.logging import get_logger

logger = get_logger("ingest.template_parser")

DEFAULT_SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000000"
DEFAULT_RESOURCE_GROUP = "default"

# Resource keys that describe the declaration rather than desired state
RESERVED_KEYS = {"type", "name", "dependsOn", "apiVersion", "comments", "condition"}


def build_scope_id(target_scope: TargetScope, scope: Optional[Dict[str, Any]] = None) -> str:
    """Scope identifier: /subscriptions/<id>[/resourceGroups/<rg>]."""
    scope = scope or {}
    subscription_id = scope.get("subscriptionId")
    if not subscription_id:
        logger.warning(f"No subscriptionId in template scope, using {DEFAULT_SUBSCRIPTION_ID}")
        subscription_id = DEFAULT_SUBSCRIPTION_ID
    if target_scope == TargetScope.SUBSCRIPTION:
        return f"/subscriptions/{subscription_id}"
    resource_group = scope.get("resourceGroup") or DEFAULT_RESOURCE_GROUP
    return f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"


def parse_template(
    data: Dict[str, Any],
    parameter_values: Optional[Dict[str, Any]] = None,
    scope: Optional[Dict[str, Any]] = None,
    catalog: Optional[ResourceTypeCatalog] = None,
) -> Template:
    """
    Parse a validated template document.

    Args:
        data: Template document (see load_template)
        parameter_values: Values overriding parameter defaults
        scope: Overrides for the template 'scope' block (subscriptionId, resourceGroup)
        catalog: Resource type catalog (built-in catalog when None)

    Returns:
        Template with nodes in declaration order

    Raises:
        ParseError: Malformed values, missing parameters, bad expressions
        UnknownTypeError: Resource type not in the catalog
        DuplicateNameError: Two resources with the same identifier
    """
    catalog = catalog or load_catalog()
    target_scope = TargetScope(data.get("targetScope", TargetScope.RESOURCE_GROUP.value))
    scope_block = dict(data.get("scope") or {})
    scope_block.update(scope or {})
    scope_id = build_scope_id(target_scope, scope_block)

    declarations = _parse_declarations(data.get("parameters") or {})
    parameters = _resolve_parameters(declarations, parameter_values or {})
    sensitive_parameters = sorted(name for name, decl in declarations.items() if decl.is_sensitive)

    evaluator = ExpressionEvaluator(scope_id, parameters, data.get("variables") or {})
    variables = evaluator.evaluate_variables()

    nodes: List[ResourceNode] = []
    seen: Set[str] = set()
    for raw in data.get("resources") or []:
        node = _parse_resource(raw, len(nodes), evaluator, set(sensitive_parameters), catalog, target_scope)
        if node is None:
            continue
        if node.address in seen:
            raise DuplicateNameError(node.address)
        seen.add(node.address)
        nodes.append(node)

    logger.info(f"Parsed {len(nodes)} resources at scope {scope_id}")
    return Template(
        target_scope=target_scope,
        scope_id=scope_id,
        parameters=parameters,
        sensitive_parameters=sensitive_parameters,
        variables=variables,
        nodes=nodes,
    )


def _parse_declarations(raw: Dict[str, Any]) -> Dict[str, ParameterDeclaration]:
    declarations = {}
    for name, body in raw.items():
        try:
            declarations[name] = ParameterDeclaration(**body)
        except ValidationError as e:
            raise ParseError(f"Invalid declaration for parameter '{name}': {e}")
    return declarations


def _resolve_parameters(
    declarations: Dict[str, ParameterDeclaration],
    supplied: Dict[str, Any],
) -> Dict[str, Any]:
    """Supplied value, else default, else error; coerce to the declared type."""
    unknown = set(supplied) - set(declarations)
    if unknown:
        raise ParseError(f"Values supplied for undeclared parameters: {', '.join(sorted(unknown))}")

    values = {}
    for name, decl in declarations.items():
        if name in supplied:
            value = supplied[name]
        elif decl.has_default:
            value = decl.defaultValue
        else:
            raise ParseError(f"Missing value for required parameter '{name}'")

        value = _coerce(name, decl.type, value)
        if decl.allowedValues is not None and value not in decl.allowedValues:
            shown = "(sensitive)" if decl.is_sensitive else repr(value)
            raise ParseError(f"Parameter '{name}' value {shown} not in allowedValues")
        values[name] = value
    return values


def _coerce(name: str, param_type: ParameterType, value: Any) -> Any:
    """Coerce CLI strings to the declared type and check the result."""
    if value is None:
        return None
    if param_type in (ParameterType.STRING, ParameterType.SECURE_STRING):
        if isinstance(value, (dict, list)):
            raise ParseError(f"Parameter '{name}' must be a string")
        return str(value)
    if param_type == ParameterType.INT:
        if isinstance(value, bool):
            raise ParseError(f"Parameter '{name}' must be an int")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ParseError(f"Parameter '{name}' must be an int, got {value!r}")
    if param_type == ParameterType.BOOL:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise ParseError(f"Parameter '{name}' must be a bool, got {value!r}")
    if param_type in (ParameterType.OBJECT, ParameterType.SECURE_OBJECT):
        if not isinstance(value, dict):
            raise ParseError(f"Parameter '{name}' must be an object")
        return value
    if param_type == ParameterType.ARRAY:
        if not isinstance(value, list):
            raise ParseError(f"Parameter '{name}' must be an array")
        return value
    return value


def _parse_resource(
    raw: Dict[str, Any],
    index: int,
    evaluator: ExpressionEvaluator,
    sensitive_parameters: Set[str],
    catalog: ResourceTypeCatalog,
    target_scope: TargetScope,
) -> Optional[ResourceNode]:
    """Build one node; returns None when the resource's condition is false."""
    name = evaluator.evaluate(raw["name"])
    if not isinstance(name, str) or not name:
        raise ParseError(f"Resource name must evaluate to a non-empty string: {raw['name']!r}")

    if "condition" in raw:
        condition = evaluator.evaluate(raw["condition"])
        if not isinstance(condition, bool):
            raise ParseError(f"Condition for resource '{name}' must evaluate to a bool")
        if not condition:
            logger.debug(f"Skipping resource '{name}': condition is false")
            return None

    resource_type = catalog.require(raw["type"], name)
    if target_scope.value not in resource_type.scopes:
        raise ParseError(
            f"Resource type {resource_type.name} cannot be deployed at {target_scope.value} scope "
            f"(resource '{name}')"
        )

    resource_id = ResourceId(type=resource_type.name, name=name)
    if len(resource_id.type.split("/")) - 1 != len(name.split("/")):
        raise ParseError(
            f"Resource '{name}' of child type {resource_type.name} needs one name segment per type level"
        )

    raw_properties = {key: value for key, value in raw.items() if key not in RESERVED_KEYS}
    properties, sensitive_paths = _evaluate_properties(raw_properties, evaluator, sensitive_parameters)
    properties = _canonicalize_references(properties, catalog)

    depends_on = []
    for entry in raw.get("dependsOn") or []:
        dependency = _parse_dependency(entry, evaluator, name)
        known = catalog.get(dependency.type)
        if known is not None:
            dependency = ResourceId(type=known.name, name=dependency.name)
        if dependency not in depends_on:
            depends_on.append(dependency)

    return ResourceNode(
        id=resource_id,
        properties=properties,
        depends_on=tuple(depends_on),
        declaration_index=index,
        sensitive_paths=tuple(sensitive_paths),
    )


def _evaluate_properties(
    raw: Dict[str, Any],
    evaluator: ExpressionEvaluator,
    sensitive_parameters: Set[str],
    prefix: str = "",
) -> Tuple[Dict[str, Any], List[str]]:
    """Evaluate each leaf, recording leaf paths that read sensitive parameters."""
    result: Dict[str, Any] = {}
    sensitive_paths: List[str] = []
    for key, value in raw.items():
        path = f"{prefix}{key}"
        if isinstance(value, dict):
            nested, nested_sensitive = _evaluate_properties(value, evaluator, sensitive_parameters, path + ".")
            result[key] = nested
            sensitive_paths.extend(nested_sensitive)
            continue
        evaluator.used_parameters = set()
        result[key] = evaluator.evaluate(value)
        if evaluator.used_parameters & sensitive_parameters:
            sensitive_paths.append(path)
    return result, sensitive_paths


def _canonicalize_references(value: Any, catalog: ResourceTypeCatalog) -> Any:
    """Rewrite reference target types to catalog spelling so lookups match."""
    if isinstance(value, Reference):
        known = catalog.get(value.target.type)
        if known is None or known.name == value.target.type:
            return value
        return Reference(target=ResourceId(type=known.name, name=value.target.name), attribute=value.attribute)
    if isinstance(value, dict):
        return {key: _canonicalize_references(item, catalog) for key, item in value.items()}
    if isinstance(value, list):
        return [_canonicalize_references(item, catalog) for item in value]
    return value


def _parse_dependency(entry: Any, evaluator: ExpressionEvaluator, source_name: str) -> ResourceId:
    """dependsOn entry: resourceId(...) expression or an ARM-style address string."""
    if not isinstance(entry, str):
        raise ParseError(f"dependsOn entries of '{source_name}' must be strings")
    if is_expression(entry):
        value = evaluator.evaluate(entry)
        if not isinstance(value, Reference):
            raise ParseError(f"dependsOn entry {entry!r} of '{source_name}' must be a resourceId(...)")
        return value.target
    try:
        return ResourceId.from_address(entry)
    except ValueError as e:
        raise ParseError(f"Invalid dependsOn entry of '{source_name}': {e}")
