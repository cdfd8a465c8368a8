"""Compare desired node properties with observed attributes."""

from typing import Any, Callable, Dict, List, Optional, Tuple
from .models import PropertyChange
from ..ingest.models import Reference, ResourceNode
from ..registry import ResourceType


class Unknown:
    """Placeholder for a value that only exists after apply."""

    def __repr__(self) -> str:
        return "(known after apply)"


UNKNOWN = Unknown()

Resolver = Callable[[Reference], Any]


def flatten(value: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Leaf paths of nested dicts; lists and empty dicts are leaves."""
    leaves: Dict[str, Any] = {}
    for key, item in value.items():
        path = f"{prefix}{key}"
        if isinstance(item, dict) and item:
            leaves.update(flatten(item, path + "."))
        else:
            leaves[path] = item
    return leaves


def lookup_path(value: Any, path: str) -> Tuple[bool, Any]:
    """(found, value) for a dotted path inside nested dicts/lists."""
    current = value
    if not path:
        return True, current
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.lstrip("-").isdigit() and -len(current) <= int(part) < len(current):
            current = current[int(part)]
        else:
            return False, None
    return True, current


def resolve_value(value: Any, resolver: Resolver) -> Any:
    """Replace references using resolver; UNKNOWN if any reference is unknown."""
    if isinstance(value, Reference):
        return resolver(value)
    if isinstance(value, dict):
        resolved = {key: resolve_value(item, resolver) for key, item in value.items()}
        return UNKNOWN if any(item is UNKNOWN for item in resolved.values()) else resolved
    if isinstance(value, list):
        resolved_list = [resolve_value(item, resolver) for item in value]
        return UNKNOWN if any(item is UNKNOWN for item in resolved_list) else resolved_list
    return value


def diff_properties(
    node: ResourceNode,
    resource_type: ResourceType,
    observed: Optional[Dict[str, Any]],
    resolver: Resolver,
) -> List[PropertyChange]:
    """
    Property changes needed to move observed toward desired.

    Only paths present in the desired properties are compared. Sensitive
    paths are write-only: listed for creates, never compared otherwise.
    """
    desired_leaves = flatten(node.properties)
    observed_leaves = flatten(observed) if observed is not None else {}
    changes: List[PropertyChange] = []

    for path, desired in desired_leaves.items():
        sensitive = node.is_sensitive_path(path)
        if sensitive:
            if observed is None:
                changes.append(PropertyChange(path=path, sensitive=True))
            continue

        after = resolve_value(desired, resolver)
        before_found = path in observed_leaves
        before = observed_leaves.get(path)

        if after is UNKNOWN:
            changes.append(PropertyChange(
                path=path,
                before=before,
                after_unknown=True,
                forces_replacement=observed is not None and resource_type.is_immutable(path),
            ))
        elif not before_found or before != after:
            changes.append(PropertyChange(
                path=path,
                before=before,
                after=after,
                forces_replacement=observed is not None and resource_type.is_immutable(path),
            ))
    return changes
