"""Declarative catalog of resource types the engine understands."""

from pathlib import Path
from typing import Dict, List, Optional
import yaml
from pydantic import BaseModel, Field
from ..utils.errors import ConfigError, UnknownTypeError
from ..utils.logging import get_logger

logger = get_logger("registry.resource_types")

# Every Azure resource is pinned to its region and zones once created
ALWAYS_IMMUTABLE = ("location", "zones")

CATALOG_PATH = Path(__file__).parent / "resource_types.yaml"


class ResourceType(BaseModel):
    """One resource type and its update semantics."""
    name: str = Field(..., description="Canonical type, e.g. 'Microsoft.Network/virtualNetworks'")
    immutable: List[str] = Field(default_factory=list, description="Property paths that force replacement")
    scopes: List[str] = Field(default_factory=lambda: ["resourceGroup"], description="Deployable scopes")

    class Config:
        frozen = True

    @property
    def parent_type(self) -> Optional[str]:
        """'Microsoft.Network/virtualNetworks' for '.../virtualNetworks/subnets', else None."""
        segments = self.name.split("/")
        if len(segments) <= 2:
            return None
        return "/".join(segments[:-1])

    def is_immutable(self, path: str) -> bool:
        """True if a change at path (dotted) forces delete + create."""
        for prefix in list(ALWAYS_IMMUTABLE) + self.immutable:
            if path == prefix or path.startswith(prefix + "."):
                return True
        return False


class ResourceTypeCatalog:
    """Case-insensitive lookup table of ResourceType entries."""

    def __init__(self, types: Optional[List[ResourceType]] = None):
        self._types: Dict[str, ResourceType] = {}
        for resource_type in types or []:
            self.register(resource_type)

    def register(self, resource_type: ResourceType) -> None:
        """Add or replace a type."""
        self._types[resource_type.name.lower()] = resource_type

    def get(self, type_name: str) -> Optional[ResourceType]:
        return self._types.get(type_name.lower())

    def require(self, type_name: str, resource_name: Optional[str] = None) -> ResourceType:
        """Return the type or raise UnknownTypeError."""
        resource_type = self.get(type_name)
        if resource_type is None:
            raise UnknownTypeError(type_name, resource_name)
        return resource_type

    def __contains__(self, type_name: str) -> bool:
        return type_name.lower() in self._types

    def __len__(self) -> int:
        return len(self._types)

    def names(self) -> List[str]:
        return sorted(t.name for t in self._types.values())


def load_catalog(extra_types: Optional[Dict[str, object]] = None) -> ResourceTypeCatalog:
    """
    Load the built-in catalog and merge extra types over it.
    
    Args:
        extra_types: Mapping of type name to settings (dict or object with
            'immutable'/'scopes'), typically EngineConfig.resource_types
        
    Returns:
        ResourceTypeCatalog
        
    Raises:
        ConfigError: If the catalog file is malformed
    """
    try:
        with open(CATALOG_PATH, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read resource type catalog: {e}")
    
    catalog = ResourceTypeCatalog()
    entries = dict(data)
    entries.update(extra_types or {})
    
    for name, settings in entries.items():
        if hasattr(settings, "model_dump"):
            settings = settings.model_dump()
        settings = settings or {}
        if not isinstance(settings, dict):
            raise ConfigError(f"Resource type entry for {name} must be a mapping")
        catalog.register(ResourceType(
            name=name,
            immutable=settings.get("immutable") or [],
            scopes=settings.get("scopes") or ["resourceGroup"],
        ))
    
    logger.debug(f"Loaded resource type catalog with {len(catalog)} types")
    return catalog
