from .resource_types import ResourceType, ResourceTypeCatalog, ALWAYS_IMMUTABLE, load_catalog

__all__ = ["ResourceType", "ResourceTypeCatalog", "ALWAYS_IMMUTABLE", "load_catalog"]
