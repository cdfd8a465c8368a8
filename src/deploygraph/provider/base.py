"""Provider client contract and per-type registry."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union
from ..ingest.models import ResourceId
from ..utils.errors import FatalProviderError
from ..utils.logging import get_logger

logger = get_logger("provider.base")


class ProviderClient(ABC):
    """Create/read/update/delete for resources of one or more types.

    Implementations raise RetryableProviderError for transient failures
    (throttling, 5xx) and FatalProviderError for everything else.
    """

    @abstractmethod
    def get(self, resource_id: ResourceId) -> Optional[Dict[str, Any]]:
        """Observed attributes, or None if the resource does not exist."""

    @abstractmethod
    def apply(self, resource_id: ResourceId, properties: Dict[str, Any]) -> Dict[str, Any]:
        """Create or update the resource; returns observed attributes (including 'id')."""

    @abstractmethod
    def delete(self, resource_id: ResourceId) -> None:
        """Delete the resource; deleting a missing resource is not an error."""


class ProviderRegistry:
    """Maps resource types (case-insensitive) to provider clients."""

    def __init__(self, default: Optional[ProviderClient] = None):
        self._clients: Dict[str, ProviderClient] = {}
        self._default = default

    def register(self, resource_type: str, client: ProviderClient) -> None:
        self._clients[resource_type.lower()] = client
        logger.debug(f"Registered provider {type(client).__name__} for {resource_type}")

    def client_for(self, resource_type: str) -> ProviderClient:
        """
        Client for a type, falling back to the default client.
        
        Raises:
            FatalProviderError: If no client handles the type
        """
        client = self._clients.get(resource_type.lower(), self._default)
        if client is None:
            raise FatalProviderError(f"No provider client registered for resource type {resource_type}")
        return client

    def get(self, resource_id: ResourceId) -> Optional[Dict[str, Any]]:
        return self.client_for(resource_id.type).get(resource_id)

    def apply(self, resource_id: ResourceId, properties: Dict[str, Any]) -> Dict[str, Any]:
        return self.client_for(resource_id.type).apply(resource_id, properties)

    def delete(self, resource_id: ResourceId) -> None:
        self.client_for(resource_id.type).delete(resource_id)


# What the planner and executor accept as their provider
ProviderLike = Union[ProviderClient, ProviderRegistry]
