"""In-memory simulated cloud used for local runs and tests."""

import copy
import threading
import time
from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Optional, Tuple
from .base import ProviderClient
from ..ingest.models import ResourceId
from ..state.models import RemoteState
from ..utils.logging import get_logger

logger = get_logger("provider.memory")

RESOURCE_GROUP_TYPE = "microsoft.resources/resourcegroups"


class InMemoryProvider(ProviderClient):
    """Thread-safe dictionary of resources with ARM-style generated ids.

    Failures and delays can be injected per (operation, address) so tests
    can exercise retry, blocking and timeout paths.
    """

    def __init__(self, scope_id: str = "/subscriptions/00000000-0000-0000-0000-000000000000/resourceGroups/default"):
        self.scope_id = scope_id.rstrip("/")
        self._resources: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._failures: Dict[Tuple[str, str], Deque[Exception]] = defaultdict(deque)
        self._delays: Dict[Tuple[str, str], float] = {}
        self.calls: List[Tuple[str, str]] = []

    def seed(self, state: RemoteState) -> None:
        """Load observed attributes from state as if the resources already exist."""
        snapshot = state.snapshot()
        with self._lock:
            for address, observed in snapshot.resources.items():
                self._resources[address] = copy.deepcopy(observed.attributes)
        logger.debug(f"Seeded simulated provider with {len(snapshot)} resources")

    def fail(self, address: str, error: Exception, operation: str = "apply", times: int = 1) -> None:
        """Raise error on the next `times` calls of operation for address."""
        for _ in range(times):
            self._failures[(operation, address)].append(error)

    def delay(self, address: str, seconds: float, operation: str = "apply") -> None:
        """Sleep before serving operation for address."""
        self._delays[(operation, address)] = seconds

    def resource_uri(self, resource_id: ResourceId) -> str:
        if resource_id.type.lower() == RESOURCE_GROUP_TYPE:
            subscription = self.scope_id.split("/resourceGroups/")[0]
            return f"{subscription}/resourceGroups/{resource_id.name}"
        return f"{self.scope_id}/providers/{resource_id.address}"

    def _enter(self, operation: str, resource_id: ResourceId) -> None:
        address = resource_id.address
        with self._lock:
            self.calls.append((operation, address))
            pending = self._failures.get((operation, address))
            error = pending.popleft() if pending else None
        seconds = self._delays.get((operation, address))
        if seconds:
            time.sleep(seconds)
        if error is not None:
            logger.debug(f"Injected failure for {operation} {address}: {error}")
            raise error

    def get(self, resource_id: ResourceId) -> Optional[Dict[str, Any]]:
        self._enter("get", resource_id)
        with self._lock:
            attributes = self._resources.get(resource_id.address)
            return copy.deepcopy(attributes) if attributes is not None else None

    def apply(self, resource_id: ResourceId, properties: Dict[str, Any]) -> Dict[str, Any]:
        self._enter("apply", resource_id)
        attributes = copy.deepcopy(properties)
        attributes["id"] = self.resource_uri(resource_id)
        attributes["name"] = resource_id.name
        attributes["type"] = resource_id.type
        attributes["provisioningState"] = "Succeeded"
        with self._lock:
            self._resources[resource_id.address] = attributes
        return copy.deepcopy(attributes)

    def delete(self, resource_id: ResourceId) -> None:
        self._enter("delete", resource_id)
        with self._lock:
            self._resources.pop(resource_id.address, None)

    def exists(self, address: str) -> bool:
        with self._lock:
            return address in self._resources

    def calls_for(self, operation: str) -> List[str]:
        """Addresses called for one operation, in call order."""
        with self._lock:
            return [address for op, address in self.calls if op == operation]
