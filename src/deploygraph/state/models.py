"""Last-known provider-side state of deployed resources."""

import copy
import threading
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, PrivateAttr
from ..ingest.models import ResourceId


class ObservedResource(BaseModel):
    """Provider-side attributes of one resource."""
    type: str = Field(..., description="Resource type")
    name: str = Field(..., description="Resource name")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Observed attributes, including generated 'id'")
    dependencies: List[str] = Field(default_factory=list, description="Addresses this resource depended on when applied")

    @property
    def resource_id(self) -> ResourceId:
        return ResourceId(type=self.type, name=self.name)

    @property
    def address(self) -> str:
        return self.resource_id.address


class RemoteState(BaseModel):
    """Mapping of resource address to observed resource.

    Writes go through a lock so concurrent completions are applied one at
    a time. Readers that need a stable view should take snapshot().
    """
    scope_id: Optional[str] = Field(default=None)
    serial: int = Field(default=0, ge=0, description="Incremented on every write")
    resources: Dict[str, ObservedResource] = Field(default_factory=dict)

    _lock: Any = PrivateAttr(default_factory=threading.RLock)

    def get(self, address: str) -> Optional[ObservedResource]:
        with self._lock:
            return self.resources.get(address)

    def put(self, resource: ObservedResource) -> None:
        with self._lock:
            self.resources[resource.address] = resource
            self.serial += 1

    def remove(self, address: str) -> Optional[ObservedResource]:
        with self._lock:
            removed = self.resources.pop(address, None)
            if removed is not None:
                self.serial += 1
            return removed

    def addresses(self) -> List[str]:
        with self._lock:
            return list(self.resources)

    def snapshot(self) -> "RemoteState":
        """Deep copy safe to read while other threads write."""
        with self._lock:
            return RemoteState(
                scope_id=self.scope_id,
                serial=self.serial,
                resources=copy.deepcopy(self.resources),
            )

    def __contains__(self, address: str) -> bool:
        with self._lock:
            return address in self.resources

    def __len__(self) -> int:
        with self._lock:
            return len(self.resources)
