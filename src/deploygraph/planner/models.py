"""Pydantic models for plans."""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from ..ingest.models import ResourceId, ResourceNode


class Action(str, Enum):
    """Planned operation types."""
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"
    NO_OP = "no-op"


class PropertyChange(BaseModel):
    """One differing leaf property."""
    path: str = Field(..., description="Dotted property path")
    before: Any = Field(default=None, description="Observed value (None when absent or sensitive)")
    after: Any = Field(default=None, description="Desired value (None when unknown or sensitive)")
    after_unknown: bool = Field(default=False, description="Desired value depends on a resource not yet applied")
    forces_replacement: bool = Field(default=False)
    sensitive: bool = Field(default=False)


class Operation(BaseModel):
    """A single planned operation bound to one resource."""
    address: str
    resource_type: str
    name: str
    action: Action
    changes: List[PropertyChange] = Field(default_factory=list)
    depends_on: List[str] = Field(default_factory=list, description="Addresses of operations that must succeed first")
    resource_dependencies: List[str] = Field(default_factory=list, description="Direct dependencies recorded in state after apply")
    node: Optional[ResourceNode] = Field(default=None, exclude=True, description="Desired node (absent for deletes)")

    @property
    def resource_id(self) -> ResourceId:
        return ResourceId(type=self.resource_type, name=self.name)

    @property
    def is_change(self) -> bool:
        return self.action != Action.NO_OP


class Plan(BaseModel):
    """Ordered operations: creates/updates/replaces in topological order, then deletes."""
    scope_id: Optional[str] = Field(default=None)
    target_scope: Optional[str] = Field(default=None)
    operations: List[Operation] = Field(default_factory=list)

    @property
    def changes(self) -> List[Operation]:
        return [op for op in self.operations if op.is_change]

    @property
    def has_changes(self) -> bool:
        return any(op.is_change for op in self.operations)

    def get(self, address: str) -> Optional[Operation]:
        for op in self.operations:
            if op.address == address:
                return op
        return None

    def summary(self) -> Dict[str, int]:
        counts = {action.value: 0 for action in Action}
        for op in self.operations:
            counts[op.action.value] += 1
        return counts
