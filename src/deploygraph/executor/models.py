"""Pydantic models for apply results."""

from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from ..planner.models import Action


class OperationStatus(str, Enum):
    """Final status of one operation."""
    APPLIED = "applied"
    FAILED = "failed"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"
    UNCHANGED = "unchanged"


SUCCESS_STATUSES = (OperationStatus.APPLIED, OperationStatus.UNCHANGED)


class OperationResult(BaseModel):
    """Outcome of one planned operation."""
    address: str
    action: Action
    status: OperationStatus
    error: Optional[str] = Field(default=None, description="Error message for failed/blocked operations")
    error_type: Optional[str] = Field(default=None, description="Exception class name")
    attempts: int = Field(default=0, ge=0, description="Provider calls made, including retries")
    duration_seconds: float = Field(default=0.0, ge=0)

    @property
    def succeeded(self) -> bool:
        return self.status in SUCCESS_STATUSES


class ApplyResult(BaseModel):
    """Per-operation outcome of an apply, in plan order."""
    results: List[OperationResult] = Field(default_factory=list)
    cancelled: bool = Field(default=False)

    @property
    def succeeded(self) -> bool:
        return all(result.succeeded for result in self.results)

    def get(self, address: str) -> Optional[OperationResult]:
        for result in self.results:
            if result.address == address:
                return result
        return None

    def by_status(self, status: OperationStatus) -> List[OperationResult]:
        return [result for result in self.results if result.status == status]

    def counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in OperationStatus}
        for result in self.results:
            counts[result.status.value] += 1
        return counts
