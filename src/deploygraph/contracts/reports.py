"""Pydantic models for plan and apply reports (versioned, stable, explicit)."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from ..executor.models import ApplyResult, OperationResult
from ..ingest.models import Template
from ..planner.models import Operation, Plan

REPORT_VERSION = "1.0.0"


class PlanReport(BaseModel):
    """Machine-readable plan report."""
    version: str = Field(default=REPORT_VERSION, description="Report contract version")
    scope_id: Optional[str] = Field(default=None, description="Deployment scope identifier")
    target_scope: Optional[str] = Field(default=None, description="resourceGroup or subscription")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Resolved parameters, sensitive values redacted")
    has_changes: bool = Field(default=False)
    summary: Dict[str, int] = Field(default_factory=dict, description="Operation count per action")
    operations: List[Operation] = Field(default_factory=list, description="Operations in execution order")

    @classmethod
    def from_plan(cls, plan: Plan, template: Optional[Template] = None) -> "PlanReport":
        return cls(
            scope_id=plan.scope_id,
            target_scope=plan.target_scope,
            parameters=template.redacted_parameters() if template else {},
            has_changes=plan.has_changes,
            summary=plan.summary(),
            operations=plan.operations,
        )


class ApplyReport(BaseModel):
    """Machine-readable apply report, one result per planned operation."""
    version: str = Field(default=REPORT_VERSION, description="Report contract version")
    scope_id: Optional[str] = Field(default=None)
    succeeded: bool = Field(default=True, description="True when nothing failed, was blocked or was cancelled")
    cancelled: bool = Field(default=False)
    summary: Dict[str, int] = Field(default_factory=dict, description="Result count per status")
    results: List[OperationResult] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: ApplyResult, plan: Optional[Plan] = None) -> "ApplyReport":
        return cls(
            scope_id=plan.scope_id if plan else None,
            succeeded=result.succeeded,
            cancelled=result.cancelled,
            summary=result.counts(),
            results=result.results,
        )
