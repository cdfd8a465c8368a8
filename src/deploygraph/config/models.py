"""Typed engine configuration."""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class ExecutorSettings(BaseModel):
    """Worker pool and per-operation limits."""
    max_concurrency: int = Field(default=4, ge=1, description="Maximum operations running at once")
    operation_timeout: Optional[float] = Field(default=600, gt=0, description="Seconds per operation (None disables)")


class RetrySettings(BaseModel):
    """Backoff for retryable provider errors."""
    max_attempts: int = Field(default=4, ge=1, description="Attempts including the first call")
    backoff_multiplier: float = Field(default=1.0, ge=0, description="Exponential backoff multiplier (seconds)")
    backoff_max: float = Field(default=30.0, ge=0, description="Upper bound for a single backoff wait")


class ResourceTypeSettings(BaseModel):
    """User-declared resource type, merged over the built-in catalog."""
    immutable: List[str] = Field(default_factory=list)
    scopes: List[str] = Field(default_factory=lambda: ["resourceGroup"])


class EngineConfig(BaseModel):
    """Complete engine configuration."""
    executor: ExecutorSettings = Field(default_factory=ExecutorSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    resource_types: Dict[str, ResourceTypeSettings] = Field(default_factory=dict)
