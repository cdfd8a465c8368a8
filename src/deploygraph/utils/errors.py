"""Custom exception classes for deploygraph."""

from typing import List, Optional


class DeployGraphError(Exception):
    """Base exception for all deploygraph errors."""
    pass


class ParseError(DeployGraphError):
    """Raised when a template cannot be loaded or its structure is malformed."""
    pass


class UnknownTypeError(ParseError):
    """Raised when a template declares a resource type the catalog does not know."""

    def __init__(self, resource_type: str, resource_name: Optional[str] = None):
        self.resource_type = resource_type
        self.resource_name = resource_name
        where = f" (resource '{resource_name}')" if resource_name else ""
        super().__init__(f"Unknown resource type: {resource_type}{where}")


class DuplicateNameError(ParseError):
    """Raised when two resources share one identifier within the same scope."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Duplicate resource identifier: {address}")


class GraphError(DeployGraphError):
    """Raised when the dependency graph cannot be built or ordered."""
    pass


class CycleError(GraphError):
    """Raised when resource dependencies form a cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        path = " -> ".join(self.cycle + self.cycle[:1])
        super().__init__(f"Dependency cycle detected: {path}")


class ReferenceResolutionError(GraphError):
    """Raised when a reference or dependency points at nothing."""

    def __init__(self, source: str, target: str, detail: Optional[str] = None):
        self.source = source
        self.target = target
        message = f"Resource {source} references unknown resource {target}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ProviderError(DeployGraphError):
    """Raised when a provider call fails."""
    pass


class RetryableProviderError(ProviderError):
    """Provider failure worth retrying (throttling, transient outage)."""
    pass


class FatalProviderError(ProviderError):
    """Provider failure that will not succeed on retry."""
    pass


class OperationTimeoutError(ProviderError):
    """Raised when an operation exceeds its time budget."""
    pass


class BlockedError(DeployGraphError):
    """Recorded for operations skipped because an upstream operation failed."""

    def __init__(self, address: str, upstream: List[str]):
        self.address = address
        self.upstream = list(upstream)
        super().__init__(f"{address} blocked by failed upstream: {', '.join(self.upstream)}")


class StateError(DeployGraphError):
    """Raised when a state file cannot be read or written."""
    pass


class ConfigError(DeployGraphError):
    """Raised when configuration is invalid or missing."""
    pass
