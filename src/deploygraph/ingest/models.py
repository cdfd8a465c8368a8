"""Pydantic models for parsed templates and resource nodes."""

from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple
from pydantic import BaseModel, Field


class TargetScope(str, Enum):
    """Deployment scope declared by a template."""
    RESOURCE_GROUP = "resourceGroup"
    SUBSCRIPTION = "subscription"


class ResourceId(BaseModel):
    """Identity of a declared resource: type + name, unique within one scope."""
    type: str = Field(..., description="Resource type, e.g. 'Microsoft.Network/virtualNetworks'")
    name: str = Field(..., description="Resource name; child resources use 'parent/child'")

    class Config:
        frozen = True

    @property
    def address(self) -> str:
        """ARM-style path: 'Microsoft.Network/virtualNetworks/vnet/subnets/snet'."""
        type_segments = self.type.split("/")
        name_segments = self.name.split("/")
        if len(type_segments) - 1 != len(name_segments):
            return f"{self.type}/{self.name}"
        parts = type_segments[:2] + [name_segments[0]]
        for child_type, child_name in zip(type_segments[2:], name_segments[1:]):
            parts.extend([child_type, child_name])
        return "/".join(parts)

    @property
    def parent(self) -> Optional["ResourceId"]:
        """Parent resource id for child types ('vnet/subnet'), else None."""
        type_segments = self.type.split("/")
        name_segments = self.name.split("/")
        if len(type_segments) <= 2 or len(name_segments) < 2:
            return None
        return ResourceId(type="/".join(type_segments[:-1]), name="/".join(name_segments[:-1]))

    @classmethod
    def from_address(cls, address: str) -> "ResourceId":
        """Inverse of address: 'Namespace/type/name[/childType/childName]...'."""
        segments = address.strip().strip("/").split("/")
        if len(segments) < 3:
            raise ValueError(f"Not a resource address: {address!r}")
        # namespace + type, then alternating name / child type segments
        type_segments = segments[:2]
        name_segments = [segments[2]]
        rest = segments[3:]
        if len(rest) % 2 != 0:
            raise ValueError(f"Not a resource address: {address!r}")
        for child_type, child_name in zip(rest[0::2], rest[1::2]):
            type_segments.append(child_type)
            name_segments.append(child_name)
        return cls(type="/".join(type_segments), name="/".join(name_segments))

    def __str__(self) -> str:
        return self.address


class Reference(BaseModel):
    """Unresolved pointer from a property value to another node or one of its outputs."""
    target: ResourceId = Field(..., description="Referenced resource")
    attribute: str = Field(default="id", description="Dotted output attribute path on the target")

    class Config:
        frozen = True

    def __str__(self) -> str:
        return f"ref({self.target.address}).{self.attribute}"


class ParameterType(str, Enum):
    """Declared parameter types."""
    STRING = "string"
    INT = "int"
    BOOL = "bool"
    OBJECT = "object"
    ARRAY = "array"
    SECURE_STRING = "secureString"
    SECURE_OBJECT = "secureObject"


class ParameterDeclaration(BaseModel):
    """Template parameter declaration."""
    type: ParameterType = Field(default=ParameterType.STRING)
    defaultValue: Any = Field(default=None)
    allowedValues: Optional[List[Any]] = Field(default=None)
    sensitive: bool = Field(default=False, description="Value is redacted in reports and never stored in state")
    description: Optional[str] = Field(default=None)

    @property
    def is_sensitive(self) -> bool:
        return self.sensitive or self.type in (ParameterType.SECURE_STRING, ParameterType.SECURE_OBJECT)

    @property
    def has_default(self) -> bool:
        return "defaultValue" in self.model_fields_set


class ResourceNode(BaseModel):
    """One declared resource with literal properties and unresolved references."""
    id: ResourceId
    properties: Dict[str, Any] = Field(default_factory=dict, description="Desired properties (may hold Reference values)")
    depends_on: Tuple[ResourceId, ...] = Field(default_factory=tuple, description="Explicit dependencies")
    declaration_index: int = Field(default=0, ge=0)
    sensitive_paths: Tuple[str, ...] = Field(default_factory=tuple, description="Dotted paths holding sensitive values")

    class Config:
        frozen = True

    @property
    def address(self) -> str:
        return self.id.address

    def references(self) -> List[Reference]:
        """All references found inside property values, in document order."""
        return list(iter_references(self.properties))

    def is_sensitive_path(self, path: str) -> bool:
        for sensitive in self.sensitive_paths:
            if path == sensitive or path.startswith(sensitive + ".") or sensitive.startswith(path + "."):
                return True
        return False


class Template(BaseModel):
    """Parsed template: scope, resolved inputs and ordered resource nodes."""
    target_scope: TargetScope = Field(default=TargetScope.RESOURCE_GROUP)
    scope_id: str = Field(..., description="Deployment scope identifier")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Resolved parameter values")
    sensitive_parameters: List[str] = Field(default_factory=list)
    variables: Dict[str, Any] = Field(default_factory=dict)
    nodes: List[ResourceNode] = Field(default_factory=list)

    def get_node(self, address: str) -> Optional[ResourceNode]:
        for node in self.nodes:
            if node.address == address:
                return node
        return None

    def redacted_parameters(self) -> Dict[str, Any]:
        return {
            name: ("(sensitive)" if name in self.sensitive_parameters else value)
            for name, value in self.parameters.items()
        }


def iter_references(value: Any) -> Iterator[Reference]:
    """Recursively yield Reference objects inside dicts and lists."""
    if isinstance(value, Reference):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_references(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_references(item)
