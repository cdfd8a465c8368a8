from .models import ResourceId, Reference, ResourceNode, ParameterDeclaration, ParameterType, TargetScope, Template
from .template_loader import load_template
from .template_parser import parse_template

__all__ = [
    "ResourceId",
    "Reference",
    "ResourceNode",
    "ParameterDeclaration",
    "ParameterType",
    "TargetScope",
    "Template",
    "load_template",
    "parse_template",
]
