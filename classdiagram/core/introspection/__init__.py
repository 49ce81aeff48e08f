"""Type introspection: descriptors, extractors and the diagram model.

Public API:
    describe(obj) → TypeDescriptor
    analyze(obj) → DiagramModel
    normalize_type_name(type_obj) → str
    find_type(name) → type | None
"""

from typing import Any

from .base import TypeDescriptor
from .extractor import MemberExtractor, MethodExtractor, TypeAnalyzer
from .loader import (
    AnalysisError,
    exported_types,
    find_type,
    load_metadata_types,
    load_module,
    load_source_types,
)
from .metadata_descriptor import MetadataTypeDescriptor
from .models import AccessLevel, DiagramModel, Member, Method, Parameter
from .python_descriptor import PythonTypeDescriptor
from .source_descriptor import SourceTypeDescriptor, parse_source_types
from .type_names import TypeRef, normalize_type_name, parse_annotation

__all__ = [
    "describe",
    "analyze",
    "AccessLevel",
    "AnalysisError",
    "DiagramModel",
    "Member",
    "MemberExtractor",
    "Method",
    "MethodExtractor",
    "MetadataTypeDescriptor",
    "Parameter",
    "PythonTypeDescriptor",
    "SourceTypeDescriptor",
    "TypeAnalyzer",
    "TypeDescriptor",
    "TypeRef",
    "exported_types",
    "find_type",
    "load_metadata_types",
    "load_module",
    "load_source_types",
    "normalize_type_name",
    "parse_annotation",
    "parse_source_types",
]


def describe(obj: Any) -> TypeDescriptor:
    """Wrap a live class in a descriptor; descriptors pass through.

    Raises:
        TypeError: If obj is neither a class nor a TypeDescriptor
    """
    if isinstance(obj, TypeDescriptor):
        return obj
    return PythonTypeDescriptor(obj)


def analyze(obj: Any) -> DiagramModel:
    """Build the DiagramModel for a class or descriptor."""
    return TypeAnalyzer().analyze(describe(obj))
