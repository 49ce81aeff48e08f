"""Base interface for type descriptors.

A TypeDescriptor is the only thing the extractors know about a type.
Implementations adapt a concrete source of type information:

- PythonTypeDescriptor:   live Python classes (inspect / typing)
- SourceTypeDescriptor:   classes parsed from .py files with tree-sitter
- MetadataTypeDescriptor: precomputed YAML/JSON metadata tables

The raw records below mirror what a reflection API reports. Access levels,
type-name normalization and filtering are applied later by the extractors.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class Visibility(Enum):
    """Declared visibility as reported by the type source."""
    PUBLIC = "public"
    PRIVATE = "private"
    FAMILY = "family"      # visible to subclasses (protected)
    ASSEMBLY = "assembly"  # anything else: internal, package-private, ...


@dataclass
class FieldInfo:
    name: str
    type: Any  # raw annotation: typing object, class, string or TypeRef
    visibility: Visibility = Visibility.PUBLIC
    is_static: bool = False
    is_read_only: bool = False
    is_special_name: bool = False


@dataclass
class AccessorInfo:
    """A property getter or setter."""
    visibility: Visibility = Visibility.PUBLIC
    is_static: bool = False


@dataclass
class PropertyInfo:
    name: str
    type: Any
    getter: Optional[AccessorInfo] = None
    setter: Optional[AccessorInfo] = None
    is_special_name: bool = False


@dataclass
class ParameterInfo:
    name: Optional[str]  # None when the source records no name
    type: Any


@dataclass
class MethodInfo:
    name: str
    return_type: Any
    parameters: List[ParameterInfo] = field(default_factory=list)
    visibility: Visibility = Visibility.PUBLIC
    is_static: bool = False
    is_abstract: bool = False
    is_overridable: bool = False
    is_final: bool = False
    is_special_name: bool = False


class TypeDescriptor(ABC):
    """Abstract capability over one introspectable type.

    Subclasses implement:
    - name / namespace: simple type name and its containing namespace
    - is_abstract / is_interface / is_sealed: type-level flags
    - base_type_name(): direct base class name, None for roots and interfaces
    - interface_names(): every implemented interface
    - declared_fields() / declared_properties() / declared_methods()
    """

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def namespace(self) -> Optional[str]:
        ...

    @property
    @abstractmethod
    def is_abstract(self) -> bool:
        ...

    @property
    @abstractmethod
    def is_interface(self) -> bool:
        ...

    @property
    @abstractmethod
    def is_sealed(self) -> bool:
        ...

    @abstractmethod
    def base_type_name(self) -> Optional[str]:
        ...

    @abstractmethod
    def interface_names(self) -> List[str]:
        ...

    @abstractmethod
    def declared_fields(self) -> List[FieldInfo]:
        """Fields of any visibility, instance and static."""
        ...

    @abstractmethod
    def declared_properties(self) -> List[PropertyInfo]:
        """Properties of any visibility, instance and static."""
        ...

    @abstractmethod
    def declared_methods(self) -> List[MethodInfo]:
        """Methods declared directly on this type, not inherited ones."""
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.namespace or ''}.{self.name}>"
