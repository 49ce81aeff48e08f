"""Diagram data models.

Renderer-agnostic representation of one analyzed class or interface.
These are pure data containers; extraction lives in extractor.py.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..constants import DEFAULT_MEMBER_LIMIT, DEFAULT_METHOD_LIMIT


class AccessLevel(Enum):
    """UML access level of a member or method."""
    PUBLIC = "public"
    PRIVATE = "private"
    PROTECTED = "protected"
    INTERNAL = "internal"


_ACCESS_PRIORITY = {
    AccessLevel.PUBLIC: 0,
    AccessLevel.PRIVATE: 1,
    AccessLevel.PROTECTED: 2,
    AccessLevel.INTERNAL: 3,
}

_ACCESS_GLYPHS = {
    AccessLevel.PUBLIC: "+ ",
    AccessLevel.PRIVATE: "- ",
    AccessLevel.PROTECTED: "# ",
    AccessLevel.INTERNAL: "~ ",
}


def access_priority(access: Optional[AccessLevel]) -> int:
    """Sort rank: Public (0), Private (1), Protected (2), Internal (3), unknown (4)."""
    return _ACCESS_PRIORITY.get(access, 4)


def access_glyph(access: Optional[AccessLevel]) -> str:
    return _ACCESS_GLYPHS.get(access, "")


@dataclass(frozen=True)
class Member:
    """A field or property."""

    name: str
    type: str
    access: Optional[AccessLevel] = AccessLevel.PUBLIC
    is_static: bool = False
    is_read_only: bool = False

    def __str__(self) -> str:
        prefix = access_glyph(self.access)
        if self.is_static:
            prefix += "[static] "
        if self.is_read_only:
            prefix += "[readonly] "
        return f"{prefix}{self.name}: {self.type}"


@dataclass(frozen=True)
class Parameter:
    name: str
    type: str


@dataclass(frozen=True)
class Method:
    """A method declared directly on the analyzed type."""

    name: str
    return_type: str
    parameters: Tuple[Parameter, ...] = ()
    access: Optional[AccessLevel] = AccessLevel.PUBLIC
    is_static: bool = False
    is_abstract: bool = False
    is_virtual: bool = False

    def __post_init__(self):
        object.__setattr__(self, "parameters", tuple(self.parameters))

    def __str__(self) -> str:
        prefix = access_glyph(self.access)
        if self.is_abstract:
            prefix += "[abstract] "
        if self.is_static:
            prefix += "[static] "
        if self.is_virtual:
            prefix += "[virtual] "
        params = ", ".join(f"{p.name}: {p.type}" for p in self.parameters)
        return f"{prefix}{self.name}({params}): {self.return_type}"


@dataclass(frozen=True)
class DiagramModel:
    """One analyzed class or interface.

    Built once by TypeAnalyzer and read-only afterwards. Members and
    methods keep discovery order; the display views below apply the
    access-priority sort and truncation used by every formatter.
    """

    class_name: str
    namespace: Optional[str] = None
    is_abstract: bool = False
    is_interface: bool = False
    is_static: bool = False  # abstract and sealed: neither instantiable nor subclassable
    base_class: Optional[str] = None
    interfaces: Tuple[str, ...] = ()
    members: Tuple[Member, ...] = field(default_factory=tuple)
    methods: Tuple[Method, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "interfaces", tuple(self.interfaces))
        object.__setattr__(self, "members", tuple(self.members))
        object.__setattr__(self, "methods", tuple(self.methods))

    @property
    def key(self) -> str:
        """Cache key: "{class_name} ({namespace})"."""
        return f"{self.class_name} ({self.namespace or ''})"

    @property
    def stereotype(self) -> str:
        if self.is_interface:
            return "<<interface>>"
        if self.is_abstract:
            return "<<abstract>>"
        return ""

    def get_display_members(self, limit: Optional[int] = None) -> Tuple[List[Member], int]:
        """Members sorted Public, Private, Protected, Internal; capped at limit.

        Returns (displayed, hidden_count).
        """
        max_items = DEFAULT_MEMBER_LIMIT if limit is None else max(0, limit)
        ordered = sorted(self.members, key=lambda m: access_priority(m.access))

        if len(ordered) <= max_items:
            return ordered, 0

        return ordered[:max_items], len(ordered) - max_items

    def get_display_methods(self, limit: Optional[int] = None) -> Tuple[List[Method], int]:
        """Methods sorted Public, Private, Protected, Internal; capped at limit.

        Returns (displayed, hidden_count).
        """
        max_items = DEFAULT_METHOD_LIMIT if limit is None else max(0, limit)
        ordered = sorted(self.methods, key=lambda m: access_priority(m.access))

        if len(ordered) <= max_items:
            return ordered, 0

        return ordered[:max_items], len(ordered) - max_items

    def __str__(self) -> str:
        if self.stereotype:
            return f"{self.stereotype} {self.class_name}"
        return self.class_name

