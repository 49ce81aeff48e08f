"""Text formatters for analyzed classes.

Takes DiagramModel instances and produces ASCII boxes, PlantUML class
diagrams or a plain info panel. Pure string building; nothing here raises
for odd input, long names are truncated instead.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from ..config import DiagramSettings
from ..constants import DEFAULT_BOX_WIDTH, FORMAT_NAMES, MIN_BOX_WIDTH
from ..introspection.models import DiagramModel

logger = logging.getLogger(__name__)

_ELLIPSIS = "..."

# Arity markers (`1, `2) are not valid in PlantUML identifiers
_ARITY_PATTERN = re.compile(r"`\d+")


def sanitize_plantuml(text: str) -> str:
    """Strip generic arity markers: IEnumerable`1 -> IEnumerable."""
    return _ARITY_PATTERN.sub("", text)


class DiagramFormatter(ABC):
    """Renders one or many DiagramModel instances as text."""

    name: str = ""

    @abstractmethod
    def format(self, diagram: DiagramModel) -> str:
        """Render a single class."""
        ...

    def format_multiple(self, diagrams: Iterable[DiagramModel]) -> str:
        """Render several classes, separated by a blank line."""
        return "\n".join(self.format(d) for d in diagrams)


# ---------------------------------------------------------------------------
# ASCII box
# ---------------------------------------------------------------------------


class AsciiFormatter(DiagramFormatter):
    """Fixed-width box drawing:

        ┌────────────────────┐
        │    <<abstract>>    │
        │       Animal       │
        ├────────────────────┤
        ├────────────────────┤
        │ + Speak(): void    │
        └────────────────────┘

    Every line is exactly `width` columns. A rule is drawn below the
    header, and again before each non-empty member or method block.
    """

    name = "ascii"

    def __init__(
        self,
        width: int = DEFAULT_BOX_WIDTH,
        member_limit: Optional[int] = None,
        method_limit: Optional[int] = None,
    ):
        if width < MIN_BOX_WIDTH:
            raise ValueError(f"Box width must be >= {MIN_BOX_WIDTH}, got {width}")
        self.width = width
        self.member_limit = member_limit
        self.method_limit = method_limit

    def _rule(self, left: str, right: str) -> str:
        return left + "─" * (self.width - 2) + right

    def _centered(self, text: str) -> str:
        inner = self.width - 2
        if len(text) > inner:
            text = text[: inner - len(_ELLIPSIS)] + _ELLIPSIS
        left = (inner - len(text)) // 2
        right = inner - len(text) - left
        return "│" + " " * left + text + " " * right + "│"

    def _line(self, text: str) -> str:
        max_len = self.width - 4
        if len(text) > max_len:
            text = text[: max_len - len(_ELLIPSIS)] + _ELLIPSIS
        return "│ " + text + " " * (self.width - len(text) - 3) + "│"

    def format(self, diagram: DiagramModel) -> str:
        lines = [self._rule("┌", "┐")]

        if diagram.stereotype:
            lines.append(self._centered(diagram.stereotype))
        lines.append(self._centered(diagram.class_name))
        lines.append(self._rule("├", "┤"))

        if diagram.base_class:
            lines.append(self._line(f"extends: {diagram.base_class}"))
        if diagram.interfaces:
            lines.append(self._line(f"implements: {', '.join(diagram.interfaces)}"))

        members, hidden_members = diagram.get_display_members(self.member_limit)
        if members or hidden_members:
            lines.append(self._rule("├", "┤"))
            lines.extend(self._line(str(m)) for m in members)
            if hidden_members:
                lines.append(self._line(f"... +{hidden_members} more fields"))

        methods, hidden_methods = diagram.get_display_methods(self.method_limit)
        if methods or hidden_methods:
            lines.append(self._rule("├", "┤"))
            lines.extend(self._line(str(m)) for m in methods)
            if hidden_methods:
                lines.append(self._line(f"... +{hidden_methods} more methods"))

        lines.append(self._rule("└", "┘"))
        return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# PlantUML
# ---------------------------------------------------------------------------


class PlantUmlFormatter(DiagramFormatter):
    """PlantUML class diagram text (@startuml ... @enduml)."""

    name = "plantuml"

    def __init__(self, member_limit: Optional[int] = None, method_limit: Optional[int] = None):
        self.member_limit = member_limit
        self.method_limit = method_limit

    def _class_block(self, diagram: DiagramModel) -> List[str]:
        lines = [f"class {diagram.class_name} {{"]

        members, hidden_members = diagram.get_display_members(self.member_limit)
        lines.extend(f"  {m}" for m in members)
        if hidden_members:
            lines.append(f"  .. +{hidden_members} more fields ..")

        methods, hidden_methods = diagram.get_display_methods(self.method_limit)
        lines.extend(f"  {m}" for m in methods)
        if hidden_methods:
            lines.append(f"  .. +{hidden_methods} more methods ..")

        lines.append("}")

        if diagram.base_class:
            lines.append(f"{diagram.class_name} --|> {diagram.base_class}")
        for interface in diagram.interfaces:
            lines.append(f"{diagram.class_name} ..|> {interface}")
        return lines

    def format(self, diagram: DiagramModel) -> str:
        return self.format_multiple([diagram])

    def format_multiple(self, diagrams: Iterable[DiagramModel]) -> str:
        lines = ["@startuml"]
        for diagram in diagrams:
            lines.extend(self._class_block(diagram))
        lines.append("@enduml")
        return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Info panel
# ---------------------------------------------------------------------------


class InfoFormatter(DiagramFormatter):
    """Plain summary listing every member and method, untruncated."""

    name = "info"

    def format(self, diagram: DiagramModel) -> str:
        lines = [
            f"Class Name: {diagram.class_name}",
            f"Namespace: {diagram.namespace or ''}",
            f"Is Abstract: {diagram.is_abstract}",
            f"Is Interface: {diagram.is_interface}",
            f"Is Static: {diagram.is_static}",
        ]
        if diagram.base_class:
            lines.append(f"Extends: {diagram.base_class}")
        if diagram.interfaces:
            lines.append(f"Implements: {', '.join(diagram.interfaces)}")

        lines.append("")
        lines.append(f"Members ({len(diagram.members)}):")
        lines.extend(f"  {m}" for m in diagram.members)
        lines.append("")
        lines.append(f"Methods ({len(diagram.methods)}):")
        lines.extend(f"  {m}" for m in diagram.methods)
        return "\n".join(lines) + "\n"


def get_formatter(name: str, settings: Optional[DiagramSettings] = None) -> DiagramFormatter:
    """Formatter for "ascii", "plantuml" or "info", configured from settings.

    Raises:
        ValueError: Unknown formatter name
    """
    settings = settings or DiagramSettings()
    key = (name or "").strip().lower()

    if key == "ascii":
        return AsciiFormatter(
            width=settings.box_width,
            member_limit=settings.member_limit,
            method_limit=settings.method_limit,
        )
    if key == "plantuml":
        return PlantUmlFormatter(
            member_limit=settings.member_limit,
            method_limit=settings.method_limit,
        )
    if key == "info":
        return InfoFormatter()

    raise ValueError(f"Unknown format '{name}'. Valid formats: {', '.join(FORMAT_NAMES)}")
