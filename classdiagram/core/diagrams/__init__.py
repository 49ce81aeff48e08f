"""Class diagram output.

Public API:
  DiagramService: analysis cache, formatting and image rendering
  get_formatter(name, settings): ascii, plantuml or info formatter
  render_puml(puml, output_format): PlantUML text to SVG/PNG bytes
"""

from .formatters import (
    AsciiFormatter,
    DiagramFormatter,
    InfoFormatter,
    PlantUmlFormatter,
    get_formatter,
    sanitize_plantuml,
)
from .renderer import PlantUmlRenderError, render_puml
from .service import DiagramService

__all__ = [
    "AsciiFormatter",
    "DiagramFormatter",
    "DiagramService",
    "InfoFormatter",
    "PlantUmlFormatter",
    "PlantUmlRenderError",
    "get_formatter",
    "render_puml",
    "sanitize_plantuml",
]
