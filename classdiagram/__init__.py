"""classdiagram: UML-style class diagrams from Python types.

Analyzes live classes, Python source files (parsed with tree-sitter) or
metadata tables into DiagramModels and renders them as ASCII boxes,
PlantUML text or a plain info panel.
"""

__version__ = "0.1.0"
