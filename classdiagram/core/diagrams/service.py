"""DiagramService: analysis cache plus formatting and image rendering.

Analyzed classes are kept by key ("Name (namespace)"); analyzing the same
class again overwrites its entry. Loading a module, source file or metadata
table replaces the whole cache, but only once every type in it analyzed
successfully.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import httpx

from ..config import DiagramSettings
from ..introspection import describe
from ..introspection.base import TypeDescriptor
from ..introspection.extractor import TypeAnalyzer
from ..introspection.loader import (
    AnalysisError,
    exported_types,
    find_type,
    load_metadata_types,
    load_module,
    load_source_types,
)
from ..introspection.models import DiagramModel
from .formatters import get_formatter
from .renderer import render_puml

logger = logging.getLogger(__name__)

LOAD_MODES = ("auto", "runtime", "source", "metadata")

_METADATA_SUFFIXES = {".yaml", ".yml", ".json"}


def resolve_mode(target: Union[str, Path], mode: str = "auto") -> str:
    """Pick the load mode; "auto" goes by file extension."""
    if mode not in LOAD_MODES:
        raise ValueError(f"Unknown load mode '{mode}'. Must be one of: {', '.join(LOAD_MODES)}")
    if mode != "auto":
        return mode
    if Path(target).suffix.lower() in _METADATA_SUFFIXES:
        return "metadata"
    return "runtime"


class DiagramService:
    """Analyzes types and keeps the resulting DiagramModels."""

    def __init__(
        self,
        settings: Optional[DiagramSettings] = None,
        analyzer: Optional[TypeAnalyzer] = None,
    ):
        self.settings = settings or DiagramSettings()
        self._analyzer = analyzer or TypeAnalyzer()
        self._cache: Dict[str, DiagramModel] = {}

    # -- cache ---------------------------------------------------------------

    def keys(self) -> List[str]:
        return sorted(self._cache)

    def get(self, key: str) -> Optional[DiagramModel]:
        return self._cache.get(key)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    # -- analysis ------------------------------------------------------------

    def analyze(self, obj: Any) -> DiagramModel:
        """Analyze a class or TypeDescriptor and cache the result.

        Raises:
            TypeError: If obj is neither a class nor a TypeDescriptor
        """
        diagram = self._analyzer.analyze(describe(obj))
        self._cache[diagram.key] = diagram
        return diagram

    def analyze_type(self, type_name: str) -> Optional[DiagramModel]:
        """Look a class up by name and analyze it; None when not found."""
        cls = find_type(type_name)
        if cls is None:
            logger.info("Type '%s' not found", type_name)
            return None
        return self.analyze(cls)

    def _descriptors(self, target: Union[str, Path], mode: str) -> List[TypeDescriptor]:
        if mode == "metadata":
            return list(load_metadata_types(target))
        if mode == "source":
            return list(load_source_types(target))
        module = load_module(target)
        return [describe(cls) for cls in exported_types(module)]

    def load(self, target: Union[str, Path], mode: str = "auto") -> List[DiagramModel]:
        """Analyze every public type in a module, source file or metadata table.

        Args:
            target: Dotted module name, .py path, or YAML/JSON metadata table
            mode: "auto", "runtime", "source" or "metadata"

        Returns:
            DiagramModels in declaration order

        Raises:
            AnalysisError: Loading or analyzing any type failed; the cache
                is left untouched
        """
        resolved = resolve_mode(target, mode)
        descriptors = self._descriptors(target, resolved)

        try:
            diagrams = self._analyzer.analyze_many(descriptors)
        except AnalysisError:
            raise
        except Exception as e:
            raise AnalysisError(f"Failed to analyze types from '{target}': {e}") from e

        self._cache = {d.key: d for d in diagrams}
        logger.info("Loaded %d types from %s (%s)", len(diagrams), target, resolved)
        return diagrams

    # -- output --------------------------------------------------------------

    def format(
        self,
        diagrams: Union[DiagramModel, Iterable[DiagramModel]],
        fmt: Optional[str] = None,
    ) -> str:
        """Render diagrams as ascii, plantuml or info text.

        Raises:
            ValueError: Unknown format name
        """
        if isinstance(diagrams, DiagramModel):
            diagrams = [diagrams]
        formatter = get_formatter(fmt or self.settings.default_format, self.settings)
        return formatter.format_multiple(list(diagrams))

    def render_image(
        self,
        puml: str,
        output_format: str = "svg",
        client: Optional[httpx.Client] = None,
    ) -> bytes:
        """Render PlantUML text through the configured server.

        Raises:
            PlantUmlRenderError: Server unreachable or no image returned
        """
        return render_puml(
            puml,
            output_format=output_format,
            server_url=self.settings.plantuml_server_url,
            client=client,
            timeout=self.settings.render_timeout,
        )
