"""Type lookup and module loading.

The host-side counterpart of the extractors: finds classes by name,
imports modules (by dotted name or file path) and reads source files or
metadata tables into descriptors. Loading is all-or-nothing; any failure
surfaces as a single AnalysisError.
"""

import builtins
import importlib
import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import List, Optional, Union

import yaml

from ..constants import LOADED_MODULE_PREFIX
from .metadata_descriptor import MetadataError, MetadataTypeDescriptor, descriptors_from_table
from .source_descriptor import SourceTypeDescriptor, parse_source_types

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class AnalysisError(Exception):
    """Loading or analyzing a module, source file or metadata table failed."""


def find_type(type_name: str) -> Optional[type]:
    """Resolve a class by name; None when nothing matches.

    Accepts "pkg.module:Class", "pkg.module.Class" (nested classes too),
    builtin names ("dict") and bare names searched across already
    imported modules.
    """
    type_name = type_name.strip()
    if not type_name:
        return None

    if ":" in type_name:
        module_name, _, qualname = type_name.partition(":")
        return _resolve_in_module(module_name, qualname)

    parts = type_name.split(".")
    for split in range(len(parts) - 1, 0, -1):
        found = _resolve_in_module(".".join(parts[:split]), ".".join(parts[split:]))
        if found is not None:
            return found

    candidate = getattr(builtins, type_name, None)
    if inspect.isclass(candidate):
        return candidate

    for module in list(sys.modules.values()):
        try:
            candidate = getattr(module, type_name, None)
        except Exception:
            # Lazy modules may fail on attribute access
            continue
        if inspect.isclass(candidate):
            return candidate

    logger.debug("Type '%s' not found", type_name)
    return None


def _resolve_in_module(module_name: str, qualname: str) -> Optional[type]:
    try:
        module = importlib.import_module(module_name)
    except Exception as e:
        logger.debug("Cannot import %s while resolving %s: %s", module_name, qualname, e)
        return None

    obj = module
    for attr in qualname.split("."):
        obj = getattr(obj, attr, None)
        if obj is None:
            return None
    return obj if inspect.isclass(obj) else None


def load_module(target: PathLike) -> ModuleType:
    """Import a module by dotted name or from a .py file path.

    Files are registered in sys.modules under a private prefix so they never
    shadow an installed module of the same name. A file that fails to execute
    is removed from sys.modules again.
    """
    path = Path(target)
    module_name = None
    try:
        if path.suffix == ".py" or path.is_file():
            if not path.is_file():
                raise FileNotFoundError(f"No such file: {path}")
            module_name = LOADED_MODULE_PREFIX + path.stem
            spec = importlib.util.spec_from_file_location(module_name, path)
            if spec is None or spec.loader is None:
                raise ImportError(f"Cannot create an import spec for {path}")
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            spec.loader.exec_module(module)
        else:
            module = importlib.import_module(str(target))
    except Exception as e:
        if module_name is not None:
            sys.modules.pop(module_name, None)
        raise AnalysisError(f"Failed to load module '{target}': {e}") from e

    logger.info("Loaded module %s", module.__name__)
    return module


def exported_types(module: ModuleType) -> List[type]:
    """Public classes defined in the module itself, in definition order."""
    return [
        obj
        for name, obj in vars(module).items()
        if inspect.isclass(obj)
        and not name.startswith("_")
        and getattr(obj, "__module__", None) == module.__name__
    ]


def load_source_types(path: PathLike) -> List[SourceTypeDescriptor]:
    """Parse a .py file without importing it; public classes only."""
    path = Path(path)
    try:
        source_text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise AnalysisError(f"Failed to read source file '{path}': {e}") from e

    descriptors = parse_source_types(source_text, namespace=path.stem)
    return [d for d in descriptors if not d.name.startswith("_")]


def load_metadata_types(path: PathLike) -> List[MetadataTypeDescriptor]:
    """Read a YAML or JSON metadata table."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            table = yaml.safe_load(f)
        return descriptors_from_table(table)
    except (OSError, yaml.YAMLError, MetadataError) as e:
        raise AnalysisError(f"Failed to load metadata table '{path}': {e}") from e
