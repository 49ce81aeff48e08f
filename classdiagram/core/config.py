"""Settings for diagram generation.

Resolution order, later wins:
    1. Built-in defaults (constants.py)
    2. YAML file: explicit path, $CLASSDIAGRAM_CONFIG, or config/classdiagram.yaml
    3. Environment variables (a .env file is loaded first)
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from .constants import (
    DEFAULT_BOX_WIDTH,
    DEFAULT_FORMAT,
    DEFAULT_MEMBER_LIMIT,
    DEFAULT_METHOD_LIMIT,
    DEFAULT_PLANTUML_SERVER,
    DEFAULT_RENDER_TIMEOUT,
    ENV_BOX_WIDTH,
    ENV_CONFIG_PATH,
    ENV_FORMAT,
    ENV_MEMBER_LIMIT,
    ENV_METHOD_LIMIT,
    ENV_PLANTUML_SERVER,
    FORMAT_NAMES,
    MIN_BOX_WIDTH,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "classdiagram.yaml"


@dataclass(frozen=True)
class DiagramSettings:
    """Display limits, box width and PlantUML server options."""
    member_limit: int = DEFAULT_MEMBER_LIMIT
    method_limit: int = DEFAULT_METHOD_LIMIT
    box_width: int = DEFAULT_BOX_WIDTH
    default_format: str = DEFAULT_FORMAT
    plantuml_server_url: str = DEFAULT_PLANTUML_SERVER
    render_timeout: float = DEFAULT_RENDER_TIMEOUT

    def __post_init__(self):
        if self.member_limit < 0:
            raise ValueError(f"member_limit must be >= 0, got {self.member_limit}")
        if self.method_limit < 0:
            raise ValueError(f"method_limit must be >= 0, got {self.method_limit}")
        if self.box_width < MIN_BOX_WIDTH:
            raise ValueError(f"box_width must be >= {MIN_BOX_WIDTH}, got {self.box_width}")
        if self.default_format not in FORMAT_NAMES:
            raise ValueError(
                f"Unknown format '{self.default_format}'. "
                f"Valid formats: {', '.join(FORMAT_NAMES)}"
            )
        if self.render_timeout <= 0:
            raise ValueError(f"render_timeout must be positive, got {self.render_timeout}")

    def with_overrides(self, **overrides: Any) -> "DiagramSettings":
        """Copy with the given fields replaced; None values are ignored."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ValueError(f"Cannot read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def _settings_from_yaml(data: Dict[str, Any]) -> Dict[str, Any]:
    display = data.get("display") or {}
    plantuml = data.get("plantuml") or {}

    values: Dict[str, Any] = {}
    if "member_limit" in display:
        values["member_limit"] = int(display["member_limit"])
    if "method_limit" in display:
        values["method_limit"] = int(display["method_limit"])
    if "box_width" in display:
        values["box_width"] = int(display["box_width"])
    if "format" in display:
        values["default_format"] = str(display["format"]).lower()
    if "server_url" in plantuml:
        values["plantuml_server_url"] = str(plantuml["server_url"]).rstrip("/")
    if "timeout" in plantuml:
        values["render_timeout"] = float(plantuml["timeout"])
    return values


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from None


def _settings_from_env() -> Dict[str, Any]:
    values: Dict[str, Any] = {
        "member_limit": _env_int(ENV_MEMBER_LIMIT),
        "method_limit": _env_int(ENV_METHOD_LIMIT),
        "box_width": _env_int(ENV_BOX_WIDTH),
    }
    fmt = os.getenv(ENV_FORMAT)
    if fmt:
        values["default_format"] = fmt.strip().lower()
    server = os.getenv(ENV_PLANTUML_SERVER)
    if server:
        values["plantuml_server_url"] = server.strip().rstrip("/")
    return {k: v for k, v in values.items() if v is not None}


def load_settings(path: Optional[Union[str, Path]] = None) -> DiagramSettings:
    """Build DiagramSettings from YAML and environment.

    Args:
        path: Explicit YAML file. Falls back to $CLASSDIAGRAM_CONFIG, then
            config/classdiagram.yaml; a missing default file is not an error.

    Raises:
        ValueError: Unreadable config, or values out of range
    """
    load_dotenv()

    explicit = path or os.getenv(ENV_CONFIG_PATH)
    config_path = Path(explicit) if explicit else DEFAULT_CONFIG_PATH

    values: Dict[str, Any] = {}
    if config_path.exists():
        values.update(_settings_from_yaml(_read_yaml(config_path)))
        logger.debug("Loaded settings from %s", config_path)
    elif explicit:
        raise ValueError(f"Config file not found: {config_path}")
    else:
        logger.debug("No config file at %s, using defaults", config_path)

    values.update(_settings_from_env())
    return DiagramSettings(**values)
