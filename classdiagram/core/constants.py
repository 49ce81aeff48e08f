"""Shared constants for classdiagram.

Defaults used across the introspection, formatting and configuration
modules. Values here are overridable through DiagramSettings.
"""

# =============================================================================
# Display Defaults
# =============================================================================

# Members (fields + properties) shown per class before "+K more"
DEFAULT_MEMBER_LIMIT = 8

# Methods shown per class before "+K more"
DEFAULT_METHOD_LIMIT = 10

# Total ASCII box width, border glyphs included
DEFAULT_BOX_WIDTH = 50

# Narrowest box that still leaves room for a truncated line
MIN_BOX_WIDTH = 10

DEFAULT_FORMAT = "ascii"

# =============================================================================
# Introspection
# =============================================================================

# Parameter name used when the source provides none
PARAMETER_PLACEHOLDER = "param"

# Leading character of compiler/interpreter-synthesized names
SYNTHETIC_NAME_MARKER = "<"

# Type name shown when no annotation is available
UNKNOWN_TYPE_NAME = "Any"

# sys.modules prefix for modules loaded from file paths; stripped from namespaces
LOADED_MODULE_PREFIX = "_classdiagram_loaded_."

# =============================================================================
# PlantUML Rendering
# =============================================================================

DEFAULT_PLANTUML_SERVER = "https://www.plantuml.com/plantuml"

DEFAULT_RENDER_TIMEOUT = 30.0

IMAGE_FORMATS = ("svg", "png")

# =============================================================================
# Environment Variables
# =============================================================================

ENV_CONFIG_PATH = "CLASSDIAGRAM_CONFIG"
ENV_MEMBER_LIMIT = "CLASSDIAGRAM_MEMBER_LIMIT"
ENV_METHOD_LIMIT = "CLASSDIAGRAM_METHOD_LIMIT"
ENV_BOX_WIDTH = "CLASSDIAGRAM_BOX_WIDTH"
ENV_FORMAT = "CLASSDIAGRAM_FORMAT"
ENV_PLANTUML_SERVER = "PLANTUML_SERVER_URL"

# =============================================================================
# Output Formats
# =============================================================================

FORMAT_NAMES = ("ascii", "plantuml", "info")
