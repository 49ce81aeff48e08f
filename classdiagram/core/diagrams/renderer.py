"""PlantUML text -> SVG/PNG via a PlantUML server.

The diagram text is deflate-compressed and encoded with PlantUML's own
base64 alphabet, then fetched with a GET on {server}/{format}/{encoded}.

Server resolution order:
  1. server_url argument
  2. PLANTUML_SERVER_URL env var
  3. the public PlantUML server
"""

import logging
import os
import zlib
from typing import Optional

import httpx

from ..constants import (
    DEFAULT_PLANTUML_SERVER,
    DEFAULT_RENDER_TIMEOUT,
    ENV_PLANTUML_SERVER,
    IMAGE_FORMATS,
)
from .formatters import sanitize_plantuml

logger = logging.getLogger(__name__)

_PLANTUML_ALPHABET = (
    "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"
)

_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class PlantUmlRenderError(RuntimeError):
    """The PlantUML server could not be reached or returned no image."""


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _encode6bit(b: int) -> str:
    """Encode a 6-bit value to PlantUML's custom base64 character."""
    return _PLANTUML_ALPHABET[b & 0x3F]


def _encode3bytes(b1: int, b2: int, b3: int) -> str:
    """Encode 3 bytes into 4 PlantUML base64 characters."""
    c1 = b1 >> 2
    c2 = ((b1 & 0x3) << 4) | (b2 >> 4)
    c3 = ((b2 & 0xF) << 2) | (b3 >> 6)
    c4 = b3 & 0x3F
    return _encode6bit(c1) + _encode6bit(c2) + _encode6bit(c3) + _encode6bit(c4)


def plantuml_encode(text: str) -> str:
    """Encode PlantUML text using deflate + custom base64 for URL embedding."""
    data = zlib.compress(text.encode("utf-8"))[2:-4]  # raw deflate

    result = []
    for i in range(0, len(data), 3):
        if i + 2 < len(data):
            result.append(_encode3bytes(data[i], data[i + 1], data[i + 2]))
        elif i + 1 < len(data):
            result.append(_encode3bytes(data[i], data[i + 1], 0))
        else:
            result.append(_encode3bytes(data[i], 0, 0))

    return "".join(result)


def image_url(puml: str, output_format: str = "svg", server_url: Optional[str] = None) -> str:
    """Server URL that renders the (sanitized) diagram text."""
    server = server_url or os.environ.get(ENV_PLANTUML_SERVER, DEFAULT_PLANTUML_SERVER)
    server = server.rstrip("/")
    return f"{server}/{output_format}/{plantuml_encode(sanitize_plantuml(puml))}"


# ---------------------------------------------------------------------------
# HTTP rendering
# ---------------------------------------------------------------------------


def _looks_like(output_format: str, content: bytes) -> bool:
    if output_format == "png":
        return content.startswith(_PNG_SIGNATURE)
    head = content[:500].decode("utf-8", errors="replace")
    return head.strip().startswith("<") and "<svg" in head


def render_puml(
    puml: str,
    output_format: str = "svg",
    server_url: Optional[str] = None,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_RENDER_TIMEOUT,
) -> bytes:
    """Render PlantUML text to an image.

    Args:
        puml: PlantUML source text (including @startuml/@enduml).
        output_format: "svg" or "png".
        server_url: PlantUML server base URL. Defaults to PLANTUML_SERVER_URL
                    env var or the public PlantUML server.
        client: Optional httpx.Client to reuse (tests pass a mock transport).
        timeout: Request timeout in seconds when no client is given.

    Returns:
        Image bytes.

    Raises:
        ValueError: Unsupported output format.
        PlantUmlRenderError: Request failed or the server returned no image.
    """
    output_format = output_format.lower()
    if output_format not in IMAGE_FORMATS:
        raise ValueError(
            f"Unsupported image format '{output_format}'. "
            f"Valid formats: {', '.join(IMAGE_FORMATS)}"
        )

    url = image_url(puml, output_format, server_url)
    logger.debug("Rendering PlantUML via HTTP (%s, url len=%d)", output_format, len(url))

    try:
        if client is not None:
            response = client.get(url, follow_redirects=True)
        else:
            response = httpx.get(url, timeout=timeout, follow_redirects=True)
    except httpx.RequestError as e:
        raise PlantUmlRenderError(f"PlantUML server request failed: {e}") from e

    content = response.content
    if _looks_like(output_format, content):
        if response.status_code != 200:
            # PlantUML draws syntax errors into the image itself
            logger.warning(
                "PlantUML server returned %d but with %s content, using it",
                response.status_code,
                output_format.upper(),
            )
        return content

    if response.status_code != 200:
        raise PlantUmlRenderError(
            f"PlantUML server returned {response.status_code} with non-{output_format} body"
        )

    raise PlantUmlRenderError(
        f"PlantUML server returned unexpected content: {content[:200]!r}"
    )
