"""Tests for PlantUML server rendering (httpx mock transport, no network)."""

import zlib

import httpx
import pytest

from classdiagram.core.diagrams.renderer import (
    PlantUmlRenderError,
    image_url,
    plantuml_encode,
    render_puml,
)

PUML = "@startuml\nclass List`1 {\n  + Count: Int32\n}\n@enduml\n"

SVG = b'<?xml version="1.0"?><svg xmlns="http://www.w3.org/2000/svg"></svg>'
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16

_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"


def _decode(encoded: str) -> str:
    """Inverse of plantuml_encode."""
    data = bytearray()
    for i in range(0, len(encoded), 4):
        c1, c2, c3, c4 = (_ALPHABET.index(c) for c in encoded[i:i + 4])
        data.append((c1 << 2) | (c2 >> 4))
        data.append(((c2 & 0xF) << 4) | (c3 >> 2))
        data.append(((c3 & 0x3) << 6) | c4)
    return zlib.decompressobj(-15).decompress(bytes(data)).decode("utf-8")


def _client(status: int = 200, content: bytes = SVG, seen=None) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, content=content)

    return httpx.Client(transport=httpx.MockTransport(handler))


# ── Tests: Encoding ───────────────────────────────────────────────────────


class TestEncoding:
    def test_alphabet_only(self):
        encoded = plantuml_encode(PUML)
        assert encoded
        assert set(encoded) <= set(_ALPHABET)
        assert len(encoded) % 4 == 0

    def test_round_trip(self):
        assert _decode(plantuml_encode(PUML)) == PUML

    def test_url_uses_sanitized_text(self):
        url = image_url(PUML, "svg", "http://plantuml.local/plantuml/")
        prefix = "http://plantuml.local/plantuml/svg/"
        assert url.startswith(prefix)
        assert "List`1" not in _decode(url[len(prefix):])
        assert "class List {" in _decode(url[len(prefix):])

    def test_server_from_environment(self, monkeypatch):
        monkeypatch.setenv("PLANTUML_SERVER_URL", "http://env-server:8080")
        assert image_url(PUML, "png").startswith("http://env-server:8080/png/")


# ── Tests: HTTP rendering ─────────────────────────────────────────────────


class TestRenderPuml:
    def test_svg(self):
        seen = []
        result = render_puml(PUML, "svg", "http://plantuml.local", client=_client(seen=seen))
        assert result == SVG
        assert seen[0].url.path.startswith("/svg/")
        assert seen[0].url.host == "plantuml.local"

    def test_png(self):
        result = render_puml(PUML, "PNG", "http://plantuml.local", client=_client(content=PNG))
        assert result == PNG

    def test_error_status_with_image_body_is_used(self):
        result = render_puml(PUML, "svg", "http://plantuml.local", client=_client(400, SVG))
        assert result == SVG

    def test_non_image_body(self):
        with pytest.raises(PlantUmlRenderError, match="unexpected content"):
            render_puml(PUML, "svg", "http://plantuml.local", client=_client(200, b"<html>oops</html>"))

    def test_png_expected_but_svg_returned(self):
        with pytest.raises(PlantUmlRenderError):
            render_puml(PUML, "png", "http://plantuml.local", client=_client(200, SVG))

    def test_server_error(self):
        with pytest.raises(PlantUmlRenderError, match="500"):
            render_puml(PUML, "svg", "http://plantuml.local", client=_client(500, b"Internal error"))

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        with pytest.raises(PlantUmlRenderError, match="request failed"):
            render_puml(PUML, "svg", "http://plantuml.local", client=client)

    def test_unsupported_format(self):
        with pytest.raises(ValueError):
            render_puml(PUML, "pdf")

    def test_error_is_runtime_error(self):
        assert issubclass(PlantUmlRenderError, RuntimeError)
