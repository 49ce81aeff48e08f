"""Tests for DiagramService: cache, loading modes, formatting, rendering."""

import sys

import httpx
import pytest

from classdiagram.core.config import DiagramSettings
from classdiagram.core.diagrams.service import DiagramService, resolve_mode
from classdiagram.core.introspection.loader import AnalysisError, exported_types, find_type, load_module

ZOO_SOURCE = '''
from abc import ABC, abstractmethod
from collections import OrderedDict


class Animal(ABC):
    name: str

    @abstractmethod
    def speak(self) -> str:
        ...


class Dog(Animal):
    def speak(self) -> str:
        return "woof"


class Cat(Animal):
    def speak(self) -> str:
        return "meow"


class _Private:
    pass
'''

ZOO_TABLE = """
types:
  - name: Kennel
    namespace: Zoo.Housing
    fields:
      - {name: capacity, type: Int32}
"""


@pytest.fixture
def zoo_module(tmp_path):
    path = tmp_path / "zoo_service_models.py"
    path.write_text(ZOO_SOURCE, encoding="utf-8")
    return path


@pytest.fixture
def zoo_table(tmp_path):
    path = tmp_path / "zoo.yaml"
    path.write_text(ZOO_TABLE, encoding="utf-8")
    return path


class Sample:
    value: int = 0

    def double(self) -> int:
        return self.value * 2


# ── Tests: Lookup ─────────────────────────────────────────────────────────


class TestFindType:
    def test_module_colon_name(self):
        assert find_type("json.decoder:JSONDecoder").__name__ == "JSONDecoder"

    def test_dotted_name(self):
        assert find_type("collections.OrderedDict").__name__ == "OrderedDict"

    def test_builtin(self):
        assert find_type("dict") is dict

    def test_not_found_returns_none(self):
        assert find_type("NoSuchTypeAnywhere123") is None
        assert find_type("no_such_module_xyz.Thing") is None
        assert find_type("") is None

    def test_non_class_attribute(self):
        assert find_type("json.dumps") is None


class TestLoadModule:
    def test_load_from_path(self, zoo_module):
        module = load_module(zoo_module)
        assert [cls.__name__ for cls in exported_types(module)] == ["Animal", "Dog", "Cat"]

    def test_load_by_name(self):
        assert load_module("json").__name__ == "json"

    def test_missing_module(self):
        with pytest.raises(AnalysisError):
            load_module("no_such_module_xyz")

    def test_missing_file(self, tmp_path):
        with pytest.raises(AnalysisError):
            load_module(tmp_path / "missing.py")

    def test_module_raising_on_import(self, tmp_path):
        path = tmp_path / "exploding_module.py"
        path.write_text("raise RuntimeError('boom')\n", encoding="utf-8")
        with pytest.raises(AnalysisError, match="boom"):
            load_module(path)

    def test_failed_import_leaves_no_module_behind(self, tmp_path):
        path = tmp_path / "half_built_module.py"
        path.write_text("class Early:\n    pass\n\nraise RuntimeError('boom')\n", encoding="utf-8")
        before = set(sys.modules)
        with pytest.raises(AnalysisError):
            load_module(path)
        assert not any("half_built_module" in name for name in set(sys.modules) - before)

    def test_file_does_not_shadow_installed_module(self, tmp_path):
        real_json = sys.modules["json"]
        path = tmp_path / "json.py"
        path.write_text("class Payload:\n    body: str\n", encoding="utf-8")

        module = load_module(path)
        try:
            assert sys.modules["json"] is real_json
            assert module is not real_json
            assert [cls.__name__ for cls in exported_types(module)] == ["Payload"]
        finally:
            sys.modules.pop(module.__name__, None)

    def test_dataclass_in_file(self, tmp_path):
        path = tmp_path / "dataclass_module.py"
        path.write_text(
            "from dataclasses import dataclass\n\n\n"
            "@dataclass(frozen=True)\nclass Point:\n    x: int\n    y: int\n",
            encoding="utf-8",
        )
        module = load_module(path)
        assert [cls.__name__ for cls in exported_types(module)] == ["Point"]


# ── Tests: Cache ──────────────────────────────────────────────────────────


class TestCache:
    def test_analyze_caches_by_key(self):
        service = DiagramService()
        diagram = service.analyze(Sample)
        assert service.get(diagram.key) is diagram
        assert service.keys() == [f"Sample ({__name__})"]

    def test_reanalysis_is_idempotent(self):
        service = DiagramService()
        first = service.analyze(Sample)
        second = service.analyze(Sample)
        assert len(service) == 1
        assert first == second

    def test_analyze_type(self):
        service = DiagramService()
        diagram = service.analyze_type("json.JSONDecoder")
        assert diagram.class_name == "JSONDecoder"
        assert diagram.namespace == "json.decoder"
        assert len(service) == 1

    def test_analyze_type_not_found(self):
        service = DiagramService()
        assert service.analyze_type("NoSuchTypeAnywhere123") is None
        assert len(service) == 0

    def test_clear(self):
        service = DiagramService()
        service.analyze(Sample)
        service.clear()
        assert service.keys() == []
        assert service.get(f"Sample ({__name__})") is None


# ── Tests: Loading ────────────────────────────────────────────────────────


class TestLoad:
    @pytest.mark.parametrize("target, mode, expected", [
        ("types.yaml", "auto", "metadata"),
        ("types.JSON", "auto", "metadata"),
        ("pkg.module", "auto", "runtime"),
        ("models.py", "auto", "runtime"),
        ("models.py", "source", "source"),
    ])
    def test_resolve_mode(self, target, mode, expected):
        assert resolve_mode(target, mode) == expected

    def test_resolve_unknown_mode(self):
        with pytest.raises(ValueError):
            resolve_mode("x.py", "magic")

    def test_runtime_load(self, zoo_module):
        service = DiagramService()
        diagrams = service.load(zoo_module)
        assert [d.class_name for d in diagrams] == ["Animal", "Dog", "Cat"]
        assert diagrams[1].base_class == "Animal"
        assert len(service) == 3
        assert "Dog (zoo_service_models)" in service.keys()

    def test_source_load(self, zoo_module):
        service = DiagramService()
        diagrams = service.load(zoo_module, mode="source")
        assert [d.class_name for d in diagrams] == ["Animal", "Dog", "Cat"]
        assert diagrams[0].is_abstract is True
        assert service.keys() == [
            "Animal (zoo_service_models)",
            "Cat (zoo_service_models)",
            "Dog (zoo_service_models)",
        ]

    def test_metadata_load(self, zoo_table):
        service = DiagramService()
        diagrams = service.load(zoo_table)
        assert [d.key for d in diagrams] == ["Kennel (Zoo.Housing)"]

    def test_load_replaces_cache(self, zoo_module, zoo_table):
        service = DiagramService()
        service.analyze(Sample)
        service.load(zoo_table)
        assert service.keys() == ["Kennel (Zoo.Housing)"]

    def test_failed_load_keeps_cache(self, tmp_path, zoo_table):
        service = DiagramService()
        service.load(zoo_table)
        with pytest.raises(AnalysisError):
            service.load(tmp_path / "missing.yaml")
        assert service.keys() == ["Kennel (Zoo.Housing)"]


# ── Tests: Output ─────────────────────────────────────────────────────────


class TestOutput:
    def test_default_format_from_settings(self):
        service = DiagramService(DiagramSettings(default_format="plantuml"))
        output = service.format(service.analyze(Sample))
        assert output.startswith("@startuml\nclass Sample {")

    def test_ascii_width_from_settings(self):
        service = DiagramService(DiagramSettings(box_width=30))
        lines = service.format([service.analyze(Sample)], "ascii").splitlines()
        assert all(len(line) == 30 for line in lines)

    def test_unknown_format(self):
        service = DiagramService()
        with pytest.raises(ValueError):
            service.format([service.analyze(Sample)], "svg")

    def test_render_image_uses_configured_server(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=b"<svg></svg>")

        service = DiagramService(DiagramSettings(plantuml_server_url="http://uml.internal:8080"))
        client = httpx.Client(transport=httpx.MockTransport(handler))
        result = service.render_image("@startuml\n@enduml\n", "svg", client=client)

        assert result == b"<svg></svg>"
        assert seen[0].url.host == "uml.internal"
        assert seen[0].url.port == 8080
