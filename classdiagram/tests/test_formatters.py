"""Tests for ASCII, PlantUML and info formatters."""

import pytest

from classdiagram.core.config import DiagramSettings
from classdiagram.core.diagrams.formatters import (
    AsciiFormatter,
    InfoFormatter,
    PlantUmlFormatter,
    get_formatter,
    sanitize_plantuml,
)
from classdiagram.core.introspection.models import (
    AccessLevel,
    DiagramModel,
    Member,
    Method,
    Parameter,
)


# ── Fixtures ──────────────────────────────────────────────────────────────


def _animal() -> DiagramModel:
    return DiagramModel(
        class_name="Animal",
        namespace="zoo",
        is_abstract=True,
        methods=[Method(name="Speak", return_type="void")],
    )


def _dog() -> DiagramModel:
    return DiagramModel(
        class_name="Dog",
        namespace="zoo",
        base_class="Animal",
        interfaces=["IPet", "ITrainable"],
        members=[
            Member("name", "str"),
            Member("_age", "int", access=AccessLevel.PROTECTED),
        ],
        methods=[
            Method("Speak", "void", is_virtual=True),
            Method("fetch", "bool", parameters=[Parameter("item", "str")]),
        ],
    )


def _wide(fields: int = 0, methods: int = 0) -> DiagramModel:
    return DiagramModel(
        class_name="Wide",
        members=[Member(f"field{i}", "int") for i in range(fields)],
        methods=[Method(f"method{i}", "None") for i in range(methods)],
    )


# ── Tests: ASCII ──────────────────────────────────────────────────────────


class TestAsciiFormatter:
    def test_every_line_has_box_width(self):
        lines = AsciiFormatter().format(_dog()).splitlines()
        assert all(len(line) == 50 for line in lines)

    def test_custom_width(self):
        lines = AsciiFormatter(width=30).format(_dog()).splitlines()
        assert all(len(line) == 30 for line in lines)

    def test_abstract_scenario(self):
        lines = AsciiFormatter().format(_animal()).splitlines()
        assert lines[0] == "┌" + "─" * 48 + "┐"
        assert lines[1] == "│" + " " * 18 + "<<abstract>>" + " " * 18 + "│"
        assert lines[2] == "│" + " " * 21 + "Animal" + " " * 21 + "│"
        assert lines[3] == "├" + "─" * 48 + "┤"
        assert lines[4] == "├" + "─" * 48 + "┤"
        assert lines[5] == "│ + Speak(): void" + " " * 32 + "│"
        assert lines[6] == "└" + "─" * 48 + "┘"
        assert len(lines) == 7

    def test_no_stereotype_line_for_concrete_class(self):
        lines = AsciiFormatter().format(_dog()).splitlines()
        assert lines[1].strip("│").strip() == "Dog"

    def test_sections_and_rules(self):
        lines = [line.strip("│├┤ ") for line in AsciiFormatter().format(_dog()).splitlines()]
        rule = "─" * 48
        assert lines[1:] == [
            "Dog",
            rule,
            "extends: Animal",
            "implements: IPet, ITrainable",
            rule,
            "+ name: str",
            "# _age: int",
            rule,
            "+ [virtual] Speak(): void",
            "+ fetch(item: str): bool",
            "└" + rule + "┘",
        ]

    def test_section_rule_follows_header_rule(self):
        lines = AsciiFormatter().format(_wide(fields=1, methods=1)).splitlines()
        assert [line[0] for line in lines] == ["┌", "│", "├", "├", "│", "├", "│", "└"]

    def test_members_only_class(self):
        diagram = DiagramModel("Point", members=[Member("x", "int")])
        lines = AsciiFormatter().format(diagram).splitlines()
        assert lines[2] == lines[3] == "├" + "─" * 48 + "┤"
        assert lines[4].startswith("│ + x: int")
        assert len(lines) == 6

    def test_empty_class(self):
        lines = AsciiFormatter().format(DiagramModel("Empty")).splitlines()
        assert [line[0] for line in lines] == ["┌", "│", "├", "└"]

    def test_member_truncation_line(self):
        output = AsciiFormatter().format(_wide(fields=12))
        assert "│ ... +6 more fields" + " " * 29 + "│" in output.splitlines()
        assert sum(": int" in line for line in output.splitlines()) == 8

    def test_method_truncation_line(self):
        output = AsciiFormatter(method_limit=3).format(_wide(methods=5))
        assert any(line.startswith("│ ... +2 more methods") for line in output.splitlines())

    def test_long_class_name_truncated(self):
        lines = AsciiFormatter().format(DiagramModel("X" * 60)).splitlines()
        assert lines[1] == "│" + "X" * 45 + "...│"

    def test_long_member_truncated(self):
        diagram = DiagramModel("C", members=[Member("a" * 60, "int")])
        line = AsciiFormatter().format(diagram).splitlines()[4]
        assert line == "│ + " + "a" * 41 + "... │"
        assert len(line) == 50

    def test_multiple_separated_by_blank_line(self):
        output = AsciiFormatter().format_multiple([_animal(), _dog()])
        assert "┘\n\n┌" in output
        assert output.count("┌") == 2

    def test_width_too_small(self):
        with pytest.raises(ValueError):
            AsciiFormatter(width=5)


# ── Tests: PlantUML ───────────────────────────────────────────────────────


class TestPlantUmlFormatter:
    def test_abstract_scenario(self):
        lines = PlantUmlFormatter().format(_animal()).splitlines()
        assert lines == ["@startuml", "class Animal {", "  + Speak(): void", "}", "@enduml"]

    def test_relationships_follow_block(self):
        lines = PlantUmlFormatter().format(_dog()).splitlines()
        closing = lines.index("}")
        assert lines[closing + 1:] == [
            "Dog --|> Animal",
            "Dog ..|> IPet",
            "Dog ..|> ITrainable",
            "@enduml",
        ]

    def test_members_before_methods(self):
        lines = PlantUmlFormatter().format(_dog()).splitlines()
        assert lines[1:6] == [
            "class Dog {",
            "  + name: str",
            "  # _age: int",
            "  + [virtual] Speak(): void",
            "  + fetch(item: str): bool",
        ]

    def test_truncation_dividers(self):
        output = PlantUmlFormatter(member_limit=8).format(_wide(fields=12, methods=11))
        assert "  .. +4 more fields .." in output.splitlines()
        assert "  .. +1 more methods .." in output.splitlines()

    def test_multiple_share_one_document(self):
        lines = PlantUmlFormatter().format_multiple([_dog(), _animal()]).splitlines()
        assert lines.count("@startuml") == 1
        assert lines.count("@enduml") == 1
        assert lines.index("Dog --|> Animal") < lines.index("class Animal {")


class TestSanitize:
    @pytest.mark.parametrize("raw, expected", [
        ("IEnumerable`1", "IEnumerable"),
        ("Dictionary`2<K, V>", "Dictionary<K, V>"),
        ("class A`1 {\nA`1 ..|> IList`1", "class A {\nA ..|> IList"),
        ("a`b", "a`b"),
        ("plain", "plain"),
    ])
    def test_sanitize(self, raw, expected):
        assert sanitize_plantuml(raw) == expected


# ── Tests: Info panel ─────────────────────────────────────────────────────


class TestInfoFormatter:
    def test_info_panel(self):
        lines = InfoFormatter().format(_dog()).splitlines()
        assert lines == [
            "Class Name: Dog",
            "Namespace: zoo",
            "Is Abstract: False",
            "Is Interface: False",
            "Is Static: False",
            "Extends: Animal",
            "Implements: IPet, ITrainable",
            "",
            "Members (2):",
            "  + name: str",
            "  # _age: int",
            "",
            "Methods (2):",
            "  + [virtual] Speak(): void",
            "  + fetch(item: str): bool",
        ]

    def test_info_is_untruncated(self):
        output = InfoFormatter().format(_wide(fields=20))
        assert "Members (20):" in output
        assert "more fields" not in output


# ── Tests: Registry ───────────────────────────────────────────────────────


class TestGetFormatter:
    def test_known_names(self):
        assert isinstance(get_formatter("ascii"), AsciiFormatter)
        assert isinstance(get_formatter("PlantUML"), PlantUmlFormatter)
        assert isinstance(get_formatter("info"), InfoFormatter)

    def test_settings_applied(self):
        settings = DiagramSettings(member_limit=2, method_limit=3, box_width=40)
        formatter = get_formatter("ascii", settings)
        assert formatter.width == 40
        assert formatter.member_limit == 2
        assert formatter.method_limit == 3

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Valid formats"):
            get_formatter("svg")
