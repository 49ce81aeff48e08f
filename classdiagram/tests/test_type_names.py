"""Tests for type-name normalization."""

import typing
from typing import Annotated, Callable, ClassVar, Dict, List, Literal, Optional, TypeVar, Union

import pytest

from classdiagram.core.introspection.type_names import (
    TypeRef,
    normalize_type_name,
    parse_annotation,
    simple_name,
    strip_arity,
)

T = TypeVar("T")


# =========================================================================
# Tests: Runtime typing objects
# =========================================================================

class TestRuntimeTypes:
    def test_plain_class(self):
        assert normalize_type_name(int) == "int"
        assert normalize_type_name(str) == "str"

    def test_none(self):
        assert normalize_type_name(None) == "None"
        assert normalize_type_name(type(None)) == "None"

    def test_optional_renders_nullable(self):
        assert normalize_type_name(Optional[int]) == "int?"

    def test_pep604_optional(self):
        assert normalize_type_name(int | None) == "int?"

    def test_closed_generic(self):
        assert normalize_type_name(Dict[str, List[int]]) == "Dict<str, List<int>>"

    def test_builtin_generic(self):
        assert normalize_type_name(list[int]) == "list<int>"

    def test_union_without_none(self):
        assert normalize_type_name(Union[int, str]) == "Union<int, str>"

    def test_union_with_none_is_nullable(self):
        assert normalize_type_name(Union[int, str, None]) == "Union<int, str>?"

    def test_type_var(self):
        assert normalize_type_name(T) == "T"
        assert normalize_type_name(List[T]) == "List<T>"

    def test_qualifiers_are_transparent(self):
        assert normalize_type_name(ClassVar[int]) == "int"
        assert normalize_type_name(Annotated[int, "meta"]) == "int"

    def test_literal(self):
        assert normalize_type_name(Literal["a"]) == "Literal<'a'>"

    def test_callable(self):
        assert normalize_type_name(Callable[[int, str], bool]) == "Callable<[int, str], bool>"

    def test_forward_ref(self):
        assert normalize_type_name(typing.ForwardRef("Node")) == "Node"

    def test_never_raises_on_odd_input(self):
        assert normalize_type_name(42) == "42"


# =========================================================================
# Tests: Annotation strings
# =========================================================================

class TestAnnotationStrings:
    def test_subscripted_generic(self):
        assert normalize_type_name("Dict[str, int]") == "Dict<str, int>"

    def test_angle_bracket_generic(self):
        assert normalize_type_name("List<int>") == "List<int>"

    def test_arity_stripped_from_closed_generic(self):
        assert normalize_type_name("Dictionary`2[String, Int32]") == "Dictionary<String, Int32>"

    def test_qualified_name_simplified(self):
        assert normalize_type_name("System.Int32") == "Int32"
        assert normalize_type_name("typing.Optional[int]") == "int?"

    def test_pep604_union_with_none(self):
        assert normalize_type_name("str | None") == "str?"

    def test_nullable_suffix_not_doubled(self):
        assert normalize_type_name("int?") == "int?"
        assert normalize_type_name("Optional[int?]") == "int?"

    def test_quoted_forward_reference(self):
        assert normalize_type_name("'Node'") == "Node"
        assert normalize_type_name('List["Node"]') == "List<Node>"

    def test_empty_annotation_is_any(self):
        assert parse_annotation("") == TypeRef("Any")
        assert normalize_type_name("   ") == "Any"

    def test_unparseable_text_kept_verbatim(self):
        assert normalize_type_name("Foo[") == "Foo["


# =========================================================================
# Tests: TypeRef records
# =========================================================================

class TestTypeRefs:
    def test_generic_definition_keeps_arity(self):
        assert normalize_type_name(TypeRef("List`1", generic_definition=True)) == "List`1"

    def test_generic_definition_ignores_args(self):
        ref = TypeRef("List`1", args=(TypeRef("T"),), generic_definition=True)
        assert normalize_type_name(ref) == "List`1"

    def test_nullable_wrapper(self):
        ref = TypeRef("Nullable`1", args=(TypeRef("Int32"),))
        assert normalize_type_name(ref) == "Int32?"

    def test_nullable_flag(self):
        assert normalize_type_name(TypeRef("Int32", nullable=True)) == "Int32?"

    def test_nested_closed_generic(self):
        ref = TypeRef("Dictionary`2", args=(TypeRef("String"), TypeRef("List`1", (TypeRef("Int32"),))))
        assert normalize_type_name(ref) == "Dictionary<String, List<Int32>>"


class TestHelpers:
    @pytest.mark.parametrize("raw, expected", [
        ("Dictionary`2", "Dictionary"),
        ("List", "List"),
        ("A`1`2", "A`1"),
    ])
    def test_strip_arity(self, raw, expected):
        assert strip_arity(raw) == expected

    def test_simple_name(self):
        assert simple_name("typing.List") == "List"
        assert simple_name("[int, str]") == "[int, str]"
        assert simple_name("'a.b'") == "'a.b'"
