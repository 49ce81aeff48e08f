"""Type-name normalization.

Converts raw type descriptors into display strings:

    Optional[int]                  -> int?
    Dict[str, List[int]]           -> Dict<str, List<int>>
    "Dictionary`2[String, Int32]"  -> Dictionary<String, Int32>
    TypeRef("List`1", generic_definition=True) -> List`1

Accepts live typing objects, classes, annotation strings (postponed
annotations, source files, metadata tables) and TypeRef records.
Normalization is best-effort and never raises.
"""

import logging
import re
import types
import typing
from dataclasses import dataclass, replace
from typing import Any, List, Optional, Tuple

from ..constants import UNKNOWN_TYPE_NAME

logger = logging.getLogger(__name__)

_ARITY_SUFFIX = re.compile(r"`\d+$")
_QUALIFIED_NAME = re.compile(r"^[A-Za-z_][\w`]*(\.[A-Za-z_][\w`]*)+$")

_NULLABLE_WRAPPERS = frozenset({"Optional", "Nullable"})
_NONE_NAMES = frozenset({"None", "NoneType"})

# Qualifiers that annotate a type without changing what it is
_TRANSPARENT_ORIGINS = (typing.ClassVar, typing.Final, typing.Annotated)

_UNION_ORIGINS: Tuple[Any, ...] = (typing.Union,)
if hasattr(types, "UnionType"):
    _UNION_ORIGINS += (types.UnionType,)

_TOKEN = re.compile(
    r"""\s*(?:
        (?P<string>'[^']*'|"[^"]*")
      | (?P<ellipsis>\.\.\.)
      | (?P<name>[A-Za-z_][\w.`]*|-?\d+)
      | (?P<punct>[\[\]<>,|?])
    )""",
    re.VERBOSE,
)

_CLOSING = {"[": "]", "<": ">"}


@dataclass(frozen=True)
class TypeRef:
    """A type reference detached from any live type system.

    Used for annotation strings and metadata tables, and as the common
    intermediate form for runtime typing objects.
    """

    name: str
    args: Tuple["TypeRef", ...] = ()
    nullable: bool = False
    generic_definition: bool = False  # open generic such as List`1

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(self.args))


def strip_arity(name: str) -> str:
    """Remove a trailing backtick-digit arity marker ("Dictionary`2" -> "Dictionary")."""
    return _ARITY_SUFFIX.sub("", name)


def simple_name(name: str) -> str:
    """Unqualified name: "typing.List" -> "List". Non-identifier text is kept."""
    if _QUALIFIED_NAME.match(name):
        return name.rsplit(".", 1)[-1]
    return name


def normalize_type_name(type_obj: Any) -> str:
    """Canonical display string for a type descriptor.

    Nullable wrappers render as "T?", closed generics as "Base<A, B>",
    everything else as its simple name.
    """
    try:
        return _render(as_type_ref(type_obj))
    except Exception as e:
        logger.debug("Type name normalization degraded for %r: %s", type_obj, e)
        return _fallback_name(type_obj)


def as_type_ref(type_obj: Any) -> TypeRef:
    """Convert a runtime type, typing construct or string into a TypeRef."""
    if isinstance(type_obj, TypeRef):
        return type_obj
    if isinstance(type_obj, str):
        return parse_annotation(type_obj)
    if type_obj is None or type_obj is type(None):
        return TypeRef("None")
    if type_obj is Ellipsis:
        return TypeRef("...")
    if isinstance(type_obj, typing.ForwardRef):
        return parse_annotation(type_obj.__forward_arg__)
    if isinstance(type_obj, (list, tuple)):
        # Callable parameter list: Callable[[int, str], bool]
        inner = ", ".join(normalize_type_name(a) for a in type_obj)
        return TypeRef(f"[{inner}]")

    origin = typing.get_origin(type_obj)
    if origin is None:
        return TypeRef(_fallback_name(type_obj))

    base = _generic_base_name(type_obj, origin)
    try:
        args = typing.get_args(type_obj)
        if origin in _TRANSPARENT_ORIGINS and args:
            return as_type_ref(args[0])
        if origin is typing.Literal:
            return TypeRef("Literal", tuple(TypeRef(repr(a)) for a in args))
        arg_refs = tuple(as_type_ref(a) for a in args)
    except Exception as e:
        logger.debug("Generic argument enumeration failed for %r: %s", type_obj, e)
        return TypeRef(base)

    if origin in _UNION_ORIGINS:
        return TypeRef("Union", arg_refs)
    return TypeRef(base, arg_refs)


def parse_annotation(text: str) -> TypeRef:
    """Parse an annotation string into a TypeRef.

    Understands subscripted generics ("Dict[str, int]"), angle-bracket
    generics ("List<int>"), PEP 604 unions ("int | None"), the "T?"
    nullable suffix and quoted forward references. Text that does not
    parse is returned verbatim as the TypeRef name.
    """
    stripped = text.strip()
    if not stripped:
        return TypeRef(UNKNOWN_TYPE_NAME)
    try:
        return _AnnotationParser(stripped).parse()
    except ValueError as e:
        logger.debug("Unparseable annotation %r: %s", stripped, e)
        return TypeRef(stripped)


# =========================================================================
# Rendering
# =========================================================================


def _render(ref: TypeRef) -> str:
    if ref.nullable:
        return _nullable(_render(replace(ref, nullable=False)))

    base = strip_arity(simple_name(ref.name))

    if ref.args and not ref.generic_definition:
        if base == "Union":
            members = [a for a in ref.args if not _is_none(a)]
            if members and len(members) < len(ref.args):
                inner = members[0] if len(members) == 1 else TypeRef("Union", members)
                return _nullable(_render(inner))
        if base in _NULLABLE_WRAPPERS and len(ref.args) == 1:
            return _nullable(_render(ref.args[0]))
        return f"{base}<{', '.join(_render(a) for a in ref.args)}>"

    return simple_name(ref.name)


def _nullable(rendered: str) -> str:
    return rendered if rendered.endswith("?") else rendered + "?"


def _is_none(ref: TypeRef) -> bool:
    return not ref.args and simple_name(ref.name) in _NONE_NAMES


def _generic_base_name(type_obj: Any, origin: Any) -> str:
    name = getattr(type_obj, "_name", None) or getattr(origin, "__name__", None)
    if isinstance(name, str) and name:
        return name
    return _fallback_name(origin)


def _fallback_name(type_obj: Any) -> str:
    name = getattr(type_obj, "__name__", None) or getattr(type_obj, "_name", None)
    if isinstance(name, str) and name:
        return name
    if isinstance(type_obj, TypeRef):
        return type_obj.name
    return str(type_obj).replace("typing.", "")


# =========================================================================
# Annotation parsing
# =========================================================================


class _AnnotationParser:
    """Recursive-descent parser over annotation tokens.

    union   := postfix ('|' postfix)*
    postfix := primary '?'*
    primary := NAME (('[' | '<') args)? | '[' args | STRING | '...'
    """

    def __init__(self, text: str):
        self._tokens = self._tokenize(text)
        self._pos = 0

    @staticmethod
    def _tokenize(text: str) -> List[Tuple[str, str]]:
        tokens = []
        pos = 0
        while pos < len(text):
            if text[pos:].strip() == "":
                break
            match = _TOKEN.match(text, pos)
            if not match:
                raise ValueError(f"unexpected character at {pos}")
            kind = match.lastgroup
            tokens.append((kind, match.group(kind)))
            pos = match.end()
        return tokens

    def parse(self) -> TypeRef:
        ref = self._union()
        if self._pos != len(self._tokens):
            raise ValueError(f"trailing tokens after position {self._pos}")
        return ref

    def _peek(self) -> Optional[str]:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos][1]
        return None

    def _next(self) -> Tuple[str, str]:
        if self._pos >= len(self._tokens):
            raise ValueError("unexpected end of annotation")
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def _union(self) -> TypeRef:
        items = [self._postfix()]
        while self._peek() == "|":
            self._next()
            items.append(self._postfix())
        return items[0] if len(items) == 1 else TypeRef("Union", items)

    def _postfix(self) -> TypeRef:
        ref = self._primary()
        while self._peek() == "?":
            self._next()
            ref = replace(ref, nullable=True)
        return ref

    def _primary(self) -> TypeRef:
        kind, value = self._next()

        if kind == "string":
            return parse_annotation(value[1:-1])
        if kind == "ellipsis":
            return TypeRef("...")
        if kind == "punct" and value == "[":
            args = self._args("]")
            return TypeRef(f"[{', '.join(_render(a) for a in args)}]")
        if kind == "name":
            opener = self._peek()
            if opener in _CLOSING:
                self._next()
                return TypeRef(value, self._args(_CLOSING[opener]))
            return TypeRef(value)

        raise ValueError(f"unexpected token {value!r}")

    def _args(self, closing: str) -> List[TypeRef]:
        args: List[TypeRef] = []
        if self._peek() == closing:
            self._next()
            return args
        while True:
            args.append(self._union())
            _, value = self._next()
            if value == closing:
                return args
            if value != ",":
                raise ValueError(f"expected ',' or {closing!r}, got {value!r}")
