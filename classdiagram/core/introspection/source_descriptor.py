"""TypeDescriptor over Python source files, parsed with tree-sitter.

Reads class definitions without importing or executing the module, so
files with unavailable dependencies or import-time side effects can still
be diagrammed.

Extracts per class:
- Fields from class-body assignments and `self.x = ...` in __init__
- Properties from @property / @x.setter / @cached_property
- Methods with @staticmethod, @classmethod, @abstractmethod, @final
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional, Set, Tuple

import tree_sitter
import tree_sitter_python

from ..constants import UNKNOWN_TYPE_NAME
from .base import (
    AccessorInfo,
    FieldInfo,
    MethodInfo,
    ParameterInfo,
    PropertyInfo,
    TypeDescriptor,
    Visibility,
)
from .python_descriptor import is_special_name, unwrap_qualifiers, visibility_from_name
from .type_names import normalize_type_name

logger = logging.getLogger(__name__)

# Create the Language object once (wraps the PyCapsule)
_PYTHON_LANGUAGE = tree_sitter.Language(tree_sitter_python.language())

_STRUCTURAL_BASE_NAMES = frozenset({"object", "Generic", "Protocol", "ABC"})
_ENUM_BASE_NAMES = frozenset({"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"})

_LITERAL_TYPES = {
    "integer": "int",
    "float": "float",
    "string": "str",
    "concatenated_string": "str",
    "true": "bool",
    "false": "bool",
    "none": "None",
    "list": "list",
    "list_comprehension": "list",
    "dictionary": "dict",
    "dictionary_comprehension": "dict",
    "tuple": "tuple",
    "set": "set",
    "set_comprehension": "set",
}

# Nodes that open a new scope; assignments inside them are not the class's
_SCOPE_NODES = frozenset({"function_definition", "class_definition", "lambda"})


@dataclass
class _Decorator:
    name: str  # dotted callee text: "dataclass", "typing.final", "value.setter"
    keywords: Dict[str, str] = field(default_factory=dict)

    @property
    def simple(self) -> str:
        return self.name.rsplit(".", 1)[-1]


@dataclass
class _ParsedClass:
    name: str
    bases: List[str]
    decorators: List[_Decorator]
    fields: List[FieldInfo] = field(default_factory=list)
    properties: Dict[str, PropertyInfo] = field(default_factory=dict)
    methods: List[MethodInfo] = field(default_factory=list)

    @property
    def decorator_names(self) -> Set[str]:
        return {d.simple for d in self.decorators}

    @property
    def is_protocol(self) -> bool:
        return any(base_simple_name(b) == "Protocol" for b in self.bases)

    @property
    def is_frozen(self) -> bool:
        return any(
            d.simple == "dataclass" and d.keywords.get("frozen") == "True"
            for d in self.decorators
        )

    def declares(self, name: str) -> bool:
        return name in self.properties or any(m.name == name for m in self.methods)

    def has_field(self, name: str) -> bool:
        return any(f.name == name for f in self.fields)


def base_simple_name(base_text: str) -> str:
    """ "typing.Generic[T]" -> "Generic" """
    return base_text.split("[", 1)[0].rsplit(".", 1)[-1].strip()


class _ClassScanner:
    """Walks a tree-sitter module tree collecting top-level classes."""

    def __init__(self, source: bytes):
        self._source = source

    def text(self, node: Optional[tree_sitter.Node]) -> str:
        if node is None:
            return ""
        return self._source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def scan_module(self, root: tree_sitter.Node) -> List[_ParsedClass]:
        classes: List[_ParsedClass] = []
        for child in root.children:
            node, decorators = self._unwrap_decorated(child)
            if node is not None and node.type == "class_definition":
                parsed = self._scan_class(node, decorators)
                if parsed:
                    classes.append(parsed)
        return classes

    def _unwrap_decorated(
        self, node: tree_sitter.Node
    ) -> Tuple[Optional[tree_sitter.Node], List[_Decorator]]:
        if node.type != "decorated_definition":
            return node, []
        decorators = [self._decorator(d) for d in node.children if d.type == "decorator"]
        return node.child_by_field_name("definition"), decorators

    def _decorator(self, node: tree_sitter.Node) -> _Decorator:
        expr = node.named_children[0] if node.named_children else None
        if expr is not None and expr.type == "call":
            keywords = {}
            arguments = expr.child_by_field_name("arguments")
            if arguments is not None:
                for arg in arguments.named_children:
                    if arg.type == "keyword_argument":
                        keywords[self.text(arg.child_by_field_name("name"))] = self.text(
                            arg.child_by_field_name("value")
                        )
            return _Decorator(self.text(expr.child_by_field_name("function")), keywords)
        return _Decorator(self.text(expr))

    def _scan_class(
        self, node: tree_sitter.Node, decorators: List[_Decorator]
    ) -> Optional[_ParsedClass]:
        name = self.text(node.child_by_field_name("name"))
        if not name:
            return None

        bases = []
        superclasses = node.child_by_field_name("superclasses")
        if superclasses is not None:
            for arg in superclasses.named_children:
                if arg.type in ("identifier", "attribute", "subscript"):
                    bases.append(self.text(arg))

        parsed = _ParsedClass(name=name, bases=bases, decorators=decorators)
        is_enum = any(base_simple_name(b) in _ENUM_BASE_NAMES for b in bases)

        body = node.child_by_field_name("body")
        if body is None:
            return parsed

        for stmt in body.named_children:
            target, member_decorators = self._unwrap_decorated(stmt)
            if target is None:
                continue
            if target.type == "function_definition":
                self._scan_function(parsed, target, member_decorators)
            elif target.type == "expression_statement":
                for expr in target.named_children:
                    if expr.type == "assignment":
                        self._scan_class_assignment(parsed, expr, is_enum)

        return parsed

    def _scan_class_assignment(
        self, parsed: _ParsedClass, node: tree_sitter.Node, is_enum: bool
    ) -> None:
        left = node.child_by_field_name("left")
        if left is None or left.type != "identifier":
            return
        name = self.text(left)
        if parsed.has_field(name):
            return

        type_node = node.child_by_field_name("type")
        if type_node is not None:
            annotation, is_static, is_final = unwrap_qualifiers(self.text(type_node))
            is_read_only = is_final or (parsed.is_frozen and not is_static)
        else:
            # Plain class attribute; enum members are instances of the enum
            annotation = parsed.name if is_enum else self._infer_type(node.child_by_field_name("right"))
            is_static, is_read_only = True, is_enum

        parsed.fields.append(FieldInfo(
            name=name,
            type=annotation,
            visibility=visibility_from_name(name),
            is_static=is_static,
            is_read_only=is_read_only,
            is_special_name=is_special_name(name),
        ))

    def _scan_function(
        self, parsed: _ParsedClass, node: tree_sitter.Node, decorators: List[_Decorator]
    ) -> None:
        name = self.text(node.child_by_field_name("name"))
        simple = {d.simple for d in decorators}
        if not name or "overload" in simple:
            return

        return_node = node.child_by_field_name("return_type")
        return_type = self.text(return_node) if return_node is not None else UNKNOWN_TYPE_NAME
        visibility = visibility_from_name(name)

        if simple & {"property", "cached_property"}:
            accessor = AccessorInfo(visibility)
            parsed.properties[name] = PropertyInfo(
                name=name,
                type=return_type,
                getter=accessor,
                setter=accessor if "cached_property" in simple else None,
                is_special_name=is_special_name(name),
            )
            return

        for dec in decorators:
            owner, _, role = dec.name.rpartition(".")
            if owner and role in ("setter", "getter", "deleter"):
                if role == "setter" and owner in parsed.properties:
                    parsed.properties[owner].setter = AccessorInfo(visibility)
                return

        has_receiver = "staticmethod" not in simple
        parameters, receiver = self._parameters(node.child_by_field_name("parameters"), has_receiver)

        if name == "__init__" and receiver:
            self._scan_init(parsed, node, receiver, parameters)

        parsed.methods.append(MethodInfo(
            name=name,
            return_type=return_type,
            parameters=parameters,
            visibility=visibility,
            is_static=bool(simple & {"staticmethod", "classmethod"}),
            is_abstract="abstractmethod" in simple,
            is_final="final" in simple,
            is_special_name=is_special_name(name),
        ))

    def _parameters(
        self, node: Optional[tree_sitter.Node], has_receiver: bool
    ) -> Tuple[List[ParameterInfo], Optional[str]]:
        """Parameters in declaration order, minus the self/cls receiver."""
        params: List[ParameterInfo] = []
        if node is None:
            return params, None

        for child in node.named_children:
            annotation = None
            if child.type in ("identifier", "list_splat_pattern", "dictionary_splat_pattern"):
                name = self.text(child)
            elif child.type == "typed_parameter":
                name = self.text(child.named_children[0])
                annotation = child.child_by_field_name("type")
            elif child.type in ("default_parameter", "typed_default_parameter"):
                name = self.text(child.child_by_field_name("name"))
                annotation = child.child_by_field_name("type")
            else:
                # keyword_separator, positional_separator, comments
                continue
            params.append(ParameterInfo(
                name=name or None,
                type=self.text(annotation) if annotation is not None else UNKNOWN_TYPE_NAME,
            ))

        receiver = None
        if has_receiver and params and params[0].name and not params[0].name.startswith("*"):
            receiver = params.pop(0).name
        return params, receiver

    def _scan_init(
        self,
        parsed: _ParsedClass,
        node: tree_sitter.Node,
        receiver: str,
        parameters: List[ParameterInfo],
    ) -> None:
        """Instance fields assigned as `self.x = ...` inside __init__."""
        param_types = {p.name: p.type for p in parameters if p.name}
        body = node.child_by_field_name("body")
        if body is None:
            return

        for assignment in self._assignments(body):
            left = assignment.child_by_field_name("left")
            if left is None or left.type != "attribute":
                continue
            if self.text(left.child_by_field_name("object")) != receiver:
                continue
            name = self.text(left.child_by_field_name("attribute"))
            if not name or parsed.has_field(name):
                continue

            is_final = False
            type_node = assignment.child_by_field_name("type")
            right = assignment.child_by_field_name("right")
            if type_node is not None:
                annotation, _, is_final = unwrap_qualifiers(self.text(type_node))
            elif right is not None and right.type == "identifier" and self.text(right) in param_types:
                annotation = param_types[self.text(right)]
            else:
                annotation = self._infer_type(right)

            parsed.fields.append(FieldInfo(
                name=name,
                type=annotation,
                visibility=visibility_from_name(name),
                is_static=False,
                is_read_only=is_final or parsed.is_frozen,
                is_special_name=is_special_name(name),
            ))

    def _assignments(self, node: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
        for child in node.children:
            if child.type in _SCOPE_NODES:
                continue
            if child.type == "assignment":
                yield child
            yield from self._assignments(child)

    def _infer_type(self, node: Optional[tree_sitter.Node]) -> str:
        """Best-effort type of a literal or constructor call."""
        if node is None:
            return UNKNOWN_TYPE_NAME
        if node.type in _LITERAL_TYPES:
            return _LITERAL_TYPES[node.type]
        if node.type == "call":
            callee = node.child_by_field_name("function")
            if callee is not None and callee.type in ("identifier", "attribute"):
                name = self.text(callee)
                if name.rsplit(".", 1)[-1][:1].isupper():
                    return name
        return UNKNOWN_TYPE_NAME


class SourceTypeDescriptor(TypeDescriptor):
    """One class statically read from Python source.

    Base classes and protocols are resolved only against classes declared
    in the same source file. Fields and properties of those bases are
    inherited, except private (name-mangled) ones.
    """

    def __init__(
        self,
        parsed: _ParsedClass,
        namespace: Optional[str],
        module_classes: Dict[str, _ParsedClass],
    ):
        self._parsed = parsed
        self._namespace = namespace
        self._module_classes = module_classes

    @property
    def name(self) -> str:
        return self._parsed.name

    @property
    def namespace(self) -> Optional[str]:
        return self._namespace

    @property
    def is_interface(self) -> bool:
        return self._parsed.is_protocol

    @property
    def is_abstract(self) -> bool:
        return self.is_interface or any(m.is_abstract for m in self._parsed.methods)

    @property
    def is_sealed(self) -> bool:
        return "final" in self._parsed.decorator_names

    def base_type_name(self) -> Optional[str]:
        if self.is_interface:
            return None
        for base in self._parsed.bases:
            simple = base_simple_name(base)
            if simple in _STRUCTURAL_BASE_NAMES or self._is_protocol_name(simple):
                continue
            return normalize_type_name(base)
        return None

    def interface_names(self) -> List[str]:
        names: List[str] = []
        for parsed in self._ancestors():
            if parsed.is_protocol and parsed.name not in names:
                names.append(parsed.name)
        return names

    def declared_fields(self) -> List[FieldInfo]:
        chain = self._chain()
        # `self.x = ...` through a property setter is not a separate field
        property_names = {name for parsed in chain for name in parsed.properties}
        fields: List[FieldInfo] = []
        seen = set()
        for parsed in chain:
            for info in parsed.fields:
                if info.name in seen or info.name in property_names:
                    continue
                if parsed is not self._parsed and info.visibility is Visibility.PRIVATE:
                    continue
                seen.add(info.name)
                fields.append(info)
        return fields

    def declared_properties(self) -> List[PropertyInfo]:
        properties: List[PropertyInfo] = []
        seen = set()
        for parsed in self._chain():
            for name, info in parsed.properties.items():
                if name in seen:
                    continue
                getter = info.getter
                if parsed is not self._parsed and getter is not None and getter.visibility is Visibility.PRIVATE:
                    continue
                seen.add(name)
                properties.append(info)
        return properties

    def declared_methods(self) -> List[MethodInfo]:
        ancestors = self._ancestors()
        is_interface = self.is_interface
        methods = []
        for method in self._parsed.methods:
            overridable = (
                not method.is_static
                and method.visibility is not Visibility.PRIVATE
                and (
                    method.is_abstract
                    or is_interface
                    or any(a.declares(method.name) for a in ancestors)
                )
            )
            methods.append(replace(method, is_overridable=overridable))
        return methods

    def _is_protocol_name(self, simple: str) -> bool:
        parsed = self._module_classes.get(simple)
        return parsed is not None and parsed.is_protocol

    def _chain(self) -> List[_ParsedClass]:
        """This class followed by its same-file ancestors, mirroring an MRO walk."""
        return [self._parsed] + self._ancestors()

    def _ancestors(self) -> List[_ParsedClass]:
        """Base classes declared in the same file, nearest first."""
        ancestors: List[_ParsedClass] = []
        seen = {self._parsed.name}
        queue = list(self._parsed.bases)
        while queue:
            simple = base_simple_name(queue.pop(0))
            if simple in seen:
                continue
            seen.add(simple)
            parsed = self._module_classes.get(simple)
            if parsed is not None:
                ancestors.append(parsed)
                queue.extend(parsed.bases)
        return ancestors


def parse_source_types(source_text: str, namespace: Optional[str] = None) -> List[SourceTypeDescriptor]:
    """Parse Python source text into one descriptor per top-level class."""
    source = source_text.encode("utf-8")
    parser = tree_sitter.Parser(_PYTHON_LANGUAGE)
    tree = parser.parse(source)

    if tree.root_node.has_error:
        logger.warning(
            "tree-sitter reported syntax errors in %s; extracting what parsed",
            namespace or "<source>",
        )

    classes = _ClassScanner(source).scan_module(tree.root_node)
    by_name = {parsed.name: parsed for parsed in classes}
    logger.debug("Parsed %d classes from %s", len(classes), namespace or "<source>")
    return [SourceTypeDescriptor(parsed, namespace, by_name) for parsed in classes]
