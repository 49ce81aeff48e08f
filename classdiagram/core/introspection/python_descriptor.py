"""TypeDescriptor over live Python classes.

Python has no access modifiers, so visibility follows naming convention:

    __name  (name-mangled)  -> private
    _name                   -> family (protected)
    name                    -> public

Interfaces are typing.Protocol classes. A class is sealed when it carries
the typing.final marker.
"""

import functools
import inspect
import logging
import typing
from abc import ABC
from typing import Any, Dict, List, Optional, Tuple

from ..constants import LOADED_MODULE_PREFIX, UNKNOWN_TYPE_NAME
from .base import (
    AccessorInfo,
    FieldInfo,
    MethodInfo,
    ParameterInfo,
    PropertyInfo,
    TypeDescriptor,
    Visibility,
)
from .type_names import TypeRef, normalize_type_name, parse_annotation, simple_name

logger = logging.getLogger(__name__)

# Bases that carry no structural meaning for a diagram
_STRUCTURAL_BASES = (object, typing.Generic, typing.Protocol, ABC)

# Modules whose classes are runtime machinery rather than user structure
_MACHINERY_MODULES = frozenset({"builtins", "enum"})

# Single-underscore names the interpreter or stdlib class factories inject
_SYNTHESIZED_NAMES = frozenset({
    "_abc_impl",
    "_is_protocol",
    "_is_runtime_protocol",
    "_fields",
    "_field_defaults",
    "_make",
    "_replace",
    "_asdict",
})

_MISSING = object()


def is_special_name(name: str) -> bool:
    """Dunder and sunder names, plus known synthesized attributes."""
    if len(name) > 4 and name.startswith("__") and name.endswith("__"):
        return True
    if len(name) > 2 and name[0] == name[-1] == "_" and name[1] != "_" and name[-2] != "_":
        return True
    return name in _SYNTHESIZED_NAMES


def _mangling_prefix(owner: type) -> str:
    return f"_{owner.__name__.lstrip('_')}__"


def display_name(name: str, owner: type) -> str:
    """Undo name mangling: "_Account__balance" -> "__balance"."""
    prefix = _mangling_prefix(owner)
    if name.startswith(prefix) and len(name) > len(prefix):
        return "__" + name[len(prefix):]
    return name


def visibility_from_name(name: str, owner: Optional[type] = None) -> Visibility:
    """Access by naming convention; owner enables detection of mangled names."""
    if is_special_name(name):
        return Visibility.PUBLIC
    if name.startswith("__") or (owner is not None and name.startswith(_mangling_prefix(owner))):
        return Visibility.PRIVATE
    if name.startswith("_"):
        return Visibility.FAMILY
    return Visibility.PUBLIC


def unwrap_qualifiers(annotation: Any) -> Tuple[Any, bool, bool]:
    """Split ClassVar/Final off an annotation.

    Returns (inner_type, is_class_var, is_final).
    """
    if annotation is typing.ClassVar:
        return UNKNOWN_TYPE_NAME, True, False
    if annotation is typing.Final:
        return UNKNOWN_TYPE_NAME, False, True

    if isinstance(annotation, str):
        ref = parse_annotation(annotation)
        qualifier = simple_name(ref.name)
        if qualifier in ("ClassVar", "Final"):
            inner = ref.args[0] if ref.args else TypeRef(UNKNOWN_TYPE_NAME)
            return inner, qualifier == "ClassVar", qualifier == "Final"
        return ref, False, False

    origin = typing.get_origin(annotation)
    if origin is typing.ClassVar or origin is typing.Final:
        args = typing.get_args(annotation)
        inner = args[0] if args else UNKNOWN_TYPE_NAME
        return inner, origin is typing.ClassVar, origin is typing.Final

    return annotation, False, False


def _is_field_value(value: Any) -> bool:
    if inspect.isclass(value) or inspect.isroutine(value):
        return False
    return not isinstance(
        value,
        (staticmethod, classmethod, property, functools.cached_property, functools.singledispatchmethod),
    )


class PythonTypeDescriptor(TypeDescriptor):
    """Reflects a live Python class via inspect and typing."""

    def __init__(self, cls: type):
        if not inspect.isclass(cls):
            raise TypeError(f"Expected a class, got {type(cls).__name__}")
        self._cls = cls
        self._hints: Optional[Dict[str, Any]] = None

    @property
    def cls(self) -> type:
        return self._cls

    @property
    def name(self) -> str:
        return self._cls.__name__

    @property
    def namespace(self) -> Optional[str]:
        module = getattr(self._cls, "__module__", None)
        if module and module.startswith(LOADED_MODULE_PREFIX):
            return module[len(LOADED_MODULE_PREFIX):]
        return module

    @property
    def is_interface(self) -> bool:
        return _is_protocol(self._cls)

    @property
    def is_abstract(self) -> bool:
        return inspect.isabstract(self._cls) or self.is_interface

    @property
    def is_sealed(self) -> bool:
        return bool(getattr(self._cls, "__final__", False))

    def base_type_name(self) -> Optional[str]:
        if self.is_interface:
            return None

        orig_bases = self._cls.__dict__.get("__orig_bases__", ())
        for base in self._cls.__bases__:
            if base in _STRUCTURAL_BASES or _is_protocol(base):
                continue
            # Prefer the parameterized form: class IntBox(Box[int])
            for orig in orig_bases:
                if typing.get_origin(orig) is base:
                    return normalize_type_name(orig)
            return base.__name__
        return None

    def interface_names(self) -> List[str]:
        return [
            klass.__name__
            for klass in self._cls.__mro__[1:]
            if _is_protocol(klass) and klass is not typing.Protocol
        ]

    # ── Members ───────────────────────────────────────────────────────

    def declared_fields(self) -> List[FieldInfo]:
        fields: List[FieldInfo] = []
        seen = set()
        read_only_instances = self._has_immutable_instances()

        for klass in self._hierarchy():
            annotations = self._own_annotations(klass)

            for raw_name, annotation in annotations.items():
                if raw_name in seen or self._is_foreign_private(raw_name, klass):
                    continue
                value = klass.__dict__.get(raw_name, _MISSING)
                if value is not _MISSING and not _is_field_value(value):
                    continue
                seen.add(raw_name)

                inner, is_class_var, is_final = unwrap_qualifiers(annotation)
                fields.append(FieldInfo(
                    name=display_name(raw_name, klass),
                    type=inner,
                    visibility=visibility_from_name(raw_name, klass),
                    is_static=is_class_var,
                    is_read_only=is_final or (read_only_instances and not is_class_var),
                    is_special_name=is_special_name(raw_name),
                ))

            for raw_name, value in vars(klass).items():
                if raw_name in seen or raw_name in annotations:
                    continue
                if self._is_foreign_private(raw_name, klass) or not _is_field_value(value):
                    continue
                seen.add(raw_name)

                # Slot descriptors stand for per-instance storage
                is_instance = inspect.isdatadescriptor(value)
                fields.append(FieldInfo(
                    name=display_name(raw_name, klass),
                    type=UNKNOWN_TYPE_NAME if is_instance else type(value),
                    visibility=visibility_from_name(raw_name, klass),
                    is_static=not is_instance,
                    is_read_only=is_instance and read_only_instances,
                    is_special_name=is_special_name(raw_name),
                ))

        return fields

    def declared_properties(self) -> List[PropertyInfo]:
        properties: List[PropertyInfo] = []
        seen = set()

        for klass in self._hierarchy():
            for raw_name, value in vars(klass).items():
                if raw_name in seen or self._is_foreign_private(raw_name, klass):
                    continue

                if isinstance(value, property):
                    fget, has_setter = value.fget, value.fset is not None
                elif isinstance(value, functools.cached_property):
                    fget, has_setter = value.func, True
                else:
                    continue
                seen.add(raw_name)

                visibility = visibility_from_name(raw_name, klass)
                accessor_static = isinstance(fget, (staticmethod, classmethod))
                properties.append(PropertyInfo(
                    name=display_name(raw_name, klass),
                    type=self._return_annotation(fget) if fget is not None else UNKNOWN_TYPE_NAME,
                    getter=AccessorInfo(visibility, accessor_static) if fget is not None else None,
                    setter=AccessorInfo(visibility, accessor_static) if has_setter else None,
                    is_special_name=is_special_name(raw_name),
                ))

        return properties

    def declared_methods(self) -> List[MethodInfo]:
        methods: List[MethodInfo] = []
        is_interface = self.is_interface

        for raw_name, value in vars(self._cls).items():
            if isinstance(value, staticmethod):
                func, is_static, has_receiver = value.__func__, True, False
            elif isinstance(value, classmethod):
                func, is_static, has_receiver = value.__func__, True, True
            elif inspect.isfunction(value):
                func, is_static, has_receiver = value, False, True
            else:
                continue

            parameters, return_type = self._signature(func, has_receiver)
            is_abstract = bool(getattr(value, "__isabstractmethod__", False))
            visibility = visibility_from_name(raw_name, self._cls)
            overridable = (
                not is_static
                and visibility is not Visibility.PRIVATE
                and (is_abstract or is_interface or self._overrides_base(raw_name))
            )

            methods.append(MethodInfo(
                name=display_name(raw_name, self._cls),
                return_type=return_type,
                parameters=parameters,
                visibility=visibility,
                is_static=is_static,
                is_abstract=is_abstract,
                is_overridable=overridable,
                is_final=bool(getattr(func, "__final__", False)),
                is_special_name=is_special_name(raw_name),
            ))

        return methods

    # ── Helpers ───────────────────────────────────────────────────────

    def _hierarchy(self) -> List[type]:
        """MRO, most-derived first, without structural, builtin and enum classes."""
        return [
            klass for klass in self._cls.__mro__
            if klass not in _STRUCTURAL_BASES and klass.__module__ not in _MACHINERY_MODULES
        ]

    def _is_foreign_private(self, raw_name: str, klass: type) -> bool:
        """Name-mangled attributes of base classes are not visible here."""
        return klass is not self._cls and raw_name.startswith(_mangling_prefix(klass))

    def _has_immutable_instances(self) -> bool:
        params = getattr(self._cls, "__dataclass_params__", None)
        if params is not None and getattr(params, "frozen", False):
            return True
        return issubclass(self._cls, tuple) and hasattr(self._cls, "_fields")

    def _own_annotations(self, klass: type) -> Dict[str, Any]:
        try:
            raw = inspect.get_annotations(klass)
        except Exception as e:
            logger.debug("Could not read annotations of %s: %s", klass.__qualname__, e)
            return {}
        resolved = self._resolved_hints()
        return {name: resolved.get(name, annotation) for name, annotation in raw.items()}

    def _resolved_hints(self) -> Dict[str, Any]:
        if self._hints is None:
            try:
                self._hints = typing.get_type_hints(self._cls, include_extras=True)
            except Exception as e:
                # Unresolvable forward references: fall back to raw strings
                logger.debug("Could not resolve type hints for %s: %s", self._cls.__qualname__, e)
                self._hints = {}
        return self._hints

    def _overrides_base(self, raw_name: str) -> bool:
        return any(
            raw_name in vars(klass)
            for klass in self._cls.__mro__[1:]
            if klass is not object
        )

    @staticmethod
    def _function_hints(func: Any) -> Dict[str, Any]:
        try:
            return typing.get_type_hints(func, include_extras=True)
        except Exception as e:
            logger.debug("Could not resolve hints for %r: %s", func, e)
            return {}

    def _return_annotation(self, func: Any) -> Any:
        hints = self._function_hints(func)
        if "return" in hints:
            return hints["return"]
        try:
            annotation = inspect.signature(func).return_annotation
        except (TypeError, ValueError):
            return UNKNOWN_TYPE_NAME
        return UNKNOWN_TYPE_NAME if annotation is inspect.Signature.empty else annotation

    def _signature(self, func: Any, has_receiver: bool) -> Tuple[List[ParameterInfo], Any]:
        try:
            sig = inspect.signature(func)
        except (TypeError, ValueError) as e:
            logger.debug("No signature for %r: %s", func, e)
            return [], UNKNOWN_TYPE_NAME

        hints = self._function_hints(func)
        params = list(sig.parameters.values())
        if has_receiver and params and params[0].kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            params = params[1:]

        parameters = []
        for param in params:
            name = param.name
            if param.kind is inspect.Parameter.VAR_POSITIONAL:
                name = f"*{name}"
            elif param.kind is inspect.Parameter.VAR_KEYWORD:
                name = f"**{name}"
            annotation = hints.get(param.name, param.annotation)
            if annotation is inspect.Parameter.empty:
                annotation = UNKNOWN_TYPE_NAME
            parameters.append(ParameterInfo(name=name, type=annotation))

        return_type = hints.get("return", sig.return_annotation)
        if return_type is inspect.Signature.empty:
            return_type = UNKNOWN_TYPE_NAME
        return parameters, return_type


def _is_protocol(klass: type) -> bool:
    return bool(klass.__dict__.get("_is_protocol", False))
