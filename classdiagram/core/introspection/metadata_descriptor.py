"""TypeDescriptor over precomputed metadata tables.

Lets types from other systems (for example .NET assemblies dumped by an
external tool) flow through the same pipeline. A table is YAML or JSON:

    types:
      - name: Repository`1
        namespace: Acme.Data
        abstract: true
        base: DbContext
        interfaces: [IDisposable]
        fields:
          - {name: _items, type: "List`1[T]", access: private, readonly: true}
        properties:
          - {name: Count, type: Int32, getter: public, setter: private}
        methods:
          - name: Find
            returns: {name: Nullable`1, args: [T]}
            access: public
            virtual: true
            parameters: [{name: id, type: Int32}, {type: String}]

Type references are annotation strings or {name, args, nullable,
generic_definition} mappings.
"""

import logging
from typing import Any, List, Mapping, Optional

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
from .type_names import TypeRef, parse_annotation

logger = logging.getLogger(__name__)

_ACCESS_NAMES = {
    "public": Visibility.PUBLIC,
    "private": Visibility.PRIVATE,
    "protected": Visibility.FAMILY,
    "family": Visibility.FAMILY,
}


class MetadataError(ValueError):
    """A metadata table entry is malformed."""


def visibility_from_access(access: Any) -> Visibility:
    """public / private / protected|family; anything else is assembly-level."""
    if access is None:
        return Visibility.PUBLIC
    return _ACCESS_NAMES.get(str(access).strip().lower(), Visibility.ASSEMBLY)


def type_ref_from_spec(spec: Any) -> TypeRef:
    """Build a TypeRef from a string or a {name, args, nullable} mapping."""
    if spec is None:
        return TypeRef(UNKNOWN_TYPE_NAME)
    if isinstance(spec, TypeRef):
        return spec
    if isinstance(spec, Mapping):
        name = spec.get("name")
        if not name:
            raise MetadataError(f"Type reference without a name: {dict(spec)!r}")
        return TypeRef(
            name=str(name),
            args=tuple(type_ref_from_spec(a) for a in spec.get("args") or ()),
            nullable=bool(spec.get("nullable", False)),
            generic_definition=bool(spec.get("generic_definition", False)),
        )
    return parse_annotation(str(spec))


def _accessor(spec: Any) -> Optional[AccessorInfo]:
    if spec is None or spec is False:
        return None
    if isinstance(spec, Mapping):
        return AccessorInfo(
            visibility=visibility_from_access(spec.get("access")),
            is_static=bool(spec.get("static", False)),
        )
    if spec is True:
        return AccessorInfo()
    return AccessorInfo(visibility=visibility_from_access(spec))


def _require_name(entry: Any, kind: str, owner: str) -> str:
    if not isinstance(entry, Mapping) or not entry.get("name"):
        raise MetadataError(f"{kind} entry in '{owner}' needs a name: {entry!r}")
    return str(entry["name"])


class MetadataTypeDescriptor(TypeDescriptor):
    """One type described by a metadata-table entry."""

    def __init__(self, entry: Mapping[str, Any]):
        if not isinstance(entry, Mapping) or not entry.get("name"):
            raise MetadataError(f"Type entry needs a name: {entry!r}")
        self._entry = entry

    @property
    def name(self) -> str:
        return str(self._entry["name"])

    @property
    def namespace(self) -> Optional[str]:
        namespace = self._entry.get("namespace")
        return str(namespace) if namespace is not None else None

    @property
    def is_abstract(self) -> bool:
        return bool(self._entry.get("abstract", False)) or self.is_interface

    @property
    def is_interface(self) -> bool:
        return bool(self._entry.get("interface", False))

    @property
    def is_sealed(self) -> bool:
        return bool(self._entry.get("sealed", False))

    def base_type_name(self) -> Optional[str]:
        base = self._entry.get("base")
        return str(base) if base else None

    def interface_names(self) -> List[str]:
        return [str(i) for i in self._entry.get("interfaces") or ()]

    def declared_fields(self) -> List[FieldInfo]:
        fields = []
        for entry in self._entry.get("fields") or ():
            name = _require_name(entry, "Field", self.name)
            fields.append(FieldInfo(
                name=name,
                type=type_ref_from_spec(entry.get("type")),
                visibility=visibility_from_access(entry.get("access")),
                is_static=bool(entry.get("static", False)),
                is_read_only=bool(entry.get("readonly", False)),
                is_special_name=bool(entry.get("special", False)),
            ))
        return fields

    def declared_properties(self) -> List[PropertyInfo]:
        properties = []
        for entry in self._entry.get("properties") or ():
            name = _require_name(entry, "Property", self.name)
            properties.append(PropertyInfo(
                name=name,
                type=type_ref_from_spec(entry.get("type")),
                getter=_accessor(entry.get("getter", entry.get("access", "public"))),
                setter=_accessor(entry.get("setter")),
                is_special_name=bool(entry.get("special", False)),
            ))
        return properties

    def declared_methods(self) -> List[MethodInfo]:
        methods = []
        for entry in self._entry.get("methods") or ():
            name = _require_name(entry, "Method", self.name)
            parameters = []
            for param in entry.get("parameters") or ():
                if isinstance(param, Mapping):
                    parameters.append(ParameterInfo(
                        name=param.get("name") or None,
                        type=type_ref_from_spec(param.get("type")),
                    ))
                else:
                    parameters.append(ParameterInfo(name=None, type=type_ref_from_spec(param)))

            methods.append(MethodInfo(
                name=name,
                return_type=type_ref_from_spec(entry.get("returns", "Void")),
                parameters=parameters,
                visibility=visibility_from_access(entry.get("access")),
                is_static=bool(entry.get("static", False)),
                is_abstract=bool(entry.get("abstract", False)),
                is_overridable=bool(entry.get("virtual", False) or entry.get("abstract", False)),
                is_final=bool(entry.get("final", False)),
                is_special_name=bool(entry.get("special", False)),
            ))
        return methods


def descriptors_from_table(table: Any) -> List[MetadataTypeDescriptor]:
    """Descriptors for every entry of a loaded table ({"types": [...]} or a bare list)."""
    if isinstance(table, Mapping):
        entries = table.get("types")
    else:
        entries = table
    if not isinstance(entries, list):
        raise MetadataError("Metadata table must be a list of types or a mapping with a 'types' list")

    descriptors = [MetadataTypeDescriptor(entry) for entry in entries]
    logger.debug("Read %d type entries from metadata table", len(descriptors))
    return descriptors
