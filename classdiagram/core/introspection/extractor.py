"""Member/method extraction and DiagramModel assembly.

Walks a TypeDescriptor into the normalized diagram model. Extractors
filter synthesized members, map visibility to access levels and
normalize type names; they never sort (see DiagramModel display views).
"""

import logging
from typing import Iterable, List, Optional

from ..constants import PARAMETER_PLACEHOLDER, SYNTHETIC_NAME_MARKER
from .base import AccessorInfo, TypeDescriptor, Visibility
from .models import AccessLevel, DiagramModel, Member, Method, Parameter
from .type_names import normalize_type_name

logger = logging.getLogger(__name__)

_VISIBILITY_ACCESS = {
    Visibility.PUBLIC: AccessLevel.PUBLIC,
    Visibility.PRIVATE: AccessLevel.PRIVATE,
    Visibility.FAMILY: AccessLevel.PROTECTED,
}


def access_from_visibility(visibility: Optional[Visibility]) -> AccessLevel:
    """public -> Public, private -> Private, family -> Protected, else Internal."""
    return _VISIBILITY_ACCESS.get(visibility, AccessLevel.INTERNAL)


def is_synthesized(name: str, is_special_name: bool) -> bool:
    """True for special names and names carrying the synthetic marker."""
    return is_special_name or name.startswith(SYNTHETIC_NAME_MARKER)


class MemberExtractor:
    """Fields followed by properties, in discovery order."""

    def extract(self, descriptor: TypeDescriptor) -> List[Member]:
        members: List[Member] = []

        for info in descriptor.declared_fields():
            if is_synthesized(info.name, info.is_special_name):
                logger.debug("Skipping synthesized field %s.%s", descriptor.name, info.name)
                continue
            members.append(Member(
                name=info.name,
                type=normalize_type_name(info.type),
                access=access_from_visibility(info.visibility),
                is_static=info.is_static,
                is_read_only=info.is_read_only,
            ))

        for prop in descriptor.declared_properties():
            if is_synthesized(prop.name, prop.is_special_name):
                logger.debug("Skipping synthesized property %s.%s", descriptor.name, prop.name)
                continue
            members.append(Member(
                name=prop.name,
                type=normalize_type_name(prop.type),
                access=self._property_access(prop.getter),
                is_static=_accessor_static(prop.getter) or _accessor_static(prop.setter),
                is_read_only=prop.getter is not None and prop.setter is None,
            ))

        return members

    @staticmethod
    def _property_access(getter: Optional[AccessorInfo]) -> AccessLevel:
        # No getter falls through to Internal
        if getter is None:
            return AccessLevel.INTERNAL
        return access_from_visibility(getter.visibility)


def _accessor_static(accessor: Optional[AccessorInfo]) -> bool:
    return accessor is not None and accessor.is_static


class MethodExtractor:
    """Methods declared directly on the type, parameters in declaration order."""

    def extract(self, descriptor: TypeDescriptor) -> List[Method]:
        methods: List[Method] = []

        for info in descriptor.declared_methods():
            if is_synthesized(info.name, info.is_special_name):
                continue

            parameters = [
                Parameter(
                    name=p.name or PARAMETER_PLACEHOLDER,
                    type=normalize_type_name(p.type),
                )
                for p in info.parameters
            ]

            methods.append(Method(
                name=info.name,
                return_type=normalize_type_name(info.return_type),
                parameters=parameters,
                access=access_from_visibility(info.visibility),
                is_static=info.is_static,
                is_abstract=info.is_abstract,
                is_virtual=info.is_overridable and not info.is_final,
            ))

        return methods


class TypeAnalyzer:
    """Builds DiagramModel instances from type descriptors."""

    def __init__(
        self,
        member_extractor: Optional[MemberExtractor] = None,
        method_extractor: Optional[MethodExtractor] = None,
    ):
        self._members = member_extractor or MemberExtractor()
        self._methods = method_extractor or MethodExtractor()

    def analyze(self, descriptor: TypeDescriptor) -> DiagramModel:
        is_interface = descriptor.is_interface
        is_abstract = descriptor.is_abstract

        diagram = DiagramModel(
            class_name=descriptor.name,
            namespace=descriptor.namespace,
            is_abstract=is_abstract,
            is_interface=is_interface,
            is_static=is_abstract and descriptor.is_sealed,
            # Interfaces never report a base class
            base_class=None if is_interface else descriptor.base_type_name(),
            interfaces=descriptor.interface_names(),
            members=self._members.extract(descriptor),
            methods=self._methods.extract(descriptor),
        )

        logger.debug(
            "Analyzed %s: %d members, %d methods",
            diagram.key, len(diagram.members), len(diagram.methods),
        )
        return diagram

    def analyze_many(self, descriptors: Iterable[TypeDescriptor]) -> List[DiagramModel]:
        return [self.analyze(d) for d in descriptors]
