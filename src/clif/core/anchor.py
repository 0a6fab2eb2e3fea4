"""Locate the core configuration anchor in a caller's settings object."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import (
    AnonymousCoreConfigError,
    EmbeddedCoreNotPointerError,
    InvalidInitConfigError,
    MissingCoreConfigError,
    NonExportedCoreConfigError,
)
from .fields import FieldSpec, describe, is_core_type, is_frozen


@dataclass(frozen=True)
class AnchorField:
    name: str
    spec: FieldSpec

    @property
    def core_type(self) -> type:
        return self.spec.type


def resolve_anchor(settings) -> AnchorField:
    """Find the single field through which the core configuration is reached.

    The anchor must be a public field annotated ``Optional[Configuration]``.
    Fields are scanned in declaration order and the first core-typed field
    decides; later ones are ignored. Nothing is mutated here.

    Raises:
        InvalidInitConfigError: ``settings`` is None, a class, or frozen
        AnonymousCoreConfigError: the settings class inherits the core type
        EmbeddedCoreNotPointerError: the anchor is a bare ``Configuration``
        NonExportedCoreConfigError: the anchor name is private
        MissingCoreConfigError: no core-typed field exists
    """
    if settings is None:
        raise InvalidInitConfigError()
    if isinstance(settings, type):
        raise InvalidInitConfigError(settings, "class ")
    if is_frozen(settings):
        raise InvalidInitConfigError(type(settings), "frozen ")

    cls = type(settings)
    if is_core_type(cls):
        raise AnonymousCoreConfigError(cls)

    for spec in describe(cls):
        if not spec.is_core:
            continue
        if not spec.optional:
            raise EmbeddedCoreNotPointerError(spec.name, spec.type)
        if not spec.exported:
            raise NonExportedCoreConfigError(spec.name)
        return AnchorField(spec.name, spec)

    raise MissingCoreConfigError()
