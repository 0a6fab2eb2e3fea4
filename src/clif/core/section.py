"""Base class for the toolkit's own configuration sections."""

from __future__ import annotations

from typing import Any, ClassVar, Mapping

from .coercion import coerce
from .errors import CoercionError, UnmarshalError, UnmarshalTypeError
from .fields import FieldKind, describe


class SectionConfiguration:
    """A top-level block of the configuration file owned by the toolkit.

    Subclasses are dataclasses naming their file section and the error
    raised when the section has the wrong shape. Each section decodes its own
    keys; unknown keys are ignored.
    """

    section: ClassVar[str] = ""
    unmarshal_error: ClassVar[type[UnmarshalError]] = UnmarshalError

    @classmethod
    def decode(cls, values: Any) -> dict[str, Any]:
        """Return typed values for the recognised keys present in ``values``."""
        if not isinstance(values, Mapping):
            raise cls.unmarshal_error(
                f"{cls.section} != mapping (got {type(values).__name__})"
            )

        decoded: dict[str, Any] = {}
        for spec in describe(cls):
            if spec.kind is not FieldKind.LEAF or spec.name not in values:
                continue
            try:
                decoded[spec.name] = coerce(spec.name, values[spec.name], spec.type, spec.optional)
            except CoercionError as e:
                raise UnmarshalTypeError(
                    cls.section, spec.name, e.expected, values[spec.name],
                    code=cls.unmarshal_error.code,
                ) from e
        return decoded

    @classmethod
    def from_mapping(cls, values: Any):
        """Build a section from an untyped mapping, e.g. a decoded YAML block."""
        return cls(**cls.decode(values))
