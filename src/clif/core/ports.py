"""Core ports (interfaces) for clif.

These protocols define the boundaries between the merge engine and the
places setting values come from or go to. They are intentionally small and
capability-oriented so the walker stays unaware of files and environments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

from .fields import FieldSpec


@dataclass(frozen=True)
class Setting:
    """A leaf setting offered to the sources.

    Attributes:
        key: Dotted logical path, e.g. "logger.level"
        spec: Field classification (leaf type, options)
        current: Value held by the field before this pass
    """

    key: str
    spec: FieldSpec
    current: Any = None

    @property
    def type(self) -> type:
        return self.spec.type


@runtime_checkable
class SettingSource(Protocol):
    """Supplies candidate values for settings."""

    name: str

    def lookup(self, setting: Setting) -> Any:
        """Return the value for ``setting`` or ``MISSING``."""


@runtime_checkable
class Environment(Protocol):
    """Read-only view of environment variables."""

    def get(self, key: str, default: Any = None) -> Any:
        """Return the variable or ``default``."""


NotifyFunc = Callable[[str, Any], None]
