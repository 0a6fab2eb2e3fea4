"""Built-in defaults derived from the running process."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..core.ports import Setting


@dataclass(frozen=True)
class DefaultContext:
    """Runtime facts available to contextual defaults.

    Attributes:
        app_name: Application name (argv[0] unless overridden)
        user: Login name of the current user
        home_dir: Home directory of the current user
        process_name: Executable name of the current process
    """

    app_name: str
    user: str
    home_dir: Path
    process_name: str


class DefaultSource:
    """Lowest-precedence source. Never fails and always has a value.

    A field that already holds a value keeps it; an empty field gets its
    contextual default if it declares one, otherwise the zero value of its
    type (None for optional leaves).
    """

    name = "defaults"

    def __init__(self, context: DefaultContext):
        self.context = context

    def lookup(self, setting: Setting):
        if setting.current is not None:
            return setting.current
        contextual = setting.spec.options.contextual_default
        if contextual is not None:
            return contextual(self.context)
        if setting.spec.optional:
            return None
        return setting.type()
