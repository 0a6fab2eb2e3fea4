"""Console size settings.

The terminal controller itself (raw mode, positioned output, resize
monitoring) lives outside this package; the core configuration only carries
the size it should wait for.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from .core.errors import ConsoleUnmarshalError
from .core.fields import setting
from .core.section import SectionConfiguration


@dataclass
class ConsoleConfiguration(SectionConfiguration):
    """Settings of the ``console`` section.

    Attributes:
        width: Minimum terminal width in columns (0 = any)
        height: Minimum terminal height in rows (0 = any)
    """

    section: ClassVar[str] = "console"
    unmarshal_error: ClassVar[type] = ConsoleUnmarshalError

    width: int = setting(0, env="${APPNAME}_CONSOLE_WIDTH")
    height: int = setting(0, env="${APPNAME}_CONSOLE_HEIGHT")

    def satisfied_by(self, width: int, height: int) -> bool:
        """True when a terminal of ``width`` x ``height`` meets the minimum size."""
        return width >= self.width and height >= self.height
