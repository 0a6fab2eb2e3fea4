"""Platform detection and process/user lookups for clif"""

import getpass
import os
import platform
import sys
from pathlib import Path

# Platform detection
IS_WINDOWS = sys.platform == "win32"
IS_LINUX = sys.platform.startswith("linux")
IS_MACOS = sys.platform == "darwin"


def current_user() -> str:
    """Login name of the current user, "" when it cannot be determined."""
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        # no passwd entry and no USER/LOGNAME, e.g. some containers
        return ""


def home_dir() -> Path:
    """Home directory of the current user."""
    if not IS_WINDOWS:
        import pwd

        try:
            return Path(pwd.getpwuid(os.getuid()).pw_dir)
        except KeyError:
            pass
    try:
        return Path.home()
    except RuntimeError:
        return Path.cwd()


def process_name(argv0: str | None = None) -> str:
    """Executable name of the running process, without directory or ".py"."""
    name = Path(argv0 if argv0 is not None else (sys.argv[0] if sys.argv else "")).name
    if name.endswith(".py"):
        name = name[:-3]
    return name or "python"


def get_platform_info() -> dict:
    """Get detailed platform information."""
    return {
        "system": platform.system(),
        "release": platform.release(),
        "machine": platform.machine(),
        "python_version": platform.python_version(),
        "is_windows": IS_WINDOWS,
        "is_linux": IS_LINUX,
        "is_macos": IS_MACOS,
        "user": current_user(),
        "home": str(home_dir()),
    }
