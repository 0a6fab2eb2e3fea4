"""Configuration error hierarchy.

Every failure raised by ``init_config`` derives from ``ConfigurationError``
and carries a short, stable ``code`` so callers can branch on the kind of
failure without parsing messages.
"""

from __future__ import annotations

ERR_MISSING_CORE_CONFIG = "CC01"
ERR_ANONYMOUS_CORE_CONFIG = "CC02"
ERR_UNMARSHAL_CORE_CONFIG = "CC03"
ERR_UNMARSHAL_LOGGER_DATA = "CC03LC01"
ERR_UNMARSHAL_CONSOLE_DATA = "CC03CC01"
ERR_FILE_READ_CORE_CONFIG = "CC04"
ERR_NON_EXPORTED_CORE_CONFIG = "CC05"
ERR_EMBEDDED_CORE_NOT_POINTER = "CC06"
ERR_COERCION = "CC07"
ERR_WALK = "CC08"


class ConfigurationError(Exception):
    """Base class for all configuration failures."""

    code: str = ""

    def __init__(self, message: str, code: str | None = None):
        if code is not None:
            self.code = code
        super().__init__(f"configuration error - {message}")


class InvalidInitConfigError(ConfigurationError):
    """The object handed to ``init_config`` cannot hold settings."""

    def __init__(self, settings_type: type | None = None, reason: str = ""):
        self.settings_type = settings_type
        if settings_type is None:
            message = "InitConfig(None)"
        else:
            message = f"InitConfig({reason}{settings_type.__qualname__})"
        super().__init__(message)


class MissingCoreConfigError(ConfigurationError):
    code = ERR_MISSING_CORE_CONFIG

    def __init__(self):
        super().__init__("InitConfig(core configuration not present)")


class AnonymousCoreConfigError(ConfigurationError):
    code = ERR_ANONYMOUS_CORE_CONFIG

    def __init__(self, settings_type: type):
        self.settings_type = settings_type
        super().__init__(
            f"InitConfig(core configuration is anonymous in {settings_type.__qualname__})"
        )


class NonExportedCoreConfigError(ConfigurationError):
    code = ERR_NON_EXPORTED_CORE_CONFIG

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"InitConfig(core configuration is unexported: {field_name})")


class EmbeddedCoreNotPointerError(ConfigurationError):
    """The anchor is declared as a bare ``Configuration`` instead of an optional one."""

    code = ERR_EMBEDDED_CORE_NOT_POINTER

    def __init__(self, field_name: str, core_type: type):
        self.field_name = field_name
        super().__init__(
            f"InitConfig(non-pointer of embedded {core_type.__module__}."
            f"{core_type.__qualname__} in field {field_name})"
        )


class FileReadError(ConfigurationError):
    """The configuration file could not be read. The ``OSError`` is chained."""

    code = ERR_FILE_READ_CORE_CONFIG

    def __init__(self, path, error: BaseException | None = None):
        self.path = path
        detail = f": {error}" if error is not None else ""
        super().__init__(f"unable to read configuration file {path}{detail}")


class UnmarshalError(ConfigurationError):
    code = ERR_UNMARSHAL_CORE_CONFIG

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message, code)


class LoggerUnmarshalError(UnmarshalError):
    code = ERR_UNMARSHAL_LOGGER_DATA


class ConsoleUnmarshalError(UnmarshalError):
    code = ERR_UNMARSHAL_CONSOLE_DATA


class CoercionError(ConfigurationError):
    """A value could not be converted to the leaf type of its setting."""

    code = ERR_COERCION

    def __init__(self, key: str, expected: str, value=None):
        self.key = key
        self.expected = expected
        self.value = value
        super().__init__(f"invalid data type - {key} != {expected}")


class UnmarshalTypeError(CoercionError, UnmarshalError):
    """A section decoder met a value of the wrong primitive type."""

    def __init__(self, section: str, key: str, expected: str, value=None, code: str | None = None):
        self.section = section
        CoercionError.__init__(self, f"{section}.{key}", expected, value)
        if code is not None:
            self.code = code


class WalkError(ConfigurationError):
    code = ERR_WALK

    def __init__(self, key: str, error: BaseException):
        self.key = key
        super().__init__(f"unable to populate {key}: {error}")
