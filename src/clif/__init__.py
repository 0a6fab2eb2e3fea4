"""clif - configuration discovery, layered loading and live settings for CLI tools"""

__version__ = "1.0.0"
__description__ = "Configuration discovery, layered loading and live settings for CLI tools"

__all__ = [
    "CancelToken",
    "Configuration",
    "ConfigurationError",
    "WaitGroup",
    "init_config",
    "setting",
    "with_app_name",
    "with_config_dir",
    "with_config_file",
    "with_dotenv",
    "with_interval",
    "with_wait_group",
    "without_load",
    "without_watch",
    "__version__",
]

_CONFIGURATION_EXPORTS = {
    "Configuration",
    "init_config",
    "with_app_name",
    "with_config_dir",
    "with_config_file",
    "with_dotenv",
    "with_interval",
    "with_wait_group",
    "without_load",
    "without_watch",
}


def __getattr__(name: str):
    """Lazy import so that importing clif.core helpers does not start
    pulling in watchdog and the file decoders.
    """
    if name in _CONFIGURATION_EXPORTS:
        from . import configuration

        return getattr(configuration, name)
    if name == "CancelToken":
        from .core.cancel_token import CancelToken

        return CancelToken
    if name == "WaitGroup":
        from .core.wait_group import WaitGroup

        return WaitGroup
    if name == "ConfigurationError":
        from .core.errors import ConfigurationError

        return ConfigurationError
    if name == "setting":
        from .core.fields import setting

        return setting
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
