"""Core configuration and the ``init_config`` entry point.

A caller declares its own settings dataclass with one public field typed
``Configuration | None``. ``init_config`` finds that field, creates the core
configuration in it, loads every setting of the whole object from defaults,
the configuration file and the environment, and optionally starts a
background watcher that keeps monitored settings live.

Usage:
    @dataclass
    class Settings:
        core: Configuration | None = None
        port: int = 8080

    settings = Settings()
    core = init_config(token, settings, with_app_name("myapp"))
    core.add_notify_on_change("MYAPP_LOGGER_LEVEL", on_level)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, ClassVar

from .adapters.config_env import EnvSource
from .adapters.defaults import DefaultContext, DefaultSource
from .adapters.file_source import FileSource, SectionDecoder
from .console import ConsoleConfiguration
from .core.anchor import resolve_anchor
from .core.cancel_token import CancelToken
from .core.fields import FieldKind, describe, setting
from .core.ports import NotifyFunc, Setting, SettingSource
from .core.registry import NotificationRegistry
from .core.section import SectionConfiguration
from .core.wait_group import WaitGroup
from .core.walker import walk
from .logger import LoggerConfiguration
from .platform_utils import current_user, home_dir, process_name
from .watcher import ConfigWatcher, MonitoredSetting

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.yaml"
ENVIRONMENT_INTERVAL = 5.0


@dataclass
class Metadata:
    """Where configuration comes from and how it is maintained.

    Attributes:
        app_name: Application name, prefix of environment variables
        user: Login name of the current user
        home_dir: Home directory of the current user
        config_file: Configuration file name or path
        config_dir: Per-user configuration location (directory or file)
        load: Populate settings from the sources
        watch: Start the change watcher after loading
        interval: Seconds between environment polls
        dotenv_path: Optional dotenv file layered under the environment
        wait_group: Shutdown coordination for the watcher
        watcher: Handle of the running watcher
        config_path: The file actually loaded, if any
        explicit_file: config_file was requested by the caller, so a
            missing file is an error
    """

    app_name: str = ""
    user: str = ""
    home_dir: Path = field(default_factory=Path)
    config_file: str = DEFAULT_CONFIG_FILE
    config_dir: Path | None = None
    load: bool = True
    watch: bool = True
    interval: float = ENVIRONMENT_INTERVAL
    dotenv_path: Path | None = None
    wait_group: WaitGroup | None = None
    watcher: ConfigWatcher | None = field(default=None, repr=False)
    config_path: Path | None = None
    explicit_file: bool = False

    def config_candidates(self) -> list[Path]:
        """Locations searched for the configuration file, in order."""
        candidates = [Path(self.config_file).expanduser()]
        if self.config_dir is not None:
            location = Path(self.config_dir).expanduser()
            candidates.append(location / self.config_file if location.is_dir() else location)
        unique: list[Path] = []
        for candidate in candidates:
            if candidate not in unique:
                unique.append(candidate)
        return unique

    def resolve_config_path(self) -> Path | None:
        """First existing candidate, or the requested file when none exists."""
        candidates = self.config_candidates()
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        if self.explicit_file:
            return candidates[0]
        return None

    def default_context(self) -> DefaultContext:
        return DefaultContext(
            app_name=self.app_name,
            user=self.user,
            home_dir=self.home_dir,
            process_name=process_name(),
        )


@dataclass
class Configuration:
    """The toolkit's own settings, reached through the caller's anchor field."""

    __clif_core__: ClassVar[bool] = True
    _registry_lock: ClassVar[threading.Lock] = threading.Lock()

    metadata: Metadata | None = setting(skip=True, repr=False)
    logger: LoggerConfiguration | None = None
    console: ConsoleConfiguration | None = None

    _registry: NotificationRegistry | None = field(default=None, repr=False, compare=False)
    _monitored: dict[str, MonitoredSetting] = field(default_factory=dict, repr=False, compare=False)

    def set_metadata_defaults(self) -> None:
        if self.metadata is None:
            self.metadata = Metadata()
        m = self.metadata
        m.load = True
        m.watch = True
        m.app_name = process_name()
        m.user = current_user()
        m.home_dir = home_dir()
        m.config_file = DEFAULT_CONFIG_FILE
        m.config_dir = m.home_dir / m.config_file
        m.interval = ENVIRONMENT_INTERVAL
        m.dotenv_path = None
        m.wait_group = None
        m.config_path = None
        m.explicit_file = False

    @property
    def registry(self) -> NotificationRegistry:
        if self._registry is None:
            with Configuration._registry_lock:
                if self._registry is None:
                    self._registry = NotificationRegistry()
        return self._registry

    @property
    def watcher(self) -> ConfigWatcher | None:
        return self.metadata.watcher if self.metadata is not None else None

    def add_notify_on_change(self, setting_name: str, callback: NotifyFunc) -> None:
        """Call ``callback(setting_name, value)`` when the setting changes.

        ``setting_name`` is the environment variable name, e.g.
        "MYAPP_LOGGER_LEVEL".
        """
        self.registry.register(setting_name, callback)

    def section_decoders(self) -> dict[str, SectionDecoder]:
        return {
            spec.name: spec.type.decode
            for spec in describe(type(self))
            if spec.kind is not FieldKind.SKIP
            and isinstance(spec.type, type)
            and issubclass(spec.type, SectionConfiguration)
        }

    def monitored_settings(self) -> dict[str, MonitoredSetting]:
        return dict(self._monitored)

    def env_source(self, environ=None) -> EnvSource:
        return EnvSource(self.metadata.app_name, environ=environ, dotenv_path=self.metadata.dotenv_path)

    def file_source(self) -> FileSource:
        path = self.metadata.resolve_config_path()
        self.metadata.config_path = path
        if path is None:
            logger.debug("No configuration file found in %s", self.metadata.config_candidates())
            return FileSource()
        logger.debug("Loading configuration file %s", path)
        return FileSource.from_path(path, sections=self.section_decoders())

    def track(self, env: EnvSource) -> Callable[[Any, Setting, Any], None]:
        """Leaf hook recording monitored fields under their environment name."""

        def on_leaf(owner, leaf: Setting, value) -> None:
            if not leaf.spec.monitored:
                return
            env_key = env.env_key(leaf.key, leaf.spec)
            self._monitored[env_key] = MonitoredSetting(env_key, leaf.key, owner, leaf.spec)

        return on_leaf


ConfigurationOption = Callable[[Configuration], None]


def with_app_name(app_name: str) -> ConfigurationOption:
    def option(c: Configuration) -> None:
        c.metadata.app_name = app_name

    return option


def with_config_file(config_file: str | Path) -> ConfigurationOption:
    """Load this file; failing to read it fails initialization."""

    def option(c: Configuration) -> None:
        c.metadata.config_file = str(config_file)
        c.metadata.explicit_file = True

    return option


def with_config_dir(config_dir: str | Path) -> ConfigurationOption:
    def option(c: Configuration) -> None:
        c.metadata.config_dir = Path(config_dir)

    return option


def with_wait_group(wait_group: WaitGroup) -> ConfigurationOption:
    def option(c: Configuration) -> None:
        c.metadata.wait_group = wait_group

    return option


def with_interval(seconds: float) -> ConfigurationOption:
    if seconds <= 0:
        raise ValueError("watch interval must be positive")

    def option(c: Configuration) -> None:
        c.metadata.interval = seconds

    return option


def with_dotenv(path: str | Path) -> ConfigurationOption:
    def option(c: Configuration) -> None:
        c.metadata.dotenv_path = Path(path)

    return option


def without_load() -> ConfigurationOption:
    def option(c: Configuration) -> None:
        c.metadata.load = False

    return option


def without_watch() -> ConfigurationOption:
    def option(c: Configuration) -> None:
        c.metadata.watch = False

    return option


def init_config(
    ctx: CancelToken | None,
    settings,
    *options: ConfigurationOption,
    environ=None,
) -> Configuration:
    """Find the core configuration in ``settings`` and populate everything.

    Args:
        ctx: Cancellation token ending the watcher; None to stop it only
            through ``Configuration.watcher.stop()``
        settings: Caller's settings object, mutated in place
        options: ``with_*`` / ``without_*`` options, applied in order
        environ: Environment mapping to read instead of ``os.environ``

    Returns:
        The core configuration now held by the anchor field

    Raises:
        ConfigurationError: structural problems with ``settings``, an
            unreadable or malformed configuration file, or a value that does
            not fit its field
    """
    anchor = resolve_anchor(settings)

    core = getattr(settings, anchor.name, None)
    if core is None:
        core = anchor.core_type()
    elif core.watcher is not None and core.watcher.running:
        core.watcher.stop()
        core.watcher.join()

    core.set_metadata_defaults()
    for option in options:
        option(core)
    setattr(settings, anchor.name, core)

    env = core.env_source(environ)
    if core.metadata.load:
        sources: list[SettingSource] = [
            DefaultSource(core.metadata.default_context()),
            core.file_source(),
            env,
        ]
        core._monitored.clear()
        walk(settings, sources, anchor=anchor.name, on_leaf=core.track(env))

    if core.metadata.watch:
        watcher = ConfigWatcher(
            core,
            env,
            ctx=ctx,
            interval=core.metadata.interval,
            wait_group=core.metadata.wait_group,
        )
        core.metadata.watcher = watcher
        watcher.start()

    return core


__all__ = [
    "Configuration",
    "ConfigurationOption",
    "Metadata",
    "init_config",
    "with_app_name",
    "with_config_dir",
    "with_config_file",
    "with_dotenv",
    "with_interval",
    "with_wait_group",
    "without_load",
    "without_watch",
]
