"""Background watcher keeping monitored settings live.

One dispatcher thread multiplexes file events and cancellation through a
single queue; the queue timeout is the environment polling tick:

    +------------------+        +---------------------------+
    | watchdog thread  |--put-->|                           |
    |  file events     |        |  dispatcher thread        |
    +------------------+        |   queue.get(timeout=tick) |
    | CancelToken      |--put-->|   - file event -> reload  |
    |  cancel()        |        |   - timeout    -> poll env|
    +------------------+        |   - cancel     -> exit    |
                                +---------------------------+

Environment polling is poll-and-diff: a callback runs only when the value
of its variable differs from the last value the watcher observed. The
baseline is taken when the watcher starts; variables registered later are
baselined silently on the first tick that sees them.

A slow callback delays the following ticks; callbacks are not timed out.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .adapters.file_source import FileSource
from .core.cancel_token import CancelToken
from .core.coercion import coerce, parse
from .core.errors import ConfigurationError
from .core.fields import MISSING, FieldSpec
from .core.state_machine import WatcherEvent, WatcherState, WatcherStateMachine
from .core.wait_group import WaitGroup

if TYPE_CHECKING:
    from .adapters.config_env import EnvSource
    from .configuration import Configuration

logger = logging.getLogger(__name__)

_FILE_EVENT = "file"
_CANCEL = "cancel"

_WRITE_EVENTS = {EVENT_TYPE_MODIFIED, EVENT_TYPE_CREATED, EVENT_TYPE_MOVED, EVENT_TYPE_CLOSED}


@dataclass
class MonitoredSetting:
    """A leaf field kept in sync with its environment variable.

    Attributes:
        env_key: Environment variable name, the setting's identity
        key: Dotted logical key, used for file lookups
        owner: Object holding the field
        spec: Field classification
    """

    env_key: str
    key: str
    owner: Any
    spec: FieldSpec

    @property
    def value(self):
        return getattr(self.owner, self.spec.name, None)

    def apply(self, value) -> bool:
        """Write ``value``; return True when the field changed."""
        if self.value == value:
            return False
        setattr(self.owner, self.spec.name, value)
        return True


def _normalize(path) -> str:
    return os.path.abspath(os.fsdecode(path))


class _ConfigFileHandler(FileSystemEventHandler):
    """Forwards events about the configuration file to the dispatcher."""

    def __init__(self, paths: set[str], post: Callable[[tuple[str, Any]], None]):
        super().__init__()
        self._paths = paths
        self._post = post

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        touched = {_normalize(event.src_path)}
        dest = getattr(event, "dest_path", "")
        if dest:
            touched.add(_normalize(dest))
        if touched & self._paths:
            self._post((_FILE_EVENT, event))


class ConfigWatcher:
    """Owned handle on the background watcher.

    Example:
        watcher = ConfigWatcher(core, env, ctx=token)
        watcher.start()
        ...
        token.cancel()  # or watcher.stop()
        watcher.join()
    """

    def __init__(
        self,
        configuration: Configuration,
        env: EnvSource,
        ctx: CancelToken | None = None,
        interval: float = 5.0,
        wait_group: WaitGroup | None = None,
        observer_factory: Callable[[], Any] = Observer,
    ):
        self._configuration = configuration
        self._env = env
        self._ctx = ctx
        self._token = CancelToken()
        self._interval = interval
        self._wait_group = wait_group
        self._observer_factory = observer_factory
        self._observer = None
        self._queue: queue.Queue[tuple[str, Any]] = queue.Queue()
        self._state = WatcherStateMachine()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._seen: dict[str, str | None] = {}

    @property
    def state(self) -> WatcherState:
        return self._state.state

    @property
    def running(self) -> bool:
        return self._state.state is WatcherState.RUNNING

    def start(self) -> None:
        """Open the file watch and start the dispatcher (STOPPED -> RUNNING)."""
        with self._lock:
            if not self._state.can(WatcherEvent.START):
                logger.warning("Configuration watcher already running")
                return

            self._observer = self._open_observer()
            self.prime()
            if self._wait_group is not None:
                self._wait_group.add(1)
            self._state.transition(WatcherEvent.START)

            self._token.on_cancel(lambda: self._queue.put((_CANCEL, None)))
            if self._ctx is not None:
                self._ctx.on_cancel(self._token.cancel)

            self._thread = threading.Thread(
                target=self._run,
                name="clif-config-watcher",
                daemon=True,
            )
            self._thread.start()

    def stop(self) -> None:
        """Ask the dispatcher to exit. Use ``join`` to wait for it."""
        self._token.cancel()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the dispatcher to exit. Returns False on timeout."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    # ****** Dispatcher ******************************************************

    def _run(self) -> None:
        next_tick = time.monotonic() + self._interval
        try:
            while True:
                timeout = max(0.0, next_tick - time.monotonic())
                try:
                    kind, payload = self._queue.get(timeout=timeout)
                except queue.Empty:
                    self._check_observer()
                    self.check_for_env_change()
                    next_tick = time.monotonic() + self._interval
                    continue

                if kind == _CANCEL:
                    break
                if kind == _FILE_EVENT:
                    self.handle_file_event(payload)
        finally:
            self._close_observer()
            if self._ctx is not None:
                self._ctx.remove_callback(self._token.cancel)
            with self._lock:
                self._state.transition(WatcherEvent.CANCEL)
            if self._wait_group is not None:
                self._wait_group.done()

    def _watched_files(self) -> list[Path]:
        return [path.absolute() for path in self._configuration.metadata.config_candidates()]

    def _open_observer(self):
        files = self._watched_files()
        directories = sorted({str(path.parent) for path in files if path.parent.is_dir()})
        if not directories:
            logger.info("No configuration directory to watch")
            return None

        handler = _ConfigFileHandler({_normalize(path) for path in files}, self._queue.put)
        try:
            observer = self._observer_factory()
            for directory in directories:
                observer.schedule(handler, directory, recursive=False)
            observer.start()
        except OSError as e:
            logger.error("Unable to watch configuration files: %s", e)
            return None
        logger.debug("Watching %s", ", ".join(directories))
        return observer

    def _check_observer(self) -> None:
        observer = self._observer
        if observer is None or observer.is_alive():
            return
        logger.error("Configuration watch stopped unexpectedly, reopening")
        self._close_observer()
        self._observer = self._open_observer()

    def _close_observer(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        try:
            observer.stop()
            observer.join(timeout=2.0)
        except (OSError, RuntimeError) as e:
            logger.error("Error closing configuration watch: %s", e)

    # ****** File events *****************************************************

    def handle_file_event(self, event: FileSystemEvent) -> None:
        path = os.fsdecode(getattr(event, "dest_path", "") or event.src_path)
        if event.event_type == EVENT_TYPE_DELETED or (
            event.event_type == EVENT_TYPE_MOVED
            and _normalize(event.dest_path) not in {_normalize(p) for p in self._watched_files()}
        ):
            logger.warning("Configuration file removed: %s", os.fsdecode(event.src_path))
            return
        if event.event_type not in _WRITE_EVENTS:
            return
        logger.info("Modified configuration file: %s", path)
        self.reload_file()

    def reload_file(self) -> None:
        """Re-read the file and apply it to monitored settings whose variable is unset."""
        metadata = self._configuration.metadata
        path = next((p for p in metadata.config_candidates() if p.is_file()), None)
        if path is None:
            return
        try:
            source = FileSource.from_path(path, sections=self._configuration.section_decoders())
        except ConfigurationError as e:
            logger.error("Unable to reload %s: %s", path, e)
            return

        for env_key, monitored in self._configuration.monitored_settings().items():
            if self._env.get(env_key) is not None:
                continue
            try:
                raw = source.get(monitored.key)
                if raw is MISSING:
                    continue
                value = coerce(monitored.key, raw, monitored.spec.type, monitored.spec.optional)
            except ConfigurationError as e:
                logger.error("Ignoring %s from %s: %s", monitored.key, path, e)
                continue
            if monitored.apply(value):
                self._notify(env_key, value)

    # ****** Environment polling *********************************************

    def _polled_names(self) -> list[str]:
        names = self._configuration.registry.names()
        for env_key in self._configuration.monitored_settings():
            if env_key not in names:
                names.append(env_key)
        return names

    def prime(self) -> None:
        """Record the current value of every polled variable as the baseline."""
        self._seen = {name: self._env.get(name) for name in self._polled_names()}

    def check_for_env_change(self) -> None:
        """Poll the environment once and notify settings whose value changed."""
        monitored = self._configuration.monitored_settings()
        for name in self._polled_names():
            raw = self._env.get(name)
            if name not in self._seen:
                self._seen[name] = raw
                continue
            if raw == self._seen[name]:
                continue
            self._seen[name] = raw

            value: Any = raw
            setting = monitored.get(name)
            if setting is not None:
                if raw is None:
                    # an unset variable never clears a loaded value
                    continue
                try:
                    value = parse(setting.key, raw, setting.spec.type)
                except ConfigurationError as e:
                    logger.error("Ignoring %s=%r: %s", name, raw, e)
                    continue
                setting.apply(value)
            self._notify(name, value)

    def _notify(self, name: str, value) -> None:
        for callback in self._configuration.registry.callbacks(name):
            try:
                callback(name, value)
            except Exception:
                logger.exception("Notification callback for %s failed", name)
