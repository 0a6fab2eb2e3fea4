import threading
from dataclasses import dataclass
from typing import Optional

import pytest
from watchdog.events import FileDeletedEvent, FileModifiedEvent

from clif.configuration import Configuration, init_config, with_app_name, with_config_file, without_watch
from clif.core.cancel_token import CancelToken
from clif.core.state_machine import WatcherState
from clif.core.wait_group import WaitGroup
from clif.watcher import ConfigWatcher, _ConfigFileHandler

LEVEL = "MYAPP_LOGGER_LEVEL"


@dataclass
class Settings:
    core: Optional[Configuration] = None
    port: int = 8080


class FakeObserver:
    instances = []

    def __init__(self):
        self.scheduled = []
        self.started = False
        self.stopped = False
        self.alive = False
        FakeObserver.instances.append(self)

    def schedule(self, handler, path, recursive=False):
        self.scheduled.append(path)

    def start(self):
        self.started = True
        self.alive = True

    def stop(self):
        self.stopped = True
        self.alive = False

    def is_alive(self):
        return self.alive

    def join(self, timeout=None):
        pass


@pytest.fixture
def environ():
    return {}


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("logger:\n  level: info\n")
    return path


@pytest.fixture
def core(config_file, environ, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return init_config(
        None,
        Settings(),
        with_app_name("myapp"),
        with_config_file(config_file),
        without_watch(),
        environ=environ,
    )


@pytest.fixture
def watcher(core, environ):
    return ConfigWatcher(core, core.env_source(environ), observer_factory=FakeObserver)


def _recorder(calls, tag):
    return lambda name, value: calls.append((tag, name, value))


def test_monitored_settings_tracked(core):
    monitored = core.monitored_settings()

    assert list(monitored) == [LEVEL]
    assert monitored[LEVEL].key == "logger.level"
    assert monitored[LEVEL].value == "info"


def test_env_change_updates_field_and_notifies_in_order(core, watcher, environ):
    calls = []
    core.add_notify_on_change(LEVEL, _recorder(calls, "first"))
    core.add_notify_on_change(LEVEL, _recorder(calls, "second"))
    watcher.prime()

    environ[LEVEL] = "debug"
    watcher.check_for_env_change()

    assert core.logger.level == "debug"
    assert calls == [("first", LEVEL, "debug"), ("second", LEVEL, "debug")]

    watcher.check_for_env_change()
    assert len(calls) == 2


def test_unset_variable_keeps_loaded_value(core, watcher, environ):
    calls = []
    environ[LEVEL] = "debug"
    core.add_notify_on_change(LEVEL, _recorder(calls, "cb"))
    watcher.prime()

    del environ[LEVEL]
    watcher.check_for_env_change()

    assert calls == []
    assert core.logger.level == "info"


def test_late_registration_is_baselined_silently(core, watcher, environ):
    calls = []
    watcher.prime()
    environ["MYAPP_FEATURE"] = "on"
    core.add_notify_on_change("MYAPP_FEATURE", _recorder(calls, "cb"))

    watcher.check_for_env_change()
    assert calls == []

    environ["MYAPP_FEATURE"] = "off"
    watcher.check_for_env_change()
    del environ["MYAPP_FEATURE"]
    watcher.check_for_env_change()

    assert calls == [("cb", "MYAPP_FEATURE", "off"), ("cb", "MYAPP_FEATURE", None)]


def test_failing_callback_does_not_stop_others(core, watcher, environ, caplog):
    calls = []
    core.add_notify_on_change(LEVEL, _recorder(calls, "cb"))
    watcher.prime()

    def failing(name, value):
        raise RuntimeError("callback failed")

    core.add_notify_on_change(LEVEL, failing)
    core.add_notify_on_change(LEVEL, _recorder(calls, "after"))
    environ[LEVEL] = "warning"
    watcher.check_for_env_change()

    assert [tag for tag, _, _ in calls] == ["cb", "after"]
    assert "Notification callback for MYAPP_LOGGER_LEVEL failed" in caplog.text


def test_reload_file_applies_monitored_settings(core, watcher, config_file):
    calls = []
    core.add_notify_on_change(LEVEL, _recorder(calls, "cb"))
    config_file.write_text("logger:\n  level: warning\n  colorized: true\n")

    watcher.reload_file()

    assert core.logger.level == "warning"
    # only monitored settings are refreshed
    assert core.logger.colorized is False
    assert calls == [("cb", LEVEL, "warning")]


def test_reload_file_respects_environment(core, watcher, config_file, environ):
    environ[LEVEL] = "error"
    config_file.write_text("logger:\n  level: warning\n")

    watcher.reload_file()

    assert core.logger.level == "info"


def test_reload_file_keeps_values_on_bad_file(core, watcher, config_file, caplog):
    config_file.write_text("logger:\n  level: 5\n")

    watcher.reload_file()

    assert core.logger.level == "info"
    assert "Unable to reload" in caplog.text


def test_file_events(core, watcher, config_file, caplog):
    config_file.write_text("logger:\n  level: debug\n")

    watcher.handle_file_event(FileDeletedEvent(str(config_file)))
    assert core.logger.level == "info"
    assert "Configuration file removed" in caplog.text

    watcher.handle_file_event(FileModifiedEvent(str(config_file)))
    assert core.logger.level == "debug"


def test_file_handler_filters_paths(tmp_path, config_file):
    posted = []
    handler = _ConfigFileHandler({str(config_file)}, posted.append)

    handler.on_any_event(FileModifiedEvent(str(tmp_path / "other.yaml")))
    handler.on_any_event(FileModifiedEvent(str(config_file)))

    assert len(posted) == 1
    assert posted[0][1].src_path == str(config_file)


def test_start_poll_and_cancel(core, environ, tmp_path):
    token = CancelToken()
    wg = WaitGroup()
    changed = threading.Event()
    core.add_notify_on_change(LEVEL, lambda name, value: changed.set())
    watcher = ConfigWatcher(
        core,
        core.env_source(environ),
        ctx=token,
        interval=0.02,
        wait_group=wg,
        observer_factory=FakeObserver,
    )

    watcher.start()
    observer = FakeObserver.instances[-1]
    assert watcher.state is WatcherState.RUNNING
    assert wg.count == 1
    assert observer.started
    assert str(tmp_path) in observer.scheduled

    environ[LEVEL] = "debug"
    assert changed.wait(timeout=2.0)
    assert core.logger.level == "debug"

    token.cancel()
    assert watcher.join(timeout=2.0)
    assert wg.wait(timeout=2.0)
    assert watcher.state is WatcherState.STOPPED
    assert observer.stopped


def test_stop_does_not_cancel_caller_token(core, environ):
    token = CancelToken()
    watcher = ConfigWatcher(
        core, core.env_source(environ), ctx=token, interval=0.02, observer_factory=FakeObserver
    )
    watcher.start()
    watcher.start()

    watcher.stop()

    assert watcher.join(timeout=2.0)
    assert not token.cancelled
    assert not watcher.running


def test_finished_watchers_release_caller_token(core, environ):
    token = CancelToken()
    for _ in range(3):
        watcher = ConfigWatcher(
            core, core.env_source(environ), ctx=token, interval=0.02, observer_factory=FakeObserver
        )
        watcher.start()
        watcher.stop()
        assert watcher.join(timeout=2.0)

    assert token._callbacks == []


def test_dead_observer_is_reopened(watcher, caplog):
    watcher._observer = watcher._open_observer()
    first = watcher._observer
    first.alive = False

    watcher._check_observer()

    assert first.stopped
    assert watcher._observer is not first
    assert watcher._observer.started
    assert "stopped unexpectedly" in caplog.text


def test_real_observer_reloads_edited_file(core, environ, config_file):
    seen = []
    changed = threading.Event()

    def on_level(name, value):
        seen.append(value)
        changed.set()

    core.add_notify_on_change(LEVEL, on_level)
    token = CancelToken()
    watcher = ConfigWatcher(core, core.env_source(environ), ctx=token, interval=30.0)
    watcher.start()
    try:
        config_file.write_text("logger:\n  level: error\n")
        assert changed.wait(timeout=5.0)
    finally:
        token.cancel()
        assert watcher.join(timeout=5.0)

    assert seen == ["error"]
    assert core.logger.level == "error"
