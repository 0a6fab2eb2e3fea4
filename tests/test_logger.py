import io
import logging

from clif.console import ConsoleConfiguration
from clif.logger import (
    RESET,
    HistoryHandler,
    LoggerConfiguration,
    apply_level,
    setup_logging,
)

NAME = "clif-test"


def test_numeric_level():
    assert LoggerConfiguration(level="debug").numeric_level == logging.DEBUG
    assert LoggerConfiguration(level="WARNING").numeric_level == logging.WARNING
    assert LoggerConfiguration(level="chatty").numeric_level == logging.INFO


def test_setup_logging_writes_and_keeps_history():
    stream = io.StringIO()
    history = setup_logging(LoggerConfiguration(level="debug"), name=NAME, stream=stream)
    log = logging.getLogger(NAME)

    log.debug("loaded %s", "config.yaml")

    assert "loaded config.yaml" in stream.getvalue()
    assert history.messages[-1].endswith("loaded config.yaml")
    assert log.level == logging.DEBUG


def test_setup_logging_replaces_its_own_handlers():
    setup_logging(LoggerConfiguration(), name=NAME, stream=io.StringIO())
    setup_logging(LoggerConfiguration(), name=NAME, stream=io.StringIO())

    owned = [h for h in logging.getLogger(NAME).handlers if getattr(h, "_clif_handler", False)]
    assert len(owned) == 2


def test_colorized_lines():
    stream = io.StringIO()
    setup_logging(LoggerConfiguration(level="info", colorized=True), name=NAME, stream=stream)

    logging.getLogger(NAME).warning("careful")

    assert "\x1b[93m" in stream.getvalue()
    assert RESET in stream.getvalue()


def test_apply_level():
    setup_logging(LoggerConfiguration(level="info"), name=NAME, stream=io.StringIO())

    apply_level(LoggerConfiguration(level="error"), name=NAME)

    assert logging.getLogger(NAME).level == logging.ERROR


def test_history_is_bounded():
    handler = HistoryHandler(limit=3)
    handler.setFormatter(logging.Formatter("%(message)s"))
    log = logging.getLogger(NAME + ".history")
    log.propagate = False
    log.addHandler(handler)
    log.setLevel(logging.INFO)

    for i in range(5):
        log.info("line %d", i)

    assert handler.messages == ["line 2", "line 3", "line 4"]
    log.removeHandler(handler)


def test_sections_from_mapping():
    logger_config = LoggerConfiguration.from_mapping({"level": "debug", "colorized": True})
    console = ConsoleConfiguration.from_mapping({"width": 80, "height": 24})

    assert logger_config == LoggerConfiguration(level="debug", colorized=True)
    assert console.satisfied_by(100, 30)
    assert not console.satisfied_by(79, 30)
