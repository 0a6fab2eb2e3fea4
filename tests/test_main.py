import logging
import signal

import pytest

import clif.configuration as configuration
from clif.main import build_parser, main


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(configuration, "home_dir", lambda: tmp_path)
    monkeypatch.setattr(signal, "signal", lambda *args: None)
    yield
    log = logging.getLogger("clif")
    for handler in list(log.handlers):
        if getattr(handler, "_clif_handler", False):
            log.removeHandler(handler)
    log.setLevel(logging.NOTSET)


def test_parser_defaults():
    args = build_parser().parse_args([])

    assert args.interval == 5.0
    assert not args.watch
    assert args.config is None


def test_main_prints_resolved_configuration(tmp_path, capsys):
    path = tmp_path / "app.yaml"
    path.write_text("logger:\n  level: debug\n  colorized: true\nconsole:\n  width: 50\n  height: 10\n")

    assert main(["--app-name", "cliftest", "--config", str(path)]) == 0

    out = capsys.readouterr().out
    assert "Logger: level=debug colorized=True" in out
    assert "Console: 50x10" in out
    assert f"Config file: {path}" in out


def test_main_reports_configuration_errors(tmp_path, capsys):
    assert main(["--app-name", "cliftest", "--config", str(tmp_path / "absent.yaml")]) == 1
    assert "Error: configuration error" in capsys.readouterr().out


@pytest.mark.parametrize("interval", ["0", "-1", "soon"])
def test_interval_must_be_a_positive_number(interval, capsys):
    with pytest.raises(SystemExit) as exc:
        build_parser().parse_args(["--interval", interval])

    assert exc.value.code == 2
    assert "--interval" in capsys.readouterr().err
