import importlib

logger_module = importlib.import_module("coding_agent.utils.logger")
from coding_agent.utils.logger import Logger, LogLevel, parse_log_level, set_default_level


def test_parse_log_level() -> None:
    assert parse_log_level("debug") is LogLevel.DEBUG
    assert parse_log_level(" WARN ") is LogLevel.WARNING
    assert parse_log_level("verbose") is LogLevel.INFO
    assert parse_log_level(None, LogLevel.ERROR) is LogLevel.ERROR


def test_logs_go_to_stderr_only(capsys, monkeypatch) -> None:
    monkeypatch.setenv("NO_COLOR", "1")
    log = Logger("Agent", LogLevel.DEBUG).child("Tools")

    log.info("Executing read_file")
    log.error("Tool failed", RuntimeError("disk full"))

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "[INFO] [Agent:Tools] Executing read_file" in captured.err
    assert '"error_message": "disk full"' in captured.err


def test_messages_below_level_are_dropped(capsys) -> None:
    log = Logger("Quiet", LogLevel.WARNING)

    log.debug("hidden")
    log.info("hidden")
    log.warning("shown")

    err = capsys.readouterr().err
    assert "hidden" not in err
    assert "shown" in err


def test_default_level_applies_to_loggers_without_one(capsys, monkeypatch) -> None:
    monkeypatch.setattr(logger_module, "_default_level", LogLevel.INFO)
    log = Logger("Follower")

    log.debug("before")
    set_default_level(LogLevel.DEBUG)
    log.debug("after")

    err = capsys.readouterr().err
    assert "before" not in err
    assert "after" in err
