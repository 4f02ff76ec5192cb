import contextlib
import json
import logging

import pytest

from percas.telemetry import (
    FileLogsConfig,
    JsonFormatter,
    LogFilter,
    LogsConfig,
    StderrLogsConfig,
    TelemetryConfig,
    init,
    make_log_filter,
    make_log_filter_with_default_env,
)

TRACE = 5


def record(name, level, msg="message", args=()):
    return logging.LogRecord(name, level, __file__, 42, msg, args, None)


@contextlib.contextmanager
def installed(config):
    root = logging.getLogger()
    level = root.level
    handlers = init("percas", config)
    try:
        yield handlers
    finally:
        for handler in handlers:
            root.removeHandler(handler)
            handler.close()
        root.setLevel(level)


def test_level_directive_enables_at_or_above():
    log_filter = make_log_filter("info")
    assert log_filter.filter(record("any", logging.INFO)) is True
    assert log_filter.filter(record("any", logging.ERROR)) is True
    assert log_filter.filter(record("any", logging.DEBUG)) is False


def test_target_directive_takes_precedence():
    log_filter = make_log_filter("percas=debug,warn")
    assert log_filter.filter(record("percas.server", logging.DEBUG)) is True
    assert log_filter.filter(record("percas", logging.DEBUG)) is True
    assert log_filter.filter(record("other", logging.INFO)) is False
    assert log_filter.filter(record("other", logging.WARNING)) is True
    assert log_filter.filter(record("percasx", logging.DEBUG)) is False


def test_path_separator_targets_match_dotted_names():
    log_filter = make_log_filter("percas::server=trace")
    assert log_filter.filter(record("percas.server.handlers", TRACE)) is True
    assert log_filter.filter(record("percas.client", logging.CRITICAL)) is False


def test_bare_target_enables_everything_for_it():
    log_filter = make_log_filter("percas")
    assert log_filter.filter(record("percas.metrics", TRACE)) is True
    assert log_filter.filter(record("other", logging.CRITICAL)) is False


def test_off_rejects_everything():
    log_filter = make_log_filter("off")
    assert log_filter.filter(record("any", logging.CRITICAL)) is False


def test_empty_filter_passes_only_errors():
    log_filter = make_log_filter("")
    assert log_filter.filter(record("any", logging.ERROR)) is True
    assert log_filter.filter(record("any", logging.WARNING)) is False


def test_message_pattern_must_match():
    log_filter = make_log_filter("info/hello")
    assert log_filter.filter(record("any", logging.INFO, "say hello")) is True
    assert log_filter.filter(record("any", logging.INFO, "goodbye")) is False


@pytest.mark.parametrize("spec", ["percas=loud", "a=b=c", "info/[unclosed", "=info"])
def test_invalid_filter_raises(spec):
    with pytest.raises(ValueError, match="failed to parse filter"):
        LogFilter(spec)


def test_environment_overrides_default_filter(monkeypatch):
    monkeypatch.setenv("PERCAS_LOG", "debug")
    assert make_log_filter_with_default_env("error").filter(record("x", logging.DEBUG)) is True
    monkeypatch.delenv("PERCAS_LOG")
    assert make_log_filter_with_default_env("error").filter(record("x", logging.DEBUG)) is False


def test_json_formatter_renders_record():
    rendered = JsonFormatter().format(
        record("percas.server", logging.WARNING, "stored %s bytes", (5,))
    )
    payload = json.loads(rendered)
    assert payload["message"] == "stored 5 bytes"
    assert payload["level"] == "WARN"
    assert payload["target"] == "percas.server"
    assert payload["line"] == 42
    assert payload["file"] == __file__


def test_disabled_logs_install_nothing():
    root = logging.getLogger()
    before = list(root.handlers)
    with installed(TelemetryConfig(logs=LogsConfig.disabled())) as handlers:
        assert handlers == []
        assert root.handlers == before
    assert LogsConfig.disabled() == LogsConfig(file=None, stderr=None)


def test_file_logs_are_json_and_filtered(tmp_path):
    config = TelemetryConfig(
        logs=LogsConfig(file=FileLogsConfig(dir=tmp_path / "logs", filter="info", max_files=2))
    )
    with installed(config) as handlers:
        assert len(handlers) == 1
        log = logging.getLogger("percas.test")
        log.debug("hidden")
        log.info("hello file")
        for handler in handlers:
            handler.flush()
        lines = (tmp_path / "logs" / "percas.log").read_text().splitlines()
    assert [json.loads(line)["message"] for line in lines] == ["hello file"]


def test_second_init_is_ignored(tmp_path):
    config = TelemetryConfig(logs=LogsConfig(stderr=StderrLogsConfig(filter="warn")))
    with installed(config) as first:
        assert len(first) == 1
        with installed(config) as second:
            assert second == []


def test_invalid_filter_installs_nothing(tmp_path):
    root = logging.getLogger()
    before = list(root.handlers)
    config = TelemetryConfig(
        logs=LogsConfig(file=FileLogsConfig(dir=tmp_path, filter="x=bogus", max_files=1))
    )
    with pytest.raises(ValueError, match="failed to parse filter"):
        init("percas", config)
    assert root.handlers == before