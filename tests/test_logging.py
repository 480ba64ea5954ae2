"""Tests for setup_logging and configure_logging."""

from __future__ import annotations

import json

import pytest
import structlog

from decisioning.config.settings import LoggingSettings
from decisioning.infra.logging import configure_logging, setup_logging


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


class TestSetupLogging:
    def test_json_output_respects_level(self, capsys) -> None:
        setup_logging(json_output=True, log_level="warning")
        log = structlog.get_logger("test")
        log.info("hidden_event")
        log.warning("shown_event", scope="X")

        lines = [line for line in capsys.readouterr().out.splitlines() if line]
        assert len(lines) == 1
        record = json.loads(lines[0])
        assert record["event"] == "shown_event"
        assert record["level"] == "warning"
        assert record["scope"] == "X"
        assert "timestamp" in record

    def test_console_output(self, capsys) -> None:
        setup_logging(json_output=False, log_level="DEBUG")
        structlog.get_logger("test").debug("console_event")
        assert "console_event" in capsys.readouterr().out


class TestConfigureLogging:
    def test_applies_explicit_settings(self, capsys) -> None:
        configure_logging(LoggingSettings(json_output=True, level="ERROR"))
        log = structlog.get_logger("test")
        log.warning("filtered_event")
        log.error("kept_event")

        lines = [line for line in capsys.readouterr().out.splitlines() if line]
        assert [json.loads(line)["event"] for line in lines] == ["kept_event"]

    def test_reads_settings_from_environment(self, capsys, monkeypatch) -> None:
        monkeypatch.setenv("DECISIONING_LOG_JSON_OUTPUT", "false")
        monkeypatch.setenv("DECISIONING_LOG_LEVEL", "warning")
        configure_logging()
        log = structlog.get_logger("test")
        log.info("hidden_event")
        log.warning("console_event")

        out = capsys.readouterr().out
        assert "hidden_event" not in out
        assert "console_event" in out
