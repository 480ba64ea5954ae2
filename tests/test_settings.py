"""Tests for settings and the configuration shared state parser."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from decisioning.config.settings import (
    ClientSettings,
    EdgeConfiguration,
    LoggingSettings,
    get_settings,
)
from decisioning.infra.errors import ConfigurationError


class TestLoggingSettings:
    def test_defaults(self, monkeypatch) -> None:
        monkeypatch.delenv("DECISIONING_LOG_LEVEL", raising=False)
        monkeypatch.delenv("DECISIONING_LOG_JSON_OUTPUT", raising=False)
        s = LoggingSettings()
        assert s.level == "INFO"
        assert s.json_output is True

    def test_level_normalized(self) -> None:
        assert LoggingSettings(level=" debug ").level == "DEBUG"

    def test_invalid_level_rejected(self) -> None:
        with pytest.raises(ValidationError, match="DECISIONING_LOG_LEVEL must be one of"):
            LoggingSettings(level="TRACE")

    def test_env_prefix(self, monkeypatch) -> None:
        monkeypatch.setenv("DECISIONING_LOG_LEVEL", "warning")
        monkeypatch.setenv("DECISIONING_LOG_JSON_OUTPUT", "false")
        s = LoggingSettings()
        assert s.level == "WARNING"
        assert s.json_output is False


class TestClientSettings:
    def test_default_timeout(self, monkeypatch) -> None:
        monkeypatch.delenv("DECISIONING_CLIENT_RESPONSE_TIMEOUT_S", raising=False)
        assert ClientSettings().response_timeout_s == 5.0

    def test_env_override(self, monkeypatch) -> None:
        monkeypatch.setenv("DECISIONING_CLIENT_RESPONSE_TIMEOUT_S", "1.5")
        assert get_settings().client.response_timeout_s == 1.5

    @pytest.mark.parametrize("value", [0, -1, 61])
    def test_out_of_range_rejected(self, value) -> None:
        with pytest.raises(ValidationError):
            ClientSettings(response_timeout_s=value)


class TestEdgeConfiguration:
    def test_parses_dotted_keys(self) -> None:
        config = EdgeConfiguration.from_shared_state(
            {"edge.configId": "cfg-1", "optimize.datasetId": "ds-1", "other": 1}
        )
        assert config.config_id == "cfg-1"
        assert config.dataset_id == "ds-1"

    def test_empty_dataset_id_is_none(self) -> None:
        config = EdgeConfiguration.from_shared_state(
            {"edge.configId": "cfg-1", "optimize.datasetId": ""}
        )
        assert config.dataset_id is None

    @pytest.mark.parametrize(
        "state",
        [
            None,
            {},
            {"optimize.datasetId": "ds-1"},
            {"edge.configId": ""},
            {"edge.configId": 42},
            {"edge.configId": "cfg-1", "optimize.datasetId": 7},
        ],
    )
    def test_unusable_state_raises(self, state) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            EdgeConfiguration.from_shared_state(state)
        assert exc_info.value.code == "CONFIGURATION_UNAVAILABLE"

    def test_frozen(self) -> None:
        config = EdgeConfiguration.from_shared_state({"edge.configId": "cfg-1"})
        with pytest.raises(ValidationError):
            config.config_id = "other"
