from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from decisioning.constants import ConfigurationKeys
from decisioning.infra.errors import ConfigurationError

# Load .env once at module import so every BaseSettings subclass sees the env vars
load_dotenv()


class LoggingSettings(BaseSettings):
    """Log rendering settings. Env vars prefixed with DECISIONING_LOG_."""

    model_config = SettingsConfigDict(env_prefix="DECISIONING_LOG_")

    json_output: bool = True
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        normalized = v.strip().upper()
        if normalized not in allowed:
            msg = f"DECISIONING_LOG_LEVEL must be one of {sorted(allowed)} (got '{v}')"
            raise ValueError(msg)
        return normalized


class ClientSettings(BaseSettings):
    """Client facade settings. Env vars prefixed with DECISIONING_CLIENT_."""

    model_config = SettingsConfigDict(env_prefix="DECISIONING_CLIENT_")

    response_timeout_s: float = Field(5.0, gt=0, le=60)


class Settings(BaseSettings):
    """Root settings composing all sub-configurations."""

    model_config = SettingsConfigDict(extra="ignore")

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    client: ClientSettings = Field(default_factory=ClientSettings)


def get_settings() -> Settings:
    """Load and validate settings. Raises ValidationError on invalid values."""
    return Settings()


class EdgeConfiguration(BaseModel):
    """Host-supplied configuration shared state, read per request.

    Keys are dotted (``edge.configId``); both values are opaque strings.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    config_id: str = Field("", alias=ConfigurationKeys.EDGE_CONFIG_ID)
    dataset_id: str | None = Field(None, alias=ConfigurationKeys.DATASET_ID)

    @field_validator("dataset_id", mode="before")
    @classmethod
    def _normalize_dataset_id(cls, v: Any) -> str | None:
        if v is None:
            return None
        if not isinstance(v, str):
            msg = f"optimize.datasetId must be a string (got {type(v).__name__})"
            raise ValueError(msg)
        return v or None

    @classmethod
    def from_shared_state(cls, state: Mapping[str, Any] | None) -> EdgeConfiguration:
        """Parse the configuration shared state.

        Raises ConfigurationError if the state is missing, malformed,
        or has no network destination (empty edge.configId).
        """
        if not state:
            raise ConfigurationError()
        try:
            config = cls.model_validate(dict(state))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration shared state: {e}") from e
        if not config.config_id:
            raise ConfigurationError(
                f"Configuration shared state has no '{ConfigurationKeys.EDGE_CONFIG_ID}'"
            )
        return config
