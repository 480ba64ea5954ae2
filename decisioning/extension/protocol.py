from __future__ import annotations

from collections.abc import Mapping
from enum import IntEnum
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from decisioning.constants import SUPPORTED_SCHEMAS, RequestTypes
from decisioning.infra.errors import PayloadError

# ---------------------------------------------------------------------------
# Inbound request event data
# ---------------------------------------------------------------------------


class DecisionScopeData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: StrictStr


class UpdateRequestData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    requesttype: Literal["updatepropositions"] = RequestTypes.UPDATE
    decisionscopes: list[dict[str, Any]] = Field(default_factory=list)
    xdm: dict[str, Any] | None = None
    data: dict[str, Any] | None = None


class GetRequestData(BaseModel):
    """Get requests are answered synchronously, so scope entries are strict."""

    model_config = ConfigDict(extra="ignore")

    requesttype: Literal["getpropositions"] = RequestTypes.GET
    decisionscopes: list[DecisionScopeData]


class TrackRequestData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    requesttype: Literal["trackpropositions"] = RequestTypes.TRACK
    propositioninteractions: dict[str, Any] | None = None


_RequestT = TypeVar("_RequestT", bound=BaseModel)


def parse_request_data(model: type[_RequestT], data: Mapping[str, Any]) -> _RequestT:
    """Validate inbound event data.

    Raises PayloadError on schema mismatch.
    """
    try:
        return model.model_validate(dict(data))
    except ValidationError as e:
        raise PayloadError(f"Invalid {model.__name__}: {e}") from e


# ---------------------------------------------------------------------------
# Outbound network payloads
# ---------------------------------------------------------------------------


class PersonalizationQuery(BaseModel):
    decision_scopes: list[str] = Field(serialization_alias="decisionScopes")
    schemas: list[str] = Field(default_factory=lambda: list(SUPPORTED_SCHEMAS))


class Query(BaseModel):
    personalization: PersonalizationQuery


class RequestOptions(BaseModel):
    send_completion: bool = Field(True, serialization_alias="sendCompletion")


class PersonalizationRequestData(BaseModel):
    query: Query
    xdm: dict[str, Any]
    data: dict[str, Any] | None = None
    request: RequestOptions = Field(default_factory=RequestOptions)
    dataset_id: str | None = Field(None, serialization_alias="datasetId")

    def to_event_data(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TrackRequestPayload(BaseModel):
    xdm: dict[str, Any]
    dataset_id: str | None = Field(None, serialization_alias="datasetId")

    def to_event_data(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ServiceError(BaseModel):
    """Non-recoverable error reported by the decisioning service for one request."""

    type: str
    status: int
    title: str
    detail: str
    report: dict[str, Any] = Field(default_factory=dict)

    def to_event_data(self) -> dict[str, Any]:
        return self.model_dump()


class ResponseErrorCode(IntEnum):
    """Codes surfaced in ``responseerror`` to callers waiting on a response."""

    UNEXPECTED_ERROR = 0
    CALLBACK_TIMEOUT = 1
