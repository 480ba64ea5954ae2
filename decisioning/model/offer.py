from __future__ import annotations

import json
import weakref
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from decisioning.constants import JsonKeys, JsonValues
from decisioning.infra.errors import PayloadError
from decisioning.model import reader

if TYPE_CHECKING:
    from decisioning.model.proposition import Proposition

logger = structlog.get_logger()


class OfferType(StrEnum):
    """Content classifier; values are the wire format strings."""

    HTML = "text/html"
    JSON = "application/json"
    TEXT = "text/plain"
    IMAGE = "image/*"
    UNKNOWN = ""

    @classmethod
    def from_format(cls, value: str | None) -> OfferType:
        if not value:
            return cls.UNKNOWN
        value = value.strip().lower()
        if value.startswith("image/"):
            return cls.IMAGE
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class OfferTracker(Protocol):
    """Receiver of offer interactions (implemented by the extension)."""

    def track_offers(self, offers: Sequence[Offer], event_type: str) -> None: ...

    async def resolve_proposition(self, offer: Offer) -> Proposition | None: ...


@dataclass(frozen=True)
class Offer:
    """One content item of a Proposition.

    proposition_id/scope are the owning Proposition's identity, wired by the
    Proposition constructor. The owner itself is never referenced: it is
    re-resolved from the cache when an interaction is tracked, so a cleared
    or replaced proposition degrades tracking to a no-op.
    """

    id: str
    type: OfferType = OfferType.UNKNOWN
    content: str = ""
    etag: str = ""
    score: float = 0.0
    schema: str = ""
    meta: dict[str, Any] = field(default_factory=dict, hash=False)
    language: tuple[str, ...] = ()
    characteristics: dict[str, str] = field(default_factory=dict, hash=False)
    proposition_id: str = field(default="", compare=False, repr=False)
    scope: str = field(default="", compare=False, repr=False)
    tracker_ref: weakref.ReferenceType[OfferTracker] | None = field(
        default=None, compare=False, repr=False
    )

    @classmethod
    def from_event_data(
        cls, data: Mapping[str, Any] | None, *, tracker: OfferTracker | None = None
    ) -> Offer | None:
        """Parse a wire item. Returns None (and logs) for any malformed item."""
        if not data or not isinstance(data, Mapping):
            logger.debug("offer_parse_failed", reason="item data is empty")
            return None
        try:
            return cls._parse(data, tracker)
        except PayloadError as e:
            logger.warning("offer_parse_failed", code=e.code, reason=str(e))
            return None

    @classmethod
    def _parse(cls, data: Mapping[str, Any], tracker: OfferTracker | None) -> Offer | None:
        offer_id = reader.get_string(data, JsonKeys.ITEM_ID, "")
        if not offer_id:
            raise PayloadError("item id is missing or empty")
        etag = reader.get_string(data, JsonKeys.ITEM_ETAG, "")
        score = reader.get_float(data, JsonKeys.ITEM_SCORE, 0.0)
        schema = reader.get_string(data, JsonKeys.ITEM_SCHEMA, "")
        meta = reader.get_map(data, JsonKeys.ITEM_META) or {}
        tracker_ref = weakref.ref(tracker) if tracker is not None else None

        offer_data = reader.get_map(data, JsonKeys.ITEM_DATA)
        if not offer_data:
            # Target answers "no offer" with a default-content item that has no data
            if schema != JsonValues.SCHEMA_TARGET_DEFAULT:
                raise PayloadError("item data is missing and schema is not default content")
            logger.debug("offer_default_content", offer_id=offer_id)
            return cls(
                id=offer_id,
                type=OfferType.UNKNOWN,
                content="",
                schema=schema,
                meta=meta,
                tracker_ref=tracker_ref,
            )

        nested_id = reader.get_string(offer_data, JsonKeys.ITEM_DATA_ID)
        if nested_id != offer_id:
            logger.debug("offer_parse_failed", offer_id=offer_id, reason="item data id mismatch")
            return None

        offer_format = reader.get_string(offer_data, JsonKeys.ITEM_DATA_FORMAT)
        if offer_format is None:
            offer_format = reader.get_string(offer_data, JsonKeys.ITEM_DATA_TYPE)
        language = reader.get_string_list(offer_data, JsonKeys.ITEM_DATA_LANGUAGE) or []
        characteristics = (
            reader.get_string_map(offer_data, JsonKeys.ITEM_DATA_CHARACTERISTICS) or {}
        )

        content = _resolve_content(offer_data)
        if content is None:
            logger.debug(
                "offer_parse_failed", offer_id=offer_id, reason="no content or deliveryURL"
            )
            return None

        return cls(
            id=offer_id,
            type=OfferType.from_format(offer_format),
            content=content,
            etag=etag,
            score=score,
            schema=schema,
            meta=meta,
            language=tuple(language),
            characteristics=characteristics,
            tracker_ref=tracker_ref,
        )

    def to_event_data(self) -> dict[str, Any]:
        return {
            JsonKeys.ITEM_ID: self.id,
            JsonKeys.ITEM_ETAG: self.etag,
            JsonKeys.ITEM_SCORE: self.score,
            JsonKeys.ITEM_SCHEMA: self.schema,
            JsonKeys.ITEM_META: dict(self.meta),
            JsonKeys.ITEM_DATA: {
                JsonKeys.ITEM_DATA_ID: self.id,
                JsonKeys.ITEM_DATA_TYPE: self.type.value,
                JsonKeys.ITEM_DATA_CONTENT: self.content,
                JsonKeys.ITEM_DATA_LANGUAGE: list(self.language),
                JsonKeys.ITEM_DATA_CHARACTERISTICS: dict(self.characteristics),
            },
        }

    @property
    def tracker(self) -> OfferTracker | None:
        return self.tracker_ref() if self.tracker_ref is not None else None

    def displayed(self) -> None:
        """Record a display interaction for this offer."""
        self._track(JsonValues.EVENT_TYPE_PROPOSITION_DISPLAY)

    def tapped(self) -> None:
        """Record a tap/click interaction for this offer."""
        self._track(JsonValues.EVENT_TYPE_PROPOSITION_INTERACT)

    async def resolve_proposition(self) -> Proposition | None:
        """Return the live owning Proposition, or None once it is gone."""
        tracker = self.tracker
        if tracker is None:
            return None
        return await tracker.resolve_proposition(self)

    def _track(self, event_type: str) -> None:
        tracker = self.tracker
        if tracker is None:
            logger.debug(
                "offer_interaction_skipped",
                offer_id=self.id,
                event_type=event_type,
                reason="no tracker",
            )
            return
        tracker.track_offers([self], event_type)


def _resolve_content(offer_data: Mapping[str, Any]) -> str | None:
    """content (string, or structured value re-serialized), else deliveryURL."""
    content = offer_data.get(JsonKeys.ITEM_DATA_CONTENT)
    if isinstance(content, str):
        return content
    if isinstance(content, Mapping | list | tuple):
        try:
            return json.dumps(content, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PayloadError(f"item content is not JSON serializable: {e}") from e
    return reader.get_string(offer_data, JsonKeys.ITEM_DATA_DELIVERY_URL)
