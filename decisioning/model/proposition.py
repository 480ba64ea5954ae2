from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

import structlog

from decisioning.constants import JsonKeys
from decisioning.infra.errors import PayloadError
from decisioning.model import reader
from decisioning.model.offer import Offer

if TYPE_CHECKING:
    from decisioning.model.offer import OfferTracker

logger = structlog.get_logger()


@dataclass(frozen=True)
class Proposition:
    """The service's decision (a set of Offers) for one decision scope.

    Construction wires every contained Offer to this proposition's id and
    scope; offers are stored as an immutable tuple of wired copies.
    """

    id: str
    offers: tuple[Offer, ...] = ()
    scope: str = ""
    scope_details: dict[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        owned = tuple(replace(o, proposition_id=self.id, scope=self.scope) for o in self.offers)
        object.__setattr__(self, "offers", owned)

    @classmethod
    def from_event_data(
        cls,
        data: Mapping[str, Any] | None,
        *,
        tracker: OfferTracker | None = None,
        require_offers: bool = False,
    ) -> Proposition | None:
        """Parse one wire proposition. Returns None (and logs) when unusable.

        Items that fail to parse are skipped. With require_offers=True a
        proposition left without any offer is rejected as well.
        """
        if not data or not isinstance(data, Mapping):
            logger.debug("proposition_parse_failed", reason="proposition data is empty")
            return None
        try:
            proposition_id = reader.get_string(data, JsonKeys.PAYLOAD_ID, "")
            if not proposition_id:
                raise PayloadError("proposition id is missing or empty")
            scope = reader.get_string(data, JsonKeys.PAYLOAD_SCOPE, "")
            if not scope:
                raise PayloadError("proposition scope is missing or empty")
            scope_details = reader.get_map(data, JsonKeys.PAYLOAD_SCOPE_DETAILS) or {}
            items = reader.get_list(data, JsonKeys.PAYLOAD_ITEMS)
            if items is None:
                raise PayloadError("proposition items are missing")
        except PayloadError as e:
            logger.warning("proposition_parse_failed", code=e.code, reason=str(e))
            return None

        offers = []
        for item in items:
            offer = Offer.from_event_data(item, tracker=tracker)
            if offer is not None:
                offers.append(offer)

        if require_offers and not offers:
            logger.debug(
                "proposition_parse_failed",
                proposition_id=proposition_id,
                scope=scope,
                reason="no valid offers",
            )
            return None

        return cls(id=proposition_id, offers=tuple(offers), scope=scope, scope_details=scope_details)

    def to_event_data(self) -> dict[str, Any]:
        return {
            JsonKeys.PAYLOAD_ID: self.id,
            JsonKeys.PAYLOAD_SCOPE: self.scope,
            JsonKeys.PAYLOAD_SCOPE_DETAILS: dict(self.scope_details),
            JsonKeys.PAYLOAD_ITEMS: [offer.to_event_data() for offer in self.offers],
        }

    def narrowed(self, offers: Iterable[Offer]) -> Proposition:
        """Projection of this proposition holding only the given offers."""
        return Proposition(
            id=self.id, offers=tuple(offers), scope=self.scope, scope_details=self.scope_details
        )

    def find_offer(self, offer_id: str) -> Offer | None:
        return next((o for o in self.offers if o.id == offer_id), None)
