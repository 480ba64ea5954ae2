"""Tests for Proposition parsing and offer wiring."""

from __future__ import annotations

from typing import Any

import pytest

from decisioning.constants import JsonValues
from decisioning.model import Offer, OfferType, Proposition


def _item(offer_id: str, content: str = "<p>x</p>") -> dict[str, Any]:
    return {
        "id": offer_id,
        "schema": JsonValues.SCHEMA_TARGET_HTML,
        "data": {"id": offer_id, "format": "text/html", "content": content},
    }


def _proposition_data(
    proposition_id: str = "P1", scope: str = "X", items: list[Any] | None = None
) -> dict[str, Any]:
    return {
        "id": proposition_id,
        "scope": scope,
        "scopeDetails": {"decisionProvider": "TGT", "activity": {"id": "125589"}},
        "items": items if items is not None else [_item("O1")],
    }


class TestPropositionFromEventData:
    def test_parses_offers(self) -> None:
        proposition = Proposition.from_event_data(_proposition_data())
        assert proposition is not None
        assert proposition.id == "P1"
        assert proposition.scope == "X"
        assert proposition.scope_details["decisionProvider"] == "TGT"
        assert [o.id for o in proposition.offers] == ["O1"]
        assert proposition.offers[0].type is OfferType.HTML

    def test_offers_are_wired_to_owner(self) -> None:
        proposition = Proposition.from_event_data(_proposition_data())
        offer = proposition.offers[0]
        assert offer.proposition_id == "P1"
        assert offer.scope == "X"

    def test_malformed_items_are_skipped(self) -> None:
        items = [_item("O1"), {"id": "O2"}, "garbage", _item("O3")]
        proposition = Proposition.from_event_data(_proposition_data(items=items))
        assert [o.id for o in proposition.offers] == ["O1", "O3"]

    def test_zero_offers_allowed_by_default(self) -> None:
        proposition = Proposition.from_event_data(_proposition_data(items=[]))
        assert proposition is not None
        assert proposition.offers == ()

    def test_zero_offers_rejected_when_required(self) -> None:
        data = _proposition_data(items=[{"id": "bad"}])
        assert Proposition.from_event_data(data, require_offers=True) is None

    @pytest.mark.parametrize(
        "data",
        [
            None,
            {},
            {"scope": "X", "items": []},
            {"id": "P1", "items": []},
            {"id": "P1", "scope": "X"},
            {"id": "P1", "scope": "X", "items": "nope"},
            {"id": 7, "scope": "X", "items": []},
            {"id": "P1", "scope": "X", "scopeDetails": [], "items": []},
        ],
    )
    def test_unusable_data_returns_none(self, data) -> None:
        assert Proposition.from_event_data(data) is None


class TestPropositionModel:
    def test_constructor_wires_offers(self) -> None:
        proposition = Proposition(id="P9", offers=(Offer(id="O1"), Offer(id="O2")), scope="S")
        assert {(o.proposition_id, o.scope) for o in proposition.offers} == {("P9", "S")}

    def test_to_event_data_round_trip(self) -> None:
        proposition = Proposition.from_event_data(_proposition_data(items=[_item("O1"), _item("O2")]))
        data = proposition.to_event_data()
        assert data["id"] == "P1"
        assert data["scope"] == "X"
        assert [i["id"] for i in data["items"]] == ["O1", "O2"]
        assert Proposition.from_event_data(data) == proposition

    def test_narrowed_keeps_identity(self) -> None:
        proposition = Proposition.from_event_data(_proposition_data(items=[_item("O1"), _item("O2")]))
        narrowed = proposition.narrowed([proposition.offers[1]])
        assert narrowed.id == proposition.id
        assert narrowed.scope == proposition.scope
        assert narrowed.scope_details == proposition.scope_details
        assert [o.id for o in narrowed.offers] == ["O2"]

    def test_find_offer(self) -> None:
        proposition = Proposition.from_event_data(_proposition_data(items=[_item("O1"), _item("O2")]))
        assert proposition.find_offer("O2").id == "O2"
        assert proposition.find_offer("missing") is None

    def test_equal_propositions_hash_equal(self) -> None:
        p1 = Proposition.from_event_data(_proposition_data())
        p2 = Proposition.from_event_data(_proposition_data())
        assert p1 == p2
        assert hash(p1) == hash(p2)
        assert {p1: "cached"}[p2] == "cached"
