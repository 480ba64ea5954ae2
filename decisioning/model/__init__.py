"""Proposition/offer data model and its wire (event data) codec."""

from decisioning.model.offer import Offer, OfferTracker, OfferType
from decisioning.model.proposition import Proposition

__all__ = [
    "Offer",
    "OfferTracker",
    "OfferType",
    "Proposition",
]
