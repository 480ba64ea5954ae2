"""Interaction XDM fragments for displayed/tapped offers.

Only eventType distinguishes a display payload from a tap payload. The
fragment is wrapped into a track request by the extension.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from decisioning.constants import JsonKeys, JsonValues
from decisioning.model.proposition import Proposition


def generate_interaction_xdm(
    event_type: str, propositions: Iterable[Proposition]
) -> dict[str, Any]:
    """Build ``{eventType, _experience.decisioning.propositions[...]}``.

    Each proposition contributes its id, scope, scopeDetails and the ids
    of the offers it holds.
    """
    return {
        JsonKeys.EVENT_TYPE: event_type,
        JsonKeys.EXPERIENCE: {
            JsonKeys.DECISIONING: {
                JsonKeys.PROPOSITIONS: [
                    {
                        JsonKeys.PAYLOAD_ID: proposition.id,
                        JsonKeys.PAYLOAD_SCOPE: proposition.scope,
                        JsonKeys.PAYLOAD_SCOPE_DETAILS: dict(proposition.scope_details),
                        JsonKeys.PAYLOAD_ITEMS: [
                            {JsonKeys.ITEM_ID: offer.id} for offer in proposition.offers
                        ],
                    }
                    for proposition in propositions
                ],
            },
        },
    }


def generate_display_interaction_xdm(proposition: Proposition) -> dict[str, Any]:
    return generate_interaction_xdm(JsonValues.EVENT_TYPE_PROPOSITION_DISPLAY, [proposition])


def generate_tap_interaction_xdm(proposition: Proposition) -> dict[str, Any]:
    return generate_interaction_xdm(JsonValues.EVENT_TYPE_PROPOSITION_INTERACT, [proposition])
