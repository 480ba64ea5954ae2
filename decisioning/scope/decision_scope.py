from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from decisioning.constants import (
    ACTIVITY_ID,
    DEFAULT_ITEM_COUNT,
    ITEM_COUNT,
    PLACEMENT_ID,
    XDM_ACTIVITY_ID,
    XDM_ITEM_COUNT,
    XDM_NAME,
    XDM_PLACEMENT_ID,
    EventDataKeys,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class DecisionScope:
    """Opaque name of a placement for which content is requested.

    The name is either a literal (e.g. a Target mbox) or the Base64 encoding
    of a JSON object describing an activity/placement pair. Equality and
    hashing are by name only; an empty name is the invalid sentinel.
    """

    name: str = ""

    def __post_init__(self) -> None:
        if self.name is None:
            object.__setattr__(self, "name", "")

    @classmethod
    def from_activity(
        cls, activity_id: str | None, placement_id: str | None, item_count: int = DEFAULT_ITEM_COUNT
    ) -> DecisionScope:
        """Build an encoded scope. Invalid inputs yield the empty (invalid) scope."""
        return cls(encode_scope(activity_id, placement_id, item_count) or "")

    @classmethod
    def from_event_data(cls, data: Mapping[str, Any] | None) -> DecisionScope | None:
        """Create a scope from a ``{"name": ...}`` mapping. Returns None if unusable."""
        if not data or EventDataKeys.DECISION_SCOPE_NAME not in data:
            logger.debug("decision_scope_data_empty")
            return None
        name = data[EventDataKeys.DECISION_SCOPE_NAME]
        if not isinstance(name, str) or not name:
            logger.debug("decision_scope_name_invalid", name=name)
            return None
        return cls(name)

    def to_event_data(self) -> dict[str, Any]:
        return {EventDataKeys.DECISION_SCOPE_NAME: self.name}

    @property
    def is_valid(self) -> bool:
        return is_valid_scope(self.name)


def encode_scope(
    activity_id: str | None, placement_id: str | None, item_count: int = DEFAULT_ITEM_COUNT
) -> str | None:
    """Base64-encode ``{"activityId":..,"placementId":..[,"itemCount":..]}``.

    Key order is fixed; itemCount is omitted when it equals the default of 1.
    Returns None if either id is empty or item_count <= 0.
    """
    if not activity_id or not placement_id or item_count <= 0:
        logger.debug(
            "decision_scope_encode_rejected",
            activity_id=activity_id,
            placement_id=placement_id,
            item_count=item_count,
        )
        return None

    scope: dict[str, Any] = {ACTIVITY_ID: activity_id, PLACEMENT_ID: placement_id}
    if item_count > DEFAULT_ITEM_COUNT:
        scope[ITEM_COUNT] = item_count
    raw = json.dumps(scope, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_scope(name: str | None) -> dict[str, Any] | None:
    """Decode a scope name into its JSON object, or None for literal names."""
    if not name:
        return None
    try:
        decoded = base64.b64decode(name, validate=True).decode("utf-8")
        value = json.loads(decoded)
    except (binascii.Error, ValueError):
        # ValueError covers UnicodeDecodeError and JSONDecodeError
        return None
    return value if isinstance(value, dict) else None


def is_valid_scope(name: str | None) -> bool:
    """Validate a scope name.

    Empty names are invalid. Names that do not decode to a JSON object are
    literal identifiers and therefore valid. Decoded objects must carry, in
    priority order, a non-empty ``xdm:name``; or non-empty
    ``xdm:activityId``/``xdm:placementId`` with ``xdm:itemCount`` absent or >= 1;
    or the same triple without the ``xdm:`` prefix. Integral floats count as
    integers for itemCount. A missing or empty required key makes the scope
    invalid.
    """
    if not name:
        logger.debug("decision_scope_invalid", reason="name is empty")
        return False

    scope = decode_scope(name)
    if scope is None:
        return True

    if XDM_NAME in scope:
        if not _non_empty_str(scope[XDM_NAME]):
            logger.debug("decision_scope_invalid", scope=name, reason="xdm:name is empty")
            return False
        return True

    if XDM_ACTIVITY_ID in scope:
        keys = (XDM_ACTIVITY_ID, XDM_PLACEMENT_ID, XDM_ITEM_COUNT)
    else:
        keys = (ACTIVITY_ID, PLACEMENT_ID, ITEM_COUNT)
    activity_key, placement_key, count_key = keys

    if not _non_empty_str(scope.get(activity_key)):
        logger.debug("decision_scope_invalid", scope=name, reason=f"{activity_key} is empty")
        return False
    if not _non_empty_str(scope.get(placement_key)):
        logger.debug("decision_scope_invalid", scope=name, reason=f"{placement_key} is empty")
        return False

    item_count = scope.get(count_key, DEFAULT_ITEM_COUNT)
    if isinstance(item_count, float) and item_count.is_integer():
        item_count = int(item_count)
    if isinstance(item_count, bool) or not isinstance(item_count, int):
        logger.debug("decision_scope_invalid", scope=name, reason=f"{count_key} is not an int")
        return False
    if item_count < DEFAULT_ITEM_COUNT:
        logger.debug(
            "decision_scope_invalid", scope=name, reason=f"{count_key} ({item_count}) < 1"
        )
        return False
    return True


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)
