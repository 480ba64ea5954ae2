from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class EventType(StrEnum):
    optimize = "optimize"
    edge = "edge"
    generic_identity = "generic.identity"
    system = "system"


class EventSource(StrEnum):
    request_content = "requestContent"
    response_content = "responseContent"
    request_reset = "requestReset"
    notification = "notification"
    personalization_decisions = "personalization:decisions"
    error_response_content = "errorResponseContent"
    content_complete = "contentComplete"
    debug = "debug"


class EventNames:
    UPDATE_REQUEST = "Optimize Update Propositions Request"
    GET_REQUEST = "Optimize Get Propositions Request"
    TRACK_REQUEST = "Optimize Track Propositions Request"
    CLEAR_REQUEST = "Optimize Clear Propositions Request"
    IDENTITY_RESET = "Reset Identities Request"
    OPTIMIZE_RESPONSE = "Optimize Response"
    OPTIMIZE_NOTIFICATION = "Optimize Notification"
    PERSONALIZATION_REQUEST = "Edge Optimize Personalization Request"
    INTERACTION_REQUEST = "Edge Optimize Proposition Interaction Request"


@dataclass(frozen=True)
class Event:
    """A discrete, fully-formed unit exchanged with the host event bus."""

    name: str
    type: EventType
    source: EventSource
    data: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    response_id: str | None = None  # id of the request this event answers
    parent_id: str | None = None  # id of the event that caused this one

    def response(self, name: str, source: EventSource, data: dict[str, Any]) -> Event:
        """Build an event of the same type answering this one."""
        return Event(name=name, type=self.type, source=source, data=data, response_id=self.id)


# Outbound hand-off to the host bus / transport collaborator.
EventDispatcher = Callable[[Event], None]
