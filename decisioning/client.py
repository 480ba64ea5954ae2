"""Public API: builds request events and awaits the extension's answer."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

import structlog

from decisioning.config.settings import ClientSettings
from decisioning.constants import EventDataKeys, RequestTypes
from decisioning.extension.events import Event, EventNames, EventSource, EventType
from decisioning.extension.orchestrator import DecisioningExtension
from decisioning.extension.protocol import ResponseErrorCode
from decisioning.infra.errors import RequestError
from decisioning.model.proposition import Proposition
from decisioning.scope.decision_scope import DecisionScope

logger = structlog.get_logger()


class DecisioningClient:
    """Thin async facade over a running DecisioningExtension."""

    def __init__(
        self, extension: DecisioningExtension, settings: ClientSettings | None = None
    ) -> None:
        self._extension = extension
        self._settings = settings or ClientSettings()

    async def update_propositions(
        self,
        scopes: Iterable[DecisionScope],
        xdm: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Ask the service for fresh propositions; the cache fills when it answers."""
        event_data: dict[str, Any] = {
            EventDataKeys.REQUEST_TYPE: RequestTypes.UPDATE,
            EventDataKeys.DECISION_SCOPES: [s.to_event_data() for s in scopes],
        }
        if xdm:
            event_data[EventDataKeys.XDM] = xdm
        if data:
            event_data[EventDataKeys.DATA] = data
        await self._send(
            Event(
                name=EventNames.UPDATE_REQUEST,
                type=EventType.optimize,
                source=EventSource.request_content,
                data=event_data,
            )
        )

    async def get_propositions(
        self, scopes: Iterable[DecisionScope]
    ) -> dict[DecisionScope, Proposition]:
        """Return cached propositions for scopes; scopes never fetched are absent.

        Returned offers are bound to the extension, so displayed()/tapped()
        on them record interactions.

        Raises RequestError if the extension answered with a responseerror
        or did not answer within the configured timeout.
        """
        response = await self._send(
            Event(
                name=EventNames.GET_REQUEST,
                type=EventType.optimize,
                source=EventSource.request_content,
                data={
                    EventDataKeys.REQUEST_TYPE: RequestTypes.GET,
                    EventDataKeys.DECISION_SCOPES: [s.to_event_data() for s in scopes],
                },
            )
        )
        if response is None:
            raise RequestError("Get propositions request was not answered")

        error = response.data.get(EventDataKeys.RESPONSE_ERROR)
        if error is not None:
            raise RequestError(f"Get propositions request failed (responseerror={error})")

        propositions: dict[DecisionScope, Proposition] = {}
        for item in response.data.get(EventDataKeys.PROPOSITIONS) or []:
            proposition = Proposition.from_event_data(item, tracker=self._extension)
            if proposition is not None:
                propositions[DecisionScope(proposition.scope)] = proposition
        return propositions

    async def clear_cached_propositions(self) -> None:
        await self._send(
            Event(
                name=EventNames.CLEAR_REQUEST,
                type=EventType.optimize,
                source=EventSource.request_reset,
            )
        )

    async def reset_identities(self) -> None:
        """Identity reset also empties the proposition cache."""
        await self._send(
            Event(
                name=EventNames.IDENTITY_RESET,
                type=EventType.generic_identity,
                source=EventSource.request_reset,
            )
        )

    async def _send(self, event: Event) -> Event | None:
        timeout = self._settings.response_timeout_s
        try:
            return await asyncio.wait_for(self._extension.process(event), timeout=timeout)
        except TimeoutError as e:
            logger.warning("request_timed_out", event_name=event.name, timeout_s=timeout)
            raise RequestError(
                f"No response within {timeout}s "
                f"(responseerror={ResponseErrorCode.CALLBACK_TIMEOUT.value})",
                code="CALLBACK_TIMEOUT",
            ) from e
