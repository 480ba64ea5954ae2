"""Request orchestration: inbound events → cache operations → outbound events.

Every handler runs on the serial worker. Handlers never raise across this
boundary: DecisioningError ends a request with one log line and, for get
requests only, an explicit responseerror answer.
"""

from __future__ import annotations

import concurrent.futures
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from decisioning.cache.proposition_cache import PropositionCache
from decisioning.config.settings import EdgeConfiguration
from decisioning.constants import (
    RECOVERABLE_ERROR_STATUSES,
    UNKNOWN_ERROR,
    UNKNOWN_STATUS,
    EventDataKeys,
    JsonKeys,
    JsonValues,
    RequestTypes,
)
from decisioning.extension.events import (
    Event,
    EventDispatcher,
    EventNames,
    EventSource,
    EventType,
)
from decisioning.extension.protocol import (
    GetRequestData,
    PersonalizationQuery,
    PersonalizationRequestData,
    Query,
    ResponseErrorCode,
    ServiceError,
    TrackRequestData,
    TrackRequestPayload,
    UpdateRequestData,
    parse_request_data,
)
from decisioning.extension.worker import SerialWorker
from decisioning.infra.errors import (
    DecisioningError,
    EmptyInputError,
    PayloadError,
    ScopeError,
    WorkerError,
)
from decisioning.model import reader
from decisioning.model.offer import Offer
from decisioning.model.proposition import Proposition
from decisioning.scope.decision_scope import DecisionScope
from decisioning.tracking.interaction import generate_interaction_xdm

logger = structlog.get_logger()

ConfigurationProvider = Callable[[], Mapping[str, Any] | None]


@dataclass
class _PendingUpdate:
    """An update request whose network request is in flight."""

    request: Event
    scopes: list[DecisionScope]


class DecisioningExtension:
    """Owns the proposition cache and serializes all work on one worker.

    dispatcher receives every outbound event (network requests, responses,
    notifications). configuration_provider returns the host's current
    configuration shared state, or None when none has been published.
    """

    def __init__(
        self,
        dispatcher: EventDispatcher,
        configuration_provider: ConfigurationProvider,
        *,
        worker: SerialWorker | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._configuration_provider = configuration_provider
        self._worker = worker or SerialWorker()
        self._cache = PropositionCache()
        self._preview = PropositionCache()
        self._pending_updates: dict[str, _PendingUpdate] = {}
        self._service_errors: dict[str, ServiceError] = {}
        self._routes: dict[tuple[EventType, EventSource], Callable[[Event], Event | None]] = {
            (EventType.optimize, EventSource.request_content): self.handle_request_content,
            (EventType.optimize, EventSource.request_reset): self.handle_clear_propositions,
            (EventType.generic_identity, EventSource.request_reset): self.handle_clear_propositions,
            (EventType.edge, EventSource.personalization_decisions): self.handle_edge_response,
            (EventType.edge, EventSource.error_response_content): self.handle_edge_error_response,
            (EventType.edge, EventSource.content_complete): self.handle_update_complete,
            (EventType.system, EventSource.debug): self.handle_debug_event,
        }

    @property
    def cache(self) -> PropositionCache:
        """Worker-owned cache. Read it only from worker jobs."""
        return self._cache

    @property
    def worker(self) -> SerialWorker:
        return self._worker

    async def start(self) -> None:
        await self._worker.start()

    async def stop(self) -> None:
        await self._worker.stop()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def process(self, event: Event) -> Event | None:
        """Run event on the worker; returns the outbound event it produced, if any."""
        return await self._worker.submit(self.handle_event, event)

    def process_threadsafe(self, event: Event) -> concurrent.futures.Future:
        """process() for producers running on other threads."""
        return self._worker.submit_threadsafe(self.handle_event, event)

    async def flush(self) -> None:
        """Wait until every job queued before this call has run."""
        await self._worker.submit(_noop)

    def track_offers(self, offers: Sequence[Offer], event_type: str) -> None:
        """Queue an interaction for offers; resolved against the cache when it runs."""
        if not offers:
            return
        try:
            self._worker.submit_threadsafe(self._track_offers, list(offers), event_type)
        except WorkerError:
            logger.debug(
                "offer_interaction_skipped",
                offer_ids=[o.id for o in offers],
                event_type=event_type,
                reason="worker not running",
            )

    def display_offers(self, offers: Sequence[Offer]) -> None:
        """Record one display interaction covering several offers."""
        self.track_offers(offers, JsonValues.EVENT_TYPE_PROPOSITION_DISPLAY)

    async def resolve_proposition(self, offer: Offer) -> Proposition | None:
        try:
            return await self._worker.submit(self._resolve_owner, offer.scope, offer.proposition_id)
        except WorkerError:
            return None

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def handle_event(self, event: Event) -> Event | None:
        handler = self._routes.get((event.type, event.source))
        if handler is None:
            logger.debug(
                "event_ignored", event_type=event.type, source=event.source, event_id=event.id
            )
            return None
        return handler(event)

    def handle_request_content(self, event: Event) -> Event | None:
        if not event.data:
            logger.debug("request_ignored", event_id=event.id, reason="event data is empty")
            return None

        request_type = event.data.get(EventDataKeys.REQUEST_TYPE)
        if request_type == RequestTypes.GET:
            return self.handle_get_propositions(event)
        if request_type == RequestTypes.UPDATE:
            handler = self.handle_update_propositions
        elif request_type == RequestTypes.TRACK:
            handler = self.handle_track_propositions
        else:
            logger.debug("request_ignored", event_id=event.id, request_type=request_type)
            return None

        try:
            return handler(event)
        except DecisioningError as e:
            logger.warning(
                "request_dropped",
                request_type=request_type,
                code=e.code,
                error=str(e),
                event_id=event.id,
            )
            return None

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def handle_update_propositions(self, event: Event) -> Event:
        """Emit a personalization network request for the valid scopes.

        The cache is untouched until the response arrives.
        Raises ConfigurationError, PayloadError, EmptyInputError, ScopeError.
        """
        config = self._configuration()
        request = parse_request_data(UpdateRequestData, event.data)
        scopes = _valid_scopes(request.decisionscopes)

        xdm = dict(request.xdm or {})
        xdm[JsonKeys.EVENT_TYPE] = JsonValues.EVENT_TYPE_PERSONALIZATION
        payload = PersonalizationRequestData(
            query=Query(
                personalization=PersonalizationQuery(decision_scopes=[s.name for s in scopes])
            ),
            xdm=xdm,
            data=request.data or None,
            dataset_id=config.dataset_id,
        )
        network_event = Event(
            name=EventNames.PERSONALIZATION_REQUEST,
            type=EventType.edge,
            source=EventSource.request_content,
            data=payload.to_event_data(),
            parent_id=event.id,
        )
        self._pending_updates[network_event.id] = _PendingUpdate(request=event, scopes=scopes)
        logger.info(
            "personalization_request_dispatched",
            event_id=event.id,
            request_event_id=network_event.id,
            scope_count=len(scopes),
        )
        return self._emit(network_event)

    def handle_get_propositions(self, event: Event) -> Event:
        """Answer from the cache (preview entries win); always responds."""
        try:
            request = parse_request_data(GetRequestData, event.data)
            scopes = _valid_scopes([entry.model_dump() for entry in request.decisionscopes])
        except DecisioningError as e:
            logger.warning("get_request_failed", code=e.code, error=str(e), event_id=event.id)
            return self._emit(
                event.response(
                    EventNames.OPTIMIZE_RESPONSE,
                    EventSource.response_content,
                    {EventDataKeys.RESPONSE_ERROR: ResponseErrorCode.UNEXPECTED_ERROR.value},
                )
            )

        found = self._preview.lookup(scopes) or self._cache.lookup(scopes)
        return self._emit(
            event.response(
                EventNames.OPTIMIZE_RESPONSE,
                EventSource.response_content,
                {EventDataKeys.PROPOSITIONS: [p.to_event_data() for p in found.values()]},
            )
        )

    def handle_track_propositions(self, event: Event) -> Event:
        """Wrap a pre-built interaction XDM fragment into a network request.

        Raises ConfigurationError, PayloadError, EmptyInputError.
        """
        config = self._configuration()
        request = parse_request_data(TrackRequestData, event.data)
        if not request.propositioninteractions:
            raise EmptyInputError("propositioninteractions is missing or empty")

        payload = TrackRequestPayload(
            xdm=request.propositioninteractions, dataset_id=config.dataset_id
        )
        return self._emit(
            Event(
                name=EventNames.INTERACTION_REQUEST,
                type=EventType.edge,
                source=EventSource.request_content,
                data=payload.to_event_data(),
                parent_id=event.id,
            )
        )

    def handle_clear_propositions(self, event: Event) -> None:
        """Explicit clear and identity reset both empty the cache, whatever the data."""
        self._cache.clear()
        self._preview.clear()
        logger.info("propositions_cleared", trigger=event.type, event_id=event.id)
        return None

    # ------------------------------------------------------------------
    # Network responses
    # ------------------------------------------------------------------

    def handle_edge_response(self, event: Event) -> Event | None:
        """Cache propositions from a personalization:decisions response.

        Responses without that handle type or without a requestEventId were
        not requested by this extension and are ignored.
        """
        handle_type = event.data.get(JsonKeys.TYPE)
        request_event_id = event.data.get(JsonKeys.REQUEST_EVENT_ID)
        if handle_type != JsonValues.PERSONALIZATION_DECISIONS or not (
            isinstance(request_event_id, str) and request_event_id
        ):
            logger.debug(
                "edge_response_ignored",
                handle_type=handle_type,
                request_event_id=request_event_id,
                event_id=event.id,
            )
            return None

        propositions = _parse_payload(event.data, "edge_response_ignored")
        if not propositions:
            return None

        pending = self._pending_updates.get(request_event_id)
        if pending is not None:
            stored = self._cache.put_all(propositions, pending.scopes)
        else:
            stored = {}
            for proposition in propositions:
                scope = DecisionScope(proposition.scope)
                self._cache.put(scope, proposition)
                stored[scope] = proposition

        if not stored:
            logger.debug(
                "edge_response_ignored",
                request_event_id=request_event_id,
                reason="no proposition matches a requested scope",
            )
            return None

        logger.info(
            "propositions_cached", count=len(stored), request_event_id=request_event_id
        )
        return self._emit(_notification(stored.values()))

    def handle_edge_error_response(self, event: Event) -> None:
        """Log a service error; remember non-recoverable ones for the update response."""
        data = event.data
        if not data:
            logger.debug("edge_error_ignored", event_id=event.id, reason="event data is empty")
            return None

        request_event_id = data.get(JsonKeys.REQUEST_EVENT_ID)
        error = ServiceError(
            type=_lenient(reader.get_string, data, JsonKeys.TYPE, UNKNOWN_ERROR),
            status=_lenient(reader.get_int, data, JsonKeys.ERROR_STATUS, UNKNOWN_STATUS),
            title=_lenient(reader.get_string, data, JsonKeys.ERROR_TITLE, UNKNOWN_ERROR),
            detail=_lenient(reader.get_string, data, JsonKeys.ERROR_DETAIL, UNKNOWN_ERROR),
            report=_lenient(reader.get_map, data, JsonKeys.ERROR_REPORT, {}),
        )
        logger.warning(
            "decisioning_service_error",
            request_event_id=request_event_id,
            **error.to_event_data(),
        )

        if error.status in RECOVERABLE_ERROR_STATUSES:
            logger.debug("decisioning_service_error_recoverable", status=error.status)
            return None
        if isinstance(request_event_id, str) and request_event_id:
            self._service_errors[request_event_id] = error
        return None

    def handle_update_complete(self, event: Event) -> Event | None:
        """Answer the original update request once its network exchange is done."""
        request_event_id = event.data.get(JsonKeys.REQUEST_EVENT_ID)
        pending = (
            self._pending_updates.pop(request_event_id, None)
            if isinstance(request_event_id, str)
            else None
        )
        if pending is None:
            logger.debug(
                "update_complete_ignored",
                request_event_id=request_event_id,
                reason="no pending update request",
            )
            return None

        found = self._cache.lookup(pending.scopes)
        data: dict[str, Any] = {
            EventDataKeys.PROPOSITIONS: [p.to_event_data() for p in found.values()]
        }
        error = self._service_errors.pop(request_event_id, None)
        if error is not None:
            data[EventDataKeys.RESPONSE_ERROR] = error.to_event_data()

        return self._emit(
            pending.request.response(
                EventNames.OPTIMIZE_RESPONSE, EventSource.response_content, data
            )
        )

    def handle_debug_event(self, event: Event) -> Event | None:
        """Preview (debug) propositions live beside the cache and win on get."""
        propositions = _parse_payload(event.data, "debug_event_ignored")
        if not propositions:
            return None

        stored: dict[DecisionScope, Proposition] = {}
        for proposition in propositions:
            scope = DecisionScope(proposition.scope)
            self._preview.put(scope, proposition)
            stored[scope] = proposition
        logger.info("preview_propositions_cached", count=len(stored))
        return self._emit(_notification(stored.values()))

    # ------------------------------------------------------------------
    # Interaction tracking
    # ------------------------------------------------------------------

    def _track_offers(self, offers: list[Offer], event_type: str) -> Event | None:
        grouped: dict[tuple[str, str], list[Offer]] = {}
        for offer in offers:
            grouped.setdefault((offer.scope, offer.proposition_id), []).append(offer)

        narrowed: list[Proposition] = []
        for (scope, proposition_id), group in grouped.items():
            live = self._resolve_owner(scope, proposition_id)
            if live is None:
                continue
            kept = [o for o in (live.find_offer(offer.id) for offer in group) if o is not None]
            if kept:
                narrowed.append(live.narrowed(kept))

        if not narrowed:
            logger.debug(
                "offer_interaction_skipped",
                offer_ids=[o.id for o in offers],
                event_type=event_type,
                reason="proposition is no longer cached",
            )
            return None

        track_request = Event(
            name=EventNames.TRACK_REQUEST,
            type=EventType.optimize,
            source=EventSource.request_content,
            data={
                EventDataKeys.REQUEST_TYPE: RequestTypes.TRACK,
                EventDataKeys.PROPOSITION_INTERACTIONS: generate_interaction_xdm(
                    event_type, narrowed
                ),
            },
        )
        return self.handle_request_content(track_request)

    def _resolve_owner(self, scope: str, proposition_id: str) -> Proposition | None:
        if not scope or not proposition_id:
            return None
        key = DecisionScope(scope)
        for store in (self._cache, self._preview):
            proposition = store.get(key)
            if proposition is not None and proposition.id == proposition_id:
                return proposition
        return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _configuration(self) -> EdgeConfiguration:
        return EdgeConfiguration.from_shared_state(self._configuration_provider())

    def _emit(self, event: Event) -> Event:
        self._dispatcher(event)
        return event


def _valid_scopes(entries: Iterable[Mapping[str, Any]]) -> list[DecisionScope]:
    """Keep the entries that form valid scopes, in order, without duplicates.

    Raises EmptyInputError for an empty list, ScopeError if nothing is valid.
    """
    entries = list(entries)
    if not entries:
        raise EmptyInputError("decision scopes list is empty")

    scopes: dict[DecisionScope, None] = {}
    for entry in entries:
        scope = DecisionScope.from_event_data(entry)
        if scope is not None and scope.is_valid:
            scopes[scope] = None
    if not scopes:
        raise ScopeError("decision scopes list has no valid scope")
    return list(scopes)


def _parse_payload(data: Mapping[str, Any], ignored_event: str) -> list[Proposition]:
    """Parse a ``payload`` list; propositions without any valid offer are dropped."""
    try:
        payload = reader.get_list(data, JsonKeys.PAYLOAD)
    except PayloadError as e:
        logger.warning(ignored_event, code=e.code, error=str(e))
        return []
    if not payload:
        logger.debug(ignored_event, reason="payload is empty")
        return []

    propositions = []
    for item in payload:
        proposition = Proposition.from_event_data(item, require_offers=True)
        if proposition is not None:
            propositions.append(proposition)
    if not propositions:
        logger.debug(ignored_event, reason="no propositions with valid offers")
    return propositions


def _notification(propositions: Iterable[Proposition]) -> Event:
    return Event(
        name=EventNames.OPTIMIZE_NOTIFICATION,
        type=EventType.optimize,
        source=EventSource.notification,
        data={EventDataKeys.PROPOSITIONS: [p.to_event_data() for p in propositions]},
    )


def _lenient(read: Callable[..., Any], data: Mapping[str, Any], key: str, default: Any) -> Any:
    try:
        value = read(data, key)
    except PayloadError:
        return default
    return default if value is None else value


def _noop() -> None:
    return None
