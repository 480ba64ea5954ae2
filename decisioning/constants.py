"""Wire keys and fixed values shared across the decisioning core."""

from __future__ import annotations

EXTENSION_NAME = "decisioning"
EXTENSION_VERSION = "0.1.0"

DEFAULT_ITEM_COUNT = 1

# Decision scope JSON keys (plain and XDM-prefixed forms)
ACTIVITY_ID = "activityId"
PLACEMENT_ID = "placementId"
ITEM_COUNT = "itemCount"
XDM_NAME = "xdm:name"
XDM_ACTIVITY_ID = "xdm:activityId"
XDM_PLACEMENT_ID = "xdm:placementId"
XDM_ITEM_COUNT = "xdm:itemCount"


class EventDataKeys:
    REQUEST_TYPE = "requesttype"
    DECISION_SCOPES = "decisionscopes"
    DECISION_SCOPE_NAME = "name"
    XDM = "xdm"
    DATA = "data"
    PROPOSITIONS = "propositions"
    PROPOSITION_INTERACTIONS = "propositioninteractions"
    RESPONSE_ERROR = "responseerror"


class RequestTypes:
    UPDATE = "updatepropositions"
    GET = "getpropositions"
    TRACK = "trackpropositions"


class ConfigurationKeys:
    EDGE_CONFIG_ID = "edge.configId"
    DATASET_ID = "optimize.datasetId"


class JsonKeys:
    # Proposition
    PAYLOAD_ID = "id"
    PAYLOAD_SCOPE = "scope"
    PAYLOAD_SCOPE_DETAILS = "scopeDetails"
    PAYLOAD_ITEMS = "items"

    # Offer
    ITEM_ID = "id"
    ITEM_ETAG = "etag"
    ITEM_SCORE = "score"
    ITEM_SCHEMA = "schema"
    ITEM_META = "meta"
    ITEM_DATA = "data"
    ITEM_DATA_ID = "id"
    ITEM_DATA_TYPE = "type"
    ITEM_DATA_FORMAT = "format"
    ITEM_DATA_CONTENT = "content"
    ITEM_DATA_DELIVERY_URL = "deliveryURL"
    ITEM_DATA_LANGUAGE = "language"
    ITEM_DATA_CHARACTERISTICS = "characteristics"

    # Network response / error events
    PAYLOAD = "payload"
    TYPE = "type"
    REQUEST_EVENT_ID = "requestEventId"
    ERROR_STATUS = "status"
    ERROR_TITLE = "title"
    ERROR_DETAIL = "detail"
    ERROR_REPORT = "report"

    # Interaction XDM
    EVENT_TYPE = "eventType"
    EXPERIENCE = "_experience"
    DECISIONING = "decisioning"
    PROPOSITIONS = "propositions"


class JsonValues:
    EVENT_TYPE_PERSONALIZATION = "personalization.request"
    EVENT_TYPE_PROPOSITION_DISPLAY = "decisioning.propositionDisplay"
    EVENT_TYPE_PROPOSITION_INTERACT = "decisioning.propositionInteract"
    PERSONALIZATION_DECISIONS = "personalization:decisions"

    SCHEMA_TARGET_HTML = "https://ns.adobe.com/personalization/html-content-item"
    SCHEMA_TARGET_JSON = "https://ns.adobe.com/personalization/json-content-item"
    SCHEMA_TARGET_DEFAULT = "https://ns.adobe.com/personalization/default-content-item"
    SCHEMA_OFFER_HTML = "https://ns.adobe.com/experience/offer-management/content-component-html"
    SCHEMA_OFFER_JSON = "https://ns.adobe.com/experience/offer-management/content-component-json"
    SCHEMA_OFFER_IMAGE = (
        "https://ns.adobe.com/experience/offer-management/content-component-imagelink"
    )
    SCHEMA_OFFER_TEXT = "https://ns.adobe.com/experience/offer-management/content-component-text"


SUPPORTED_SCHEMAS: tuple[str, ...] = (
    # Target
    JsonValues.SCHEMA_TARGET_HTML,
    JsonValues.SCHEMA_TARGET_JSON,
    JsonValues.SCHEMA_TARGET_DEFAULT,
    # Offer decisioning
    JsonValues.SCHEMA_OFFER_HTML,
    JsonValues.SCHEMA_OFFER_JSON,
    JsonValues.SCHEMA_OFFER_IMAGE,
    JsonValues.SCHEMA_OFFER_TEXT,
)

# Service errors with these statuses are retried upstream; they are only logged.
RECOVERABLE_ERROR_STATUSES: frozenset[int] = frozenset({408, 429, 502, 503, 504})
UNKNOWN_ERROR = "unknown"
UNKNOWN_STATUS = 0
