"""Custom exception hierarchy for the decisioning core.

All application-specific exceptions inherit from DecisioningError,
which carries an error code used when logging dropped requests.
None of these cross the request boundary: the orchestrator catches them,
logs, and either drops the request or answers with a responseerror.
"""

from __future__ import annotations


class DecisioningError(Exception):
    """Base exception for all decisioning errors."""

    def __init__(self, message: str, *, code: str = "INTERNAL_ERROR") -> None:
        super().__init__(message)
        self.code = code


class ScopeError(DecisioningError):
    """Decision scope list missing, malformed, or without any valid scope."""

    def __init__(self, message: str, *, code: str = "MALFORMED_SCOPE") -> None:
        super().__init__(message, code=code)


class PayloadError(DecisioningError):
    """Offer/proposition/request event data of the wrong shape or type."""

    def __init__(self, message: str, *, code: str = "MALFORMED_PAYLOAD") -> None:
        super().__init__(message, code=code)


class ConfigurationError(DecisioningError):
    """No network destination configured; update/track requests are dropped."""

    def __init__(
        self,
        message: str = "Configuration shared state is not available",
        *,
        code: str = "CONFIGURATION_UNAVAILABLE",
    ) -> None:
        super().__init__(message, code=code)


class EmptyInputError(DecisioningError):
    """Request carried nothing to act on (no scopes, no interactions)."""

    def __init__(self, message: str, *, code: str = "EMPTY_INPUT") -> None:
        super().__init__(message, code=code)


class RequestError(DecisioningError):
    """Raised by the client facade when a response carries a responseerror."""

    def __init__(self, message: str, *, code: str = "REQUEST_ERROR") -> None:
        super().__init__(message, code=code)


class WorkerError(DecisioningError):
    """Work submitted to a serial worker that is not running."""

    def __init__(self, message: str = "Serial worker is not running") -> None:
        super().__init__(message, code="WORKER_NOT_RUNNING")
