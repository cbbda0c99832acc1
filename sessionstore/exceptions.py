"""Typed failures raised by the session store.

Every public operation either returns a value or raises one of these.
Callers tell the classes apart by type (or by ``code``); only
``ConnectivityError`` is worth retrying.
"""

from typing import Any


class StoreError(Exception):
    """Base class for all session store errors."""

    code: str = "store_error"
    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str = "", *, details: dict[str, Any] | None = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.details = details or {}


class NotFoundError(StoreError):
    """Zero rows matched where exactly one was expected.

    ``scoped`` is True when an instance-scoped update matched nothing, which
    usually means the (id, instance) pair is stale after a re-provision.
    """

    code = "not_found"
    status_code = 404

    def __init__(self, message: str = "", *, scoped: bool = False, details: dict[str, Any] | None = None):
        super().__init__(message, details=details)
        self.scoped = scoped


class ConflictError(StoreError):
    code = "conflict"
    status_code = 409


class QuotaExceededError(ConflictError):
    code = "quota_exceeded"


class UnsupportedEventError(StoreError):
    code = "unsupported_event"
    status_code = 422

    def __init__(self, event_type: str):
        super().__init__(f"unsupported event type: {event_type!r}", details={"event_type": event_type})
        self.event_type = event_type


class ConnectivityError(StoreError):
    code = "connectivity"
    status_code = 503
    retryable = True


class TransactionTimeoutError(ConnectivityError):
    code = "transaction_timeout"


class ConfigurationError(StoreError):
    code = "configuration"
    status_code = 500
