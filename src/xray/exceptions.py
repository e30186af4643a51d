"""Exception hierarchy for xray.

All exceptions inherit from XRayError. The collector maps each branch to an
HTTP status: validation errors to 400, not-found errors to 404, anything else
to 500.
"""

REQUIRED_FIELDS = ("event_type", "trace_id", "timestamp")


class XRayError(Exception):
    """Base exception for all xray errors."""


class EventValidationError(XRayError, ValueError):
    """Raised when an incoming event or request is malformed."""


class MissingFieldsError(EventValidationError):
    """Raised when an event lacks one or more required envelope fields."""

    def __init__(self, missing: list[str], index: int | None = None):
        self.missing = list(missing)
        self.required = list(REQUIRED_FIELDS)
        self.index = index
        where = f" (event {index})" if index is not None else ""
        super().__init__(f"Missing required fields{where}: {', '.join(self.missing)}")


class InvalidBatchError(EventValidationError):
    """Raised when a batch body is not an array of event objects."""

    def __init__(self, message: str = "Expected an array of events", index: int | None = None):
        self.index = index
        super().__init__(message)


class InvalidQueryError(EventValidationError):
    """Raised when analytics query parameters are missing or out of range."""


class NotFoundError(XRayError, LookupError):
    """Raised when a query matches no stored data."""


class NoDecisionEventsError(NotFoundError):
    """Raised when a trace has no decision events to build a funnel from."""

    def __init__(self, trace_id: str):
        self.trace_id = trace_id
        super().__init__(f"No decision events found for trace {trace_id}")


class StorageError(XRayError):
    """Raised when the event store fails to persist or read events."""


class DuplicateEventError(StorageError):
    """Raised when an event with an already stored span_id is appended."""

    def __init__(self, span_id: str):
        self.span_id = span_id
        super().__init__(f"Event with span_id {span_id} already exists")


class TransportError(XRayError):
    """Raised when a producer-side transport fails to deliver an event."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
