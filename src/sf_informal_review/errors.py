from __future__ import annotations

from typing import Any, Dict, Iterable, Optional


class AppealError(Exception):
    """Base class for every error reported to the caller of a case operation."""

    kind = "appeal_error"
    status_code = 400
    transient = False

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.kind, "message": self.message}
        payload.update(self.context)
        if self.transient:
            payload["transient"] = True
        return payload


class UnparseableQuery(AppealError):
    kind = "unparseable_query"
    status_code = 400


class NotFound(AppealError):
    kind = "not_found"
    status_code = 404


class MissingCoordinates(AppealError):
    kind = "missing_coordinates"
    status_code = 409


class NoActiveProperty(AppealError):
    kind = "no_active_property"
    status_code = 409


class InvalidComparable(AppealError):
    kind = "invalid_comparable"
    status_code = 422

    def __init__(self, message: str, *, missing_fields: Iterable[str] = (), **context: Any) -> None:
        missing = sorted(missing_fields)
        if missing:
            context["missing_fields"] = missing
        super().__init__(message, **context)
        self.missing_fields = missing


class InvalidProperty(AppealError):
    kind = "invalid_property"
    status_code = 422


class SequencingViolation(AppealError):
    """An operation was requested before the case had what it needs."""

    kind = "sequencing_violation"
    status_code = 409

    def __init__(self, message: str, *, missing: str, **context: Any) -> None:
        super().__init__(message, missing=missing, **context)
        self.missing = missing


class SourceUnavailable(AppealError):
    """The assessor record feed failed. Callers may retry the same request."""

    kind = "source_unavailable"
    status_code = 502
    transient = True

    def __init__(self, message: str, *, status: Optional[int] = None, **context: Any) -> None:
        if status is not None:
            context["status"] = status
        super().__init__(message, **context)
        self.status = status
