"""Error taxonomy shared by the review workflow services.

Every error carries a machine-readable ``kind`` and the HTTP status the API
layer answers with, so endpoints never translate errors by hand.
"""

from __future__ import annotations

from fastapi import status


class ReviewError(RuntimeError):
    """Base class for failures raised by the review workflow."""

    kind = "review_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, submission_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.submission_id = submission_id


class NotFound(ReviewError):
    """Referenced submission or queue entry does not exist."""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidStateTransition(ReviewError):
    """Transition from a terminal state or outside the allowed graph."""

    kind = "invalid_state_transition"
    status_code = status.HTTP_409_CONFLICT


class AlreadyTerminal(InvalidStateTransition):
    """Submission was already validated or rejected."""

    kind = "already_terminal"


class PreconditionFailed(ReviewError):
    """Caller input cannot be acted upon."""

    kind = "precondition_failed"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class EmptySelection(PreconditionFailed):
    """Bulk operation invoked without any submission ids."""

    kind = "empty_selection"


class ValidationError(PreconditionFailed):
    """Payload content is invalid, e.g. blank comment text."""

    kind = "validation_error"


class Conflict(ReviewError):
    """A concurrent request won the race for the same submission."""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class StoreUnavailable(ReviewError):
    """The database could not be reached within the retry budget."""

    kind = "store_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class OperationTimeout(ReviewError):
    """A single store call exceeded its allotted time."""

    kind = "timeout"
    status_code = status.HTTP_504_GATEWAY_TIMEOUT


__all__ = [
    "AlreadyTerminal",
    "Conflict",
    "EmptySelection",
    "InvalidStateTransition",
    "NotFound",
    "OperationTimeout",
    "PreconditionFailed",
    "ReviewError",
    "StoreUnavailable",
    "ValidationError",
]
