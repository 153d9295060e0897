# src/datahub_review/models/status.py
"""Canonical submission statuses and the legacy alias mapping.

Older rows and clients spell the same outcome several ways. All of them are
folded into :class:`SubmissionStatus` here and nowhere else; the
:class:`CanonicalStatus` column type applies the mapping on every read and
only ever writes canonical values.
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator


class SubmissionStatus(str, Enum):
    """Lifecycle state of a submission."""

    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not SubmissionStatus.PENDING


class FileType(str, Enum):
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    DOCUMENT = "document"


class RejectionReason(str, Enum):
    """Reasons an admin can pick when rejecting a submission."""

    DATA_QUALITY = "data_quality"
    FORMAT_INCORRECT = "format_incorrect"
    CONTENT_INAPPROPRIATE = "content_inappropriate"
    DUPLICATE = "duplicate"
    METADATA_MISSING = "metadata_missing"
    OTHER = "other"


class AuthorType(str, Enum):
    USER = "user"
    ADMIN = "admin"


STATUS_ALIASES: dict[str, SubmissionStatus] = {
    "pending": SubmissionStatus.PENDING,
    "processing": SubmissionStatus.PENDING,
    "submitted": SubmissionStatus.PENDING,
    # Queue membership is tracked by the validation queue, not the status column.
    "queued": SubmissionStatus.PENDING,
    "validated": SubmissionStatus.VALIDATED,
    "successful": SubmissionStatus.VALIDATED,
    "rejected": SubmissionStatus.REJECTED,
    "failed": SubmissionStatus.REJECTED,
}


def normalize_status(value: str | SubmissionStatus) -> SubmissionStatus:
    """Map any known status spelling onto its canonical value.

    Raises:
        ValueError: If ``value`` is not a recognised spelling.
    """
    if isinstance(value, SubmissionStatus):
        return value
    try:
        return STATUS_ALIASES[value.strip().lower()]
    except KeyError as err:
        raise ValueError(f"Unknown submission status: {value!r}") from err


def spellings_for(status: SubmissionStatus) -> tuple[str, ...]:
    """Return every stored spelling that normalises to ``status``."""
    return tuple(sorted(raw for raw, canonical in STATUS_ALIASES.items() if canonical is status))


class CanonicalStatus(TypeDecorator[SubmissionStatus]):
    """String column that stores canonical statuses and normalises legacy rows."""

    impl = String(16)
    cache_ok = True

    def process_bind_param(self, value, dialect):  # noqa: ANN001
        if value is None:
            return None
        return normalize_status(value).value

    def process_result_value(self, value, dialect):  # noqa: ANN001
        if value is None:
            return None
        return normalize_status(value)
