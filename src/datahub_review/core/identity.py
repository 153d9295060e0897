"""Typed admin identity passed into every review operation.

Authentication happens upstream; by the time a request reaches the review
services its admin email has been resolved into an :class:`AdminIdentity`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from datahub_review.core.errors import ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True, slots=True)
class AdminIdentity:
    """A pre-validated reviewer."""

    email: str

    @classmethod
    def from_email(cls, raw: str | None) -> AdminIdentity:
        """Normalise and check an email forwarded by the auth layer.

        Raises:
            ValidationError: If the email is missing or malformed.
        """
        email = (raw or "").strip().lower()
        if not email:
            raise ValidationError("adminEmail is required")
        if not _EMAIL_RE.match(email):
            raise ValidationError(f"adminEmail is not a valid email address: {raw!r}")
        return cls(email=email)

    def __str__(self) -> str:
        return self.email
