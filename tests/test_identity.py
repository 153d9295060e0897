"""Tests for admin identity parsing."""

import pytest

from datahub_review.core.errors import ValidationError
from datahub_review.core.identity import AdminIdentity


def test_email_is_normalised() -> None:
    admin = AdminIdentity.from_email("  Alice@DataHub.Test ")
    assert admin.email == "alice@datahub.test"
    assert str(admin) == "alice@datahub.test"


@pytest.mark.parametrize("raw", [None, "", "   ", "not-an-email", "a@b"])
def test_missing_or_malformed_email_is_rejected(raw: str | None) -> None:
    with pytest.raises(ValidationError) as exc_info:
        AdminIdentity.from_email(raw)
    assert exc_info.value.kind == "validation_error"


def test_identities_compare_by_email() -> None:
    assert AdminIdentity.from_email("bob@datahub.test") == AdminIdentity.from_email("BOB@datahub.test")
