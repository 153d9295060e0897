# src/datahub_review/schemas/comment.py
"""Comment and audit trail schemas."""

from datetime import datetime

from pydantic import AliasChoices, Field

from datahub_review.models import AuthorType
from datahub_review.schemas.common import ApiModel


class CommentCreate(ApiModel):
    """Schema for appending a comment to a submission thread."""

    author_email: str = ""
    author_type: str = AuthorType.USER.value
    text: str = Field(
        "",
        validation_alias=AliasChoices("text", "commentText", "comment_text"),
    )
    parent_comment_id: int | None = None


class CommentResponse(ApiModel):
    id: int
    submission_id: str
    author_email: str
    author_type: AuthorType
    text: str
    parent_comment_id: int | None = None
    created_at: datetime


class AdminActionResponse(ApiModel):
    """An entry of the admin audit trail."""

    id: int
    admin_email: str
    action_type: str
    target_id: str
    description: str | None = None
    created_at: datetime
