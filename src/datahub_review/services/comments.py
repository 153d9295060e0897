# src/datahub_review/services/comments.py
"""Discussion threads attached to submissions."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from datahub_review.core.errors import NotFound, ValidationError
from datahub_review.models import AuthorType, Submission, SubmissionComment

logger = logging.getLogger(__name__)


class CommentService:
    """Append and read comments; comments are never edited or removed here."""

    @staticmethod
    def append_comment(
        session: Session,
        submission_id: str,
        author_email: str,
        author_type: AuthorType | str,
        text: str,
        parent_comment_id: int | None = None,
    ) -> SubmissionComment:
        """Append a comment to a submission's thread.

        Args:
            session: Database session
            submission_id: Submission the comment belongs to
            author_email: Email of the contributor or admin writing it
            author_type: ``user`` or ``admin``
            text: Comment body; surrounding whitespace is stripped
            parent_comment_id: Optional comment this one replies to

        Returns:
            The stored comment

        Raises:
            ValidationError: If the text or author is blank, or the author type is unknown
            NotFound: If the submission or parent comment does not exist
        """
        body = (text or "").strip()
        if not body:
            raise ValidationError("Comment text is required", submission_id=submission_id)
        author = (author_email or "").strip().lower()
        if not author:
            raise ValidationError("Author email is required", submission_id=submission_id)
        try:
            kind = AuthorType(author_type)
        except ValueError as err:
            raise ValidationError('Author type must be either "user" or "admin"') from err

        if session.get(Submission, submission_id) is None:
            raise NotFound(f"Submission {submission_id} not found", submission_id=submission_id)
        if parent_comment_id is not None:
            parent = session.get(SubmissionComment, parent_comment_id)
            if parent is None or parent.submission_id != submission_id:
                raise NotFound(
                    f"Comment {parent_comment_id} not found on submission {submission_id}",
                    submission_id=submission_id,
                )

        comment = SubmissionComment(
            submission_id=submission_id,
            author_email=author,
            author_type=kind,
            text=body,
            parent_comment_id=parent_comment_id,
        )
        session.add(comment)
        session.commit()
        logger.info("Comment %s added to submission %s by %s", comment.id, submission_id, author)
        return comment

    @staticmethod
    def list_comments(session: Session, submission_id: str) -> list[SubmissionComment]:
        """Return a submission's comments in creation order."""
        stmt = (
            select(SubmissionComment)
            .where(SubmissionComment.submission_id == submission_id)
            .order_by(SubmissionComment.created_at, SubmissionComment.id)
        )
        return list(session.scalars(stmt))
