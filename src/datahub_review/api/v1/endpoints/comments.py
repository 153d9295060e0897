"""Discussion thread endpoints attached to submissions."""

from __future__ import annotations

from fastapi import APIRouter, status
from sqlalchemy.orm import Session

from datahub_review.api.v1.dependencies import RequestTimeoutDep, SessionFactoryDep
from datahub_review.core.errors import NotFound
from datahub_review.db.store import run_unit_of_work
from datahub_review.models import Submission
from datahub_review.schemas.comment import CommentCreate, CommentResponse
from datahub_review.services.comments import CommentService

router = APIRouter(prefix="/submissions/{submission_id}/comments", tags=["comments"])


@router.get("", response_model=list[CommentResponse])
async def list_comments(
    submission_id: str,
    session_factory: SessionFactoryDep,
    timeout: RequestTimeoutDep,
) -> list[CommentResponse]:
    """Return the thread in the order comments were written."""

    def _work(session: Session) -> list[CommentResponse]:
        if session.get(Submission, submission_id) is None:
            raise NotFound(f"Submission {submission_id} not found", submission_id=submission_id)
        comments = CommentService.list_comments(session, submission_id)
        return [CommentResponse.model_validate(comment) for comment in comments]

    return await run_unit_of_work(session_factory, _work, timeout=timeout)


@router.post("", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    submission_id: str,
    payload: CommentCreate,
    session_factory: SessionFactoryDep,
    timeout: RequestTimeoutDep,
) -> CommentResponse:
    """Append a contributor or admin comment."""

    def _work(session: Session) -> CommentResponse:
        comment = CommentService.append_comment(
            session,
            submission_id,
            payload.author_email,
            payload.author_type,
            payload.text,
            parent_comment_id=payload.parent_comment_id,
        )
        return CommentResponse.model_validate(comment)

    return await run_unit_of_work(session_factory, _work, timeout=timeout)
