"""Store access boundary: bounded retries and per-call timeouts.

Every unit of work runs in a fresh session on a worker thread. Connectivity
failures are retried with exponential backoff; each retry opens a new session
and re-reads state, so a unit of work that may have partially applied is
never replayed blindly.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from datahub_review.core.errors import OperationTimeout, StoreUnavailable
from datahub_review.core.settings import settings

_T = TypeVar("_T")

TRANSIENT_ERRORS = (OperationalError, DisconnectionError, InterfaceError)

logger = logging.getLogger(__name__)


def call_with_retry(
    session_factory: sessionmaker[Session],
    work: Callable[[Session], _T],
    *,
    attempts: int | None = None,
    backoff: float | None = None,
) -> _T:
    """Run ``work`` in its own session, retrying transient store failures.

    Args:
        session_factory: Factory used to open one session per attempt.
        work: Callable receiving the session; it owns commit/rollback.
        attempts: Maximum attempts, defaults to ``STORE_RETRY_ATTEMPTS``.
        backoff: Initial backoff in seconds, doubled after each failure.

    Returns:
        Whatever ``work`` returns.

    Raises:
        StoreUnavailable: If every attempt failed with a connectivity error.
    """
    max_attempts = max(1, attempts if attempts is not None else settings.store_retry_attempts)
    delay = backoff if backoff is not None else settings.store_retry_backoff_seconds

    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        session = session_factory()
        try:
            return work(session)
        except TRANSIENT_ERRORS as exc:
            session.rollback()
            last_error = exc
            if attempt < max_attempts:
                logger.warning(
                    "Store call failed (attempt %d/%d), retrying in %.2fs: %s",
                    attempt,
                    max_attempts,
                    delay,
                    exc,
                )
                time.sleep(delay)
                delay *= 2
        finally:
            session.close()

    logger.error("Store unavailable after %d attempts: %s", max_attempts, last_error)
    raise StoreUnavailable(
        f"Store unavailable after {max_attempts} attempts: {last_error}"
    ) from last_error


async def run_unit_of_work(
    session_factory: sessionmaker[Session],
    work: Callable[[Session], _T],
    *,
    timeout: float | None = None,
) -> _T:
    """Run a blocking unit of work off the event loop, bounded by ``timeout``.

    Raises:
        OperationTimeout: If the call did not finish in time. The worker
            thread cannot be interrupted; its transaction completes or rolls
            back on its own and callers re-read state before acting again.
        StoreUnavailable: Propagated from :func:`call_with_retry`.
    """
    limit = settings.store_timeout_seconds if timeout is None else timeout
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(call_with_retry, session_factory, work),
            timeout=limit,
        )
    except TimeoutError as exc:
        raise OperationTimeout(f"Store call exceeded {limit:.1f}s") from exc
