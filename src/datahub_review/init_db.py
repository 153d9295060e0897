"""Create the review workflow tables directly, bypassing migrations.

Intended for local development against SQLite; deployments run ``alembic upgrade head``.
"""

import logging

from datahub_review.core.logging_config import configure_logging
from datahub_review.core.settings import settings
from datahub_review.db.session import create_tables

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Initialize the database by creating all tables."""
    create_tables()
    logger.info("Database initialized at %s", settings.effective_database_url)


if __name__ == "__main__":
    configure_logging()
    init_db()
