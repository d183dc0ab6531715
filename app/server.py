"""
Server entrypoint: verify the database is reachable, then serve the API. Run from project root:

  python -m app.server

Exits with status 1 if the database cannot be reached.
"""

import logging
import sys

import uvicorn

from app.core.config import get_settings
from app.core.database import SessionLocal, check_db_connected, engine, init_db
from app.core.log import configure_logging

logger = logging.getLogger(__name__)


def main() -> int:
    """Connect to the database, optionally create tables, then run uvicorn on HOST:PORT."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    db = SessionLocal()
    try:
        connected = check_db_connected(db)
    finally:
        db.close()
    if not connected:
        logger.error("Failed to connect to database; exiting")
        return 1
    logger.info("Database connected: %s", engine.url.render_as_string(hide_password=True))

    if settings.DATABASE_AUTO_CREATE:
        init_db()

    logger.info("Server is running on http://%s:%s", settings.HOST, settings.PORT)
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
