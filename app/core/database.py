"""Database engine and session management."""

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings, settings


def build_engine(cfg: Settings) -> Engine:
    """Create an engine with explicit connect and pool checkout timeouts."""
    url = cfg.database_url
    kwargs: dict[str, Any] = {"pool_pre_ping": True, "echo": cfg.DEBUG}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": cfg.DATABASE_CONNECT_TIMEOUT_SEC,
        }
    else:
        kwargs["connect_args"] = {"connect_timeout": cfg.DATABASE_CONNECT_TIMEOUT_SEC}
        kwargs["pool_timeout"] = cfg.DATABASE_POOL_TIMEOUT_SEC
    return create_engine(url, **kwargs)


engine = build_engine(settings)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables that do not exist yet (dev servers and tests; prod uses Alembic)."""
    from app.models import Base

    Base.metadata.create_all(bind=bind or engine)


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
