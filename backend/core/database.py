"""SQLAlchemy + SQLite key-value persistence.

Each row holds one namespaced key and its JSON-encoded value. Callers read
and write whole values at once.
"""

import json
import os
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = structlog.get_logger(__name__)

Base = declarative_base()


class KeyValue(Base):
    """Persistent key-value row."""
    __tablename__ = "kv_store"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)  # JSON string
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))


_engine = None
_SessionLocal = None


def init_db(database_url: str | None = None) -> None:
    """Create engine + tables. Call once at startup.

    Args:
        database_url: SQLAlchemy connection string. Defaults to DATABASE_URL env var.
    """
    global _engine, _SessionLocal

    url = database_url or os.environ.get("DATABASE_URL", "sqlite:///data/vendor_nexus.sqlite")
    if url.startswith("sqlite:///") and ":memory:" not in url:
        os.makedirs(os.path.dirname(url.removeprefix("sqlite:///")) or ".", exist_ok=True)

    if ":memory:" in url:
        # In-memory databases are per connection; share one across threads
        _engine = create_engine(url, echo=False, connect_args={"check_same_thread": False},
                                poolclass=StaticPool)
    else:
        _engine = create_engine(url, echo=False)
    _SessionLocal = sessionmaker(bind=_engine)

    Base.metadata.create_all(_engine)
    logger.info("db.initialized", url=url.split("///")[0] + "///***")


def get_engine():
    return _engine


def get_session() -> Session:
    """Get a new database session."""
    if _SessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _SessionLocal()


def read_value(key: str) -> Any | None:
    """Load and decode the value stored under `key`, or None."""
    with get_session() as session:
        row = session.get(KeyValue, key)
        if row is None:
            return None
        return json.loads(row.value)


def write_value(key: str, value: Any) -> None:
    """Encode and store `value` under `key`, replacing any previous value."""
    with get_session() as session:
        row = session.get(KeyValue, key)
        payload = json.dumps(value)
        now = datetime.now(timezone.utc)
        if row is None:
            session.add(KeyValue(key=key, value=payload, updated_at=now))
        else:
            row.value = payload
            row.updated_at = now
        session.commit()
        logger.debug("db.value_written", key=key, size=len(payload))


def delete_value(key: str) -> None:
    with get_session() as session:
        row = session.get(KeyValue, key)
        if row is not None:
            session.delete(row)
            session.commit()
