"""Engine, session factory and declarative base shared by all models."""

from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from ..config import config

Base = declarative_base()

engine = create_engine(config.DATABASE_URL, echo=config.DEBUG, pool_pre_ping=True)
SessionLocal = sessionmaker(autoflush=False, bind=engine)

if engine.dialect.name == "sqlite":
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # playback_state.interrupted_schedule_id relies on ON DELETE SET NULL
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

@contextmanager
def get_session() -> Session:
    """One unit of work: commit on success, roll back and re-raise on error."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

def init_db():
    """Create missing tables."""
    config.ensure_directories()
    Base.metadata.create_all(bind=engine)
