"""
SQLite engine, session factory and the per-request session dependency.
"""
import os
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from gymdesk.core.config import settings
from gymdesk.core.logging_config import get_logger

logger = get_logger("database")


def _prepare_sqlite_file(url: str) -> None:
    """Create the database directory and fail early if it cannot be written."""
    path = url.replace("sqlite:///", "", 1)
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
        if not os.access(directory, os.W_OK):
            raise PermissionError(f"Database directory is not writable: {directory}")
    if os.path.exists(path) and not os.access(path, os.W_OK):
        raise PermissionError(f"Database file is not writable: {path}")
    logger.debug(f"Using SQLite database at {path}")


_prepare_sqlite_file(settings.DATABASE_URL)

# Batch renewals write from worker threads; writers queue on the busy timeout
engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 20.0},
    pool_pre_ping=True,
    echo=settings.DEBUG,
)


@event.listens_for(engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # Payment rows reference customers and staff users; SQLite only checks
    # that when asked to, per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Request-scoped session: committed after the handler, rolled back on error."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
