from contextlib import contextmanager
from typing import Optional
from sqlalchemy.orm import Session
from gymdesk.core.database import SessionLocal
from gymdesk.core.logging_config import get_logger

logger = get_logger("db_transaction")


@contextmanager
def db_transaction(db: Optional[Session] = None, operation: str = "transaction"):
    """
    Run a block as one unit of work.

    Everything flushed inside the block is committed together or rolled back
    together. A session is opened (and closed) here when none is passed in.
    """
    owns_session = db is None
    if owns_session:
        db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception as e:
        db.rollback()
        logger.warning(f"{operation} rolled back: {type(e).__name__}: {e}")
        raise
    finally:
        if owns_session:
            db.close()
