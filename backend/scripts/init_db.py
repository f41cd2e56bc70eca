"""
Initialize database and run migrations. Run from backend dir: python -m scripts.init_db
"""
import os

from alembic.config import Config
from alembic import command

from gymdesk.core.config import settings


def init_db():
    """Initialize database and run all migrations."""
    alembic_cfg = Config(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "alembic.ini"))

    print("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    print(f"✓ Database initialized and migrations applied at {settings.DATABASE_URL}")


if __name__ == "__main__":
    init_db()
