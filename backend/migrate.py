"""
Apply database migrations up to the latest revision.

    python backend/migrate.py
"""

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

BACKEND_DIR = Path(__file__).resolve().parent


def apply_migrations(revision: str = "head") -> None:
    config = Config(str(BACKEND_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    command.upgrade(config, revision)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    apply_migrations()
