"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from rentbook.database.sqlalchemy_db import SQLAlchemyDatabase

DATABASE_ENV_VAR = "RENTBOOK_DB_PATH"
DEFAULT_DATABASE_PATH = Path.home() / ".rentbook" / "rentbook.db"


def database_url_for(target: str) -> str:
    """Turn a database target into a SQLAlchemy URL.

    A target containing "://" is already a URL (e.g. 'postgresql://user@host/db'
    or 'sqlite:///:memory:') and is returned unchanged. Anything else is a
    SQLite file path; "~" is expanded and missing parent directories are
    created.
    """
    if "://" in target:
        return target

    path = Path(target).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{path}"


def create_database(target: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create the database for a file path or SQLAlchemy URL.

    Args:
        target: SQLite file path or SQLAlchemy URL. If None, checks the
            RENTBOOK_DB_PATH environment variable (which accepts either
            form), then defaults to ~/.rentbook/rentbook.db

    Returns:
        SQLAlchemyDatabase instance
    """
    if not target:
        target = os.environ.get(DATABASE_ENV_VAR) or str(DEFAULT_DATABASE_PATH)
    return SQLAlchemyDatabase(database_url_for(target))
