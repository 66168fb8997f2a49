"""Database layer for rentbook application."""

from rentbook.database.base import Database
from rentbook.database.factories import create_database

__all__ = ["Database", "create_database"]
