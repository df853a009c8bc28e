"""SQLite driver and schema helpers."""

from .connection import Database

__all__ = ["Database"]
