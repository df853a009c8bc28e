"""Exceptions raised by the repository layer.

Driver failures (:class:`sqlite3.Error` and subclasses) are never wrapped;
they propagate to the caller unchanged.
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base class for errors raised by tablerepo itself."""


class EntityNotFoundError(RepositoryError, LookupError):
    """Raised by ``Repository.find_or_fail`` when no row matches.

    Presentation layers catch this one and turn it into a "not found"
    response.
    """

    def __init__(
        self, message: str = "Entity not found", *, table: str | None = None, key: object = None
    ) -> None:
        super().__init__(message)
        self.table = table
        self.key = key


class InvalidArgumentError(RepositoryError, ValueError):
    """Malformed polymorphic input detected before any statement runs."""


class RepositoryLogicError(RepositoryError, RuntimeError):
    """Programming error in how the repository layer is used."""
