"""Repository base class, query builder and the manager wiring them together.

Concrete repositories subclass :class:`Repository`, name their table and
register behaviors in ``setup``.
"""

from .behaviors import RepositoryBehaviors
from .manager import RepositoryDependencies, RepositoryManager
from .query import Query
from .repository import Repository

__all__ = [
    "Repository",
    "RepositoryBehaviors",
    "RepositoryDependencies",
    "RepositoryManager",
    "Query",
]
