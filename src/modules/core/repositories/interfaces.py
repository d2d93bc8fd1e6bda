"""Generic repository interface (Dependency Inversion Principle).

Service-layer code depends on these abstractions, never on the Django
ORM directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base generic repository contract.

    ``T`` is the aggregate managed by the repository (``Cart``, ``Order``).
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an aggregate by its primary key."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist (create or update) an aggregate."""
