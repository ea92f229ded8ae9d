"""Generic repository interface (Dependency Inversion Principle).

``IRepository[T]`` is the base contract every domain repository extends.
Service-layer code depends on these abstractions, never on the Django
ORM directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base generic repository contract.

    ``T`` is the aggregate managed by the repository (``Order``,
    ``Product``, ``GatewayOrder``).
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key (``None`` when absent)."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist (create or update) an entity."""
