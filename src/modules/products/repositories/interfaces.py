"""Product repository interface.

Extends ``IRepository[Product]`` with the bulk look-up the checkout
needs to price a cart in one query.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Dict, Iterable

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def get_many(self, ids: Iterable[str]) -> Dict[str, Product]:
        """Return ``{str(id): Product}`` for the ids that exist.

        Malformed ids are treated as missing.
        """
