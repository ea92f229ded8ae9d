"""Django ORM implementation of the Product repository.

Missing entities follow the Null Object pattern: methods return ``None``
(or omit the key) instead of raising, and the Service Layer decides how
to translate a missing product into a domain error.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


def _valid_ids(ids: Iterable[str]) -> list[UUID]:
    valid = []
    for raw in ids:
        try:
            valid.append(UUID(str(raw)))
        except ValueError:
            continue
    return valid


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a product by primary key (``None`` for unknown/invalid ids)."""
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_many(self, ids: Iterable[str]) -> Dict[str, Product]:
        products = Product.objects.filter(id__in=_valid_ids(ids))
        return {str(product.id): product for product in products}

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info("product.saved", product_id=str(entity.id))
        return entity
