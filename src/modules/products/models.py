"""Product model (inventory view of the catalog).

Catalog editing lives outside this service; orders only need the fields
below.  ``stock`` never goes negative (DB check constraint plus the
clamped decrement in :mod:`modules.products.inventory`).
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel


class Product(BaseModel):
    name = models.CharField(max_length=255)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    image_url = models.URLField(max_length=500, blank=True, default="")
    stock = models.PositiveIntegerField(default=0)
    published = models.BooleanField(default=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["published"], name="products_published_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(stock__gte=0),
                name="products_stock_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} (stock={self.stock})"
