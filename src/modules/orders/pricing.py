"""Canonical (server-side) pricing of a cart.

Prices, names and images are read from the catalog; whatever the client
sent for them is ignored.  Shipping is free at or above
``SHIPPING_FREE_THRESHOLD`` and ``SHIPPING_FLAT_RATE`` otherwise.  The
coupon is re-evaluated against the merchandise subtotal with the same
rule the coupon endpoint uses.

A ``CanonicalOrder`` is also what the payment flow snapshots on the
gateway order, so the order finalized after payment carries exactly the
amounts that were charged.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional, Sequence, Tuple

from django.conf import settings

from modules.coupons.rules import ZERO
from modules.coupons.validators import ICouponValidator, LocalCouponValidator
from modules.orders.exceptions import (
    InsufficientStock,
    ProductNotFound,
    ProductUnavailable,
)
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.repositories.interfaces import IProductRepository

CENT = Decimal("0.01")


@dataclass(frozen=True)
class PricedItem:
    product_id: str
    name: str
    qty: int
    price: Decimal
    image_url: str = ""

    @property
    def line_total(self) -> Decimal:
        return self.price * self.qty


@dataclass(frozen=True)
class CanonicalOrder:
    items: Tuple[PricedItem, ...]
    subtotal: Decimal
    shipping: Decimal
    discount: Decimal
    total: Decimal
    coupon_code: Optional[str] = None

    @property
    def amount_in_paise(self) -> int:
        return int((self.total * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            "items": [
                {
                    "productId": item.product_id,
                    "name": item.name,
                    "qty": item.qty,
                    "price": str(item.price),
                    "imageUrl": item.image_url,
                }
                for item in self.items
            ],
            "subtotal": str(self.subtotal),
            "shipping": str(self.shipping),
            "discount": str(self.discount),
            "total": str(self.total),
            "couponCode": self.coupon_code,
        }

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> CanonicalOrder:
        return cls(
            items=tuple(
                PricedItem(
                    product_id=entry["productId"],
                    name=entry["name"],
                    qty=int(entry["qty"]),
                    price=Decimal(entry["price"]),
                    image_url=entry.get("imageUrl", ""),
                )
                for entry in data["items"]
            ),
            subtotal=Decimal(data["subtotal"]),
            shipping=Decimal(data["shipping"]),
            discount=Decimal(data["discount"]),
            total=Decimal(data["total"]),
            coupon_code=data.get("couponCode"),
        )


def shipping_for(subtotal: Decimal) -> Decimal:
    threshold = Decimal(str(settings.SHIPPING_FREE_THRESHOLD))
    if subtotal >= threshold:
        return ZERO
    return Decimal(str(settings.SHIPPING_FLAT_RATE)).quantize(CENT)


def calculate_canonical_order(
    items: Sequence[Any],
    coupon_code: Optional[str] = None,
    *,
    product_repository: Optional[IProductRepository] = None,
    coupon_validator: Optional[ICouponValidator] = None,
) -> CanonicalOrder:
    """Price ``items`` (objects with ``product_id`` and ``qty``) from the catalog.

    Raises:
        ProductNotFound: a product does not exist.
        ProductUnavailable: a product is unpublished.
        InsufficientStock: a line asks for more than is in stock.
    """
    repo = product_repository or ProductDjangoRepository()
    validator = coupon_validator or LocalCouponValidator()

    products = repo.get_many(item.product_id for item in items)
    priced = []
    for item in items:
        product = products.get(str(item.product_id))
        if product is None:
            raise ProductNotFound(f"Product not found: {item.product_id}")
        if not product.published:
            raise ProductUnavailable(f"{product.name} is not available.")
        if item.qty > product.stock:
            raise InsufficientStock(
                f"Insufficient stock for {product.name}. Available: {product.stock}"
            )
        priced.append(
            PricedItem(
                product_id=str(product.id),
                name=product.name,
                qty=item.qty,
                price=product.price,
                image_url=product.image_url,
            )
        )

    subtotal = sum((p.line_total for p in priced), ZERO).quantize(CENT)
    shipping = shipping_for(subtotal)

    discount = ZERO
    applied_code = None
    if coupon_code:
        result = validator.validate(coupon_code, subtotal)
        if result.valid:
            discount = min(result.discount, subtotal)
            applied_code = coupon_code.strip()

    total = (subtotal + shipping - discount).quantize(CENT)
    return CanonicalOrder(
        items=tuple(priced),
        subtotal=subtotal,
        shipping=shipping,
        discount=discount,
        total=total,
        coupon_code=applied_code,
    )
