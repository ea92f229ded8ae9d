"""Inventory ledger: stock bookkeeping tied to order creation and cancellation.

Every delta is a single ``UPDATE ... SET stock = stock +/- qty`` evaluated
by the database (``F()`` expressions), so concurrent orders for the same
product never lose an update.  The whole batch of one order runs inside
its own savepoint: either every line is applied or none is.

Bookkeeping is best-effort.  A failure is logged as a warning and
reported through the boolean return value; it never propagates to the
order flow that triggered it.  Products that no longer exist are
skipped (the ``UPDATE`` simply matches no row).
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

import structlog
from django.db import DatabaseError, transaction
from django.db.models import F
from django.db.models.functions import Greatest
from django.utils import timezone

from modules.products.models import Product

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StockLine:
    product_id: str
    qty: int


def _merge(lines: Iterable[StockLine]) -> "OrderedDict[str, int]":
    """Sum quantities per product, ordered by product id (stable lock order)."""
    totals: dict[str, int] = {}
    for line in lines:
        totals[str(line.product_id)] = totals.get(str(line.product_id), 0) + int(line.qty)
    return OrderedDict(sorted(totals.items()))


def _as_uuid(product_id: str):
    try:
        return UUID(product_id)
    except ValueError:
        return None


class InventoryLedger:
    def decrement(self, lines: Iterable[StockLine]) -> bool:
        """Take ``qty`` out of stock for every line, clamping at zero."""
        return self._apply(
            lines,
            lambda qty: Greatest(F("stock") - qty, 0),
            failure_event="inventory.decrement_failed",
            success_event="inventory.decremented",
        )

    def restore(self, lines: Iterable[StockLine]) -> bool:
        """Put ``qty`` back into stock for every line."""
        return self._apply(
            lines,
            lambda qty: F("stock") + qty,
            failure_event="inventory.restore_failed",
            success_event="inventory.restored",
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _apply(self, lines, expression, *, failure_event: str, success_event: str) -> bool:
        merged = _merge(lines)
        log = logger.bind(products=list(merged.keys()))
        if not merged:
            return True

        try:
            with transaction.atomic():
                now = timezone.now()
                skipped = []
                for product_id, qty in merged.items():
                    pk = _as_uuid(product_id)
                    updated = 0
                    if pk is not None:
                        updated = Product.objects.filter(id=pk).update(
                            stock=expression(qty), updated_at=now
                        )
                    if not updated:
                        skipped.append(product_id)
        except DatabaseError as exc:
            log.warning(failure_event, error=str(exc))
            return False

        if skipped:
            log.info("inventory.products_skipped", skipped=skipped)
        log.info(success_event, line_count=len(merged))
        return True
