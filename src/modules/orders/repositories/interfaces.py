"""Order repository interface.

Extends ``IRepository[Order]`` with what the Order aggregate needs:
atomic creation with items and the first timeline entry, row locking,
timeline appends, owner-scoped look-ups and hard deletion.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order, OrderTimelineEntry


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order, its items and its first timeline entry atomically.

        ``data`` holds the Order column values plus ``items`` (list of dicts
        with ``product_id``, ``name``, ``qty``, ``price``, ``image_url``) and
        ``timeline`` (dict with ``status``, ``note``, ``updated_by``).
        """

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order holding a row-level lock until commit."""

    @abstractmethod
    def get_by_gateway_order_id(self, gateway_order_id: str) -> Optional[Order]:
        """Order finalized from the given payment gateway order, if any."""

    @abstractmethod
    def append_timeline(
        self,
        order_id: Any,
        status: str,
        note: str = "",
        updated_by: str = "",
    ) -> OrderTimelineEntry:
        """Insert one timeline entry."""

    @abstractmethod
    def update_fields(self, order: Order, fields: Dict[str, Any]) -> Order:
        """Write only ``fields`` (no domain events)."""

    @abstractmethod
    def find(self, **filters: Any) -> QuerySet[Order]:
        """Orders matching ``filters`` (newest first)."""

    @abstractmethod
    def delete(self, order: Order) -> None:
        """Hard-delete an order with its items and timeline."""
