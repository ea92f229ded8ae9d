"""Order service layer (Use Cases).

Orchestrates order creation, the status state machine, fulfillment
metadata edits, explicit deletions and the owner-scoped queries.  Write
operations are atomic: the service defines the unit-of-work boundary.

Rules enforced here:
- Orders are placed by an identity: a guest or an authenticated caller
  with a verified email.
- Prices, shipping and discount are recomputed from the catalog; a
  client-supplied discount is only logged when it diverges.
- Inventory bookkeeping is best-effort and never fails the order flow;
  ``stock_committed`` makes restoration happen at most once.
- ``Cancelled`` is terminal; cancelling again is a no-op.
- New orders are booked with the carrier after commit; entering
  ``Shipped`` with a carrier shipment id schedules the pickup and entering
  ``Cancelled`` cancels the carrier shipment, both after commit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction

from modules.orders.constants import (
    DEFAULT_RECENT_LIMIT,
    INITIAL_TIMELINE_NOTE,
    MAX_PHONE_DIGITS,
    MAX_RECENT_LIMIT,
    OrderStatus,
    PickupStatus,
    ShipmentStatus,
)
from modules.orders.dtos import PaymentInfoDTO, digits_only, normalize_email
from modules.orders.events import OrderCancelled, OrderCreated, OrderStatusChanged
from modules.orders.exceptions import (
    EmailNotVerified,
    InvalidOrderStatus,
    NotAuthenticated,
    OrderNotFound,
)
from modules.orders.pricing import CanonicalOrder, calculate_canonical_order
from modules.products.inventory import InventoryLedger, StockLine

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.core.identity import Identity
    from modules.coupons.validators import ICouponValidator
    from modules.orders.dtos import CreateOrderDTO, FulfillmentUpdateDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository
    from modules.shipping.carriers.port import PickupScheduleResult

logger = structlog.get_logger(__name__)


def _stock_lines(order: Order) -> List[StockLine]:
    return [StockLine(product_id=item.product_id, qty=item.qty) for item in order.items.all()]


class OrderService:
    """Application service for Order use-cases.

    Receives its collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        inventory: Optional[InventoryLedger] = None,
        coupon_validator: Optional[ICouponValidator] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._inventory = inventory or InventoryLedger()
        self._coupon_validator = coupon_validator

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(
        self,
        identity: Optional[Identity],
        dto: CreateOrderDTO,
        payment: Optional[PaymentInfoDTO] = None,
        gateway_order_id: Optional[str] = None,
        canonical: Optional[CanonicalOrder] = None,
    ) -> Order:
        """Create a Pending order and take its items out of stock.

        ``canonical`` is passed by payment finalization, where the amounts
        were fixed when the gateway order was created and the money has
        already moved; stock is not re-checked in that case.  With
        ``gateway_order_id`` the call is idempotent.

        Raises:
            NotAuthenticated: no identity.
            EmailNotVerified: authenticated identity with unverified email.
            ProductNotFound / ProductUnavailable / InsufficientStock: cart
                does not match the catalog.
        """
        if identity is None:
            raise NotAuthenticated()
        if not identity.is_guest and not identity.email_verified:
            raise EmailNotVerified()

        log = logger.bind(user_id=identity.uid, gateway_order_id=gateway_order_id)
        log.info("order.creation_started")

        if gateway_order_id:
            existing = self._order_repo.get_by_gateway_order_id(gateway_order_id)
            if existing:
                log.info("order.idempotency_hit", order_id=str(existing.id))
                return existing

        if canonical is None:
            canonical = calculate_canonical_order(
                dto.items,
                dto.coupon_code,
                product_repository=self._product_repo,
                coupon_validator=self._coupon_validator,
            )

        if dto.client_discount is not None and dto.client_discount != canonical.discount:
            log.warning(
                "order.client_discount_ignored",
                client_discount=str(dto.client_discount),
                discount=str(canonical.discount),
            )

        payment = payment or PaymentInfoDTO(method=dto.payment_method)
        customer = dto.customer
        email = customer.email if identity.is_guest or not identity.email else identity.email
        note = (
            f"Order placed. Payment transaction: {payment.transaction_id}"
            if payment.transaction_id
            else INITIAL_TIMELINE_NOTE
        )

        order = self._order_repo.create(
            {
                "user_id": identity.uid,
                "customer_name": customer.name,
                "customer_email": email,
                "customer_phone": customer.phone,
                "address": customer.address,
                "city": customer.city,
                "state": customer.state,
                "pincode": customer.pincode,
                "customer_notes": customer.notes,
                "subtotal": canonical.subtotal,
                "shipping": canonical.shipping,
                "discount": canonical.discount if canonical.discount > 0 else None,
                "total": canonical.total,
                "coupon_code": canonical.coupon_code or "",
                "payment_method": payment.method,
                "payment_status": payment.status,
                "transaction_id": payment.transaction_id,
                "paid_at": payment.paid_at,
                "gateway_order_id": gateway_order_id,
                "items": [
                    {
                        "product_id": item.product_id,
                        "name": item.name,
                        "qty": item.qty,
                        "price": item.price,
                        "image_url": item.image_url,
                    }
                    for item in canonical.items
                ],
                "timeline": {"status": OrderStatus.PENDING, "note": note},
            }
        )

        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                order_number=order.order_number,
                total=str(order.total),
                payment_method=order.payment_method,
            )
        )
        self._order_repo.save(order)

        lines = [StockLine(product_id=i.product_id, qty=i.qty) for i in canonical.items]
        if self._inventory.decrement(lines):
            self._order_repo.update_fields(order, {"stock_committed": True})
        else:
            log.warning("order.stock_not_committed", order_id=str(order.id))

        log.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            total=str(order.total),
        )
        if settings.CARRIER_AUTO_CREATE_SHIPMENTS:
            self._enqueue_shipment(order)
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def transition_status(
        self,
        order_id: UUID | str,
        new_status: str,
        note: Optional[str] = None,
        updated_by: Optional[str] = None,
        schedule_pickup: bool = True,
    ) -> Order:
        """Move an order to ``new_status`` and append one timeline entry.

        Holds the order row lock for the whole transition.  Entering
        ``Shipped`` requests the carrier pickup unless ``schedule_pickup`` is
        off (tracking updates report a parcel the carrier already holds);
        entering ``Cancelled`` cancels a booked carrier shipment.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: unknown status, or leaving ``Cancelled``.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order.id),
            current_status=order.status,
            new_status=new_status,
        )

        if not order.can_transition_to(new_status):
            log.warning("order.invalid_transition")
            raise InvalidOrderStatus(
                f"Cannot transition from {order.status} to {new_status}."
            )

        if order.status == OrderStatus.CANCELLED:
            # Already cancelled: no timeline entry; only finish a restoration
            # that failed the first time.
            if order.stock_committed:
                self._restore_stock(order, log)
            log.info("order.cancel_noop")
            return order

        old_status = order.status
        order.status = new_status

        if new_status == OrderStatus.CANCELLED:
            restored = self._restore_stock(order, log) if order.stock_committed else False
            order.add_domain_event(
                OrderCancelled(aggregate_id=order.id, stock_restored=restored)
            )

        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id, old_status=old_status, new_status=new_status
            )
        )
        self._order_repo.save(order)
        self._order_repo.append_timeline(
            order.id, new_status, note=note or "", updated_by=updated_by or ""
        )
        log.info("order.status_updated", old_status=old_status)

        if (
            schedule_pickup
            and new_status == OrderStatus.SHIPPED
            and old_status != OrderStatus.SHIPPED
            and order.shipment_id
            and order.pickup_status != PickupStatus.SCHEDULED
        ):
            self._enqueue_pickup(order)
        if (
            new_status == OrderStatus.CANCELLED
            and order.carrier_order_id
            and order.shipment_status.lower() != ShipmentStatus.CANCELLED
        ):
            self._enqueue_shipment_cancellation(order)

        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def update_fulfillment_metadata(
        self, order_id: UUID | str, dto: FulfillmentUpdateDTO
    ) -> Order:
        """Write only the fields present in the DTO; no timeline entry.

        Raises:
            OrderNotFound: order does not exist.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        changes = {}
        for name, value in dto.changes().items():
            if value is None and name != "estimated_delivery":
                value = ""
            changes[name] = value

        if changes:
            self._order_repo.update_fields(order, changes)
        logger.info(
            "order.fulfillment_updated",
            order_id=str(order.id),
            fields=sorted(changes),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def force_delete_without_restoration(self, order_id: UUID | str) -> None:
        """Hard delete that leaves inventory untouched, whatever the status.

        Raises:
            OrderNotFound: order does not exist.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        logger.warning(
            "order.force_deleted",
            order_id=str(order.id),
            order_number=order.order_number,
            status=order.status,
            stock_left_committed=order.stock_committed,
        )
        self._order_repo.delete(order)

    @transaction.atomic
    def cancel_then_delete(
        self, order_id: UUID | str, updated_by: Optional[str] = None
    ) -> None:
        """Cancel (restoring stock if still committed) and then hard delete.

        Raises:
            OrderNotFound: order does not exist.
        """
        order = self.transition_status(
            order_id,
            OrderStatus.CANCELLED,
            note="Cancelled before deletion",
            updated_by=updated_by,
        )
        logger.info("order.cancelled_then_deleted", order_id=str(order.id))
        self._order_repo.delete(order)

    @transaction.atomic
    def record_pickup_result(
        self, order_id: UUID | str, result: PickupScheduleResult
    ) -> Order:
        """Fold a carrier pickup attempt into the shipment metadata.

        Raises:
            OrderNotFound: order does not exist (e.g. deleted meanwhile).
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        if result.success:
            fields = {
                "pickup_status": PickupStatus.SCHEDULED,
                "pickup_scheduled_date": result.pickup_scheduled_date or "",
                "pickup_token": result.pickup_token or "",
                "pickup_error": "",
            }
        else:
            fields = {
                "pickup_status": PickupStatus.FAILED,
                "pickup_error": (result.error or "")[:300],
            }
        self._order_repo.update_fields(order, fields)
        logger.info(
            "order.pickup_recorded",
            order_id=str(order.id),
            pickup_status=fields["pickup_status"],
        )
        return order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Raises ``OrderNotFound`` when the order does not exist."""
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def get_order_for(self, identity: Identity, order_id: str) -> Order:
        """Admins see every order; everyone else only their own."""
        order = self.get_order(order_id)
        if not identity.is_admin and (identity.is_guest or order.user_id != identity.uid):
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def get_order_by_number(self, identity: Identity, order_number: str) -> Optional[Order]:
        if identity.is_guest:
            return None
        return self._order_repo.find(
            order_number=(order_number or "").strip().upper(), user_id=identity.uid
        ).first()

    def get_orders_by_email(self, identity: Identity, email: str) -> List[Order]:
        """Empty unless ``email`` is the identity's own address."""
        email = normalize_email(email)
        if identity.is_guest or not email or email != identity.email:
            return []
        return list(self._order_repo.find(user_id=identity.uid, customer_email=email))

    def get_orders_by_phone(self, identity: Identity, phone: str) -> List[Order]:
        phone = digits_only(phone, MAX_PHONE_DIGITS)
        if identity.is_guest or not phone:
            return []
        return list(self._order_repo.find(user_id=identity.uid, customer_phone=phone))

    def list_by_status(self, status: Optional[str] = None) -> QuerySet[Order]:
        if status:
            return self._order_repo.find(status=status)
        return self._order_repo.find()

    def recent_orders(self, limit: int = DEFAULT_RECENT_LIMIT) -> List[Order]:
        limit = max(1, min(int(limit), MAX_RECENT_LIMIT))
        return list(self._order_repo.find()[:limit])

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _restore_stock(self, order: Order, log: Any) -> bool:
        """Give the order's quantities back; clears ``stock_committed`` on success."""
        if not self._inventory.restore(_stock_lines(order)):
            log.warning("order.stock_restore_failed")
            return False
        order.stock_committed = False
        self._order_repo.update_fields(order, {"stock_committed": False})
        log.info("order.stock_restored")
        return True

    def _enqueue_pickup(self, order: Order) -> None:
        from modules.shipping.tasks import schedule_order_pickup

        order_id = str(order.id)
        transaction.on_commit(lambda: schedule_order_pickup.delay(order_id))
        logger.info("order.pickup_enqueued", order_id=order_id, shipment_id=order.shipment_id)

    def _enqueue_shipment(self, order: Order) -> None:
        from modules.shipping.tasks import create_order_shipment

        order_id = str(order.id)
        transaction.on_commit(lambda: create_order_shipment.delay(order_id))
        logger.info("order.shipment_enqueued", order_id=order_id)

    def _enqueue_shipment_cancellation(self, order: Order) -> None:
        from modules.shipping.tasks import cancel_order_shipment

        order_id, carrier_order_id = str(order.id), order.carrier_order_id
        # The carrier id travels with the task: cancel_then_delete removes the row.
        transaction.on_commit(
            lambda: cancel_order_shipment.delay(order_id, carrier_order_id)
        )
        logger.info(
            "order.shipment_cancellation_enqueued",
            order_id=order_id,
            carrier_order_id=order.carrier_order_id,
        )


def build_order_service() -> OrderService:
    """Wire the default Django-backed collaborators."""
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.products.repositories.django_repository import (
        ProductDjangoRepository,
    )

    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )
