from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"
    verbose_name = "Orders"

    def ready(self) -> None:
        """Subscribe the order handlers the outbox publisher dispatches to."""
        from modules.orders import events, handlers
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(events.OrderCreated, handlers.order_created_handler)
        event_bus.subscribe(events.OrderCancelled, handlers.order_cancelled_handler)
        event_bus.subscribe(
            events.OrderStatusChanged, handlers.order_status_changed_handler
        )
