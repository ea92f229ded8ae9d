from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.payments"
    label = "payments"
    verbose_name = "Payments"

    def ready(self) -> None:
        from modules.payments.events import PaymentVerified
        from modules.payments.handlers import payment_verified_handler
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(PaymentVerified, payment_verified_handler)
