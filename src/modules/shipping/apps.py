from django.apps import AppConfig


class ShippingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.shipping"
    label = "shipping"

    def ready(self) -> None:
        from modules.cart.events import CART_EVENTS
        from modules.orders.events import OrderPlaced, PaymentCompleted
        from modules.shipping.handlers import (
            clear_selection_handler,
            freight_order_handler,
        )
        from shared.infrastructure.bus import event_bus

        for event_class in (*CART_EVENTS, PaymentCompleted):
            event_bus.subscribe(event_class, clear_selection_handler)
        event_bus.subscribe(OrderPlaced, freight_order_handler)
