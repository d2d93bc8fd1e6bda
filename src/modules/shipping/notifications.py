"""Outbound emails about shipping: labels for the warehouse and freight notices."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from django.conf import settings
from django.core.mail import EmailMessage, send_mail

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.shipping.labels import StoredLabel

logger = structlog.get_logger(__name__)


def email_label_to_admin(order: Order, label: StoredLabel) -> None:
    """Send the generated label to the shipping administrator as a PDF attachment."""
    message = EmailMessage(
        subject=f"Shipping Label: Order #{order.order_number}",
        body=(
            f"A label has been generated for Order #{order.order_number}.\n"
            f"URL: {label.url}\n"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[settings.SHIPPING_ADMIN_EMAIL],
    )
    message.attach_file(label.path, mimetype="application/pdf")
    message.send()
    logger.info("shipping.label_emailed", order_id=str(order.id))


def notify_freight_order(order: Order) -> None:
    """Tell the customer freight is quoted manually; ask the admin to quote it."""
    first_name = order.billing_first_name or "there"
    send_mail(
        subject=f"Information regarding Shipping for Order #{order.order_number}",
        message=(
            f"Hi {first_name},\n\n"
            "Thank you for your order. Since this is a heavy or multi-item order, "
            "freight is calculated manually.\n\n"
            "We will email you the freight cost shortly. Please confirm acceptance "
            "so we can process your order.\n"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[order.billing_email],
    )
    send_mail(
        subject=f"ACTION REQUIRED: Freight Quote Order #{order.order_number}",
        message=(
            "Freight Quote Required\n\n"
            f"Please manually calculate freight for Order #{order.order_number} "
            f"(id {order.id}).\n"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[settings.SHIPPING_ADMIN_EMAIL],
    )
    logger.info("shipping.freight_notified", order_id=str(order.id))
