"""Deferred label generation.

Runs some seconds after checkout (see ``OrderFulfillmentTrigger``). The
carrier payload is rebuilt from what was persisted on the order, never
from checkout-time state: sender settings for the origin, the order's
ship-to address, one package per unit of each order line, and the
carrier / service / quote id committed at checkout.

Failures are recorded on the ``LabelJob`` row and logged; the job is not
retried automatically.
"""

from __future__ import annotations

from smtplib import SMTPException
from typing import Any, Dict, List, Optional

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.shipping.client import RateClient
from modules.shipping.constants import SHIPMENTS_ENDPOINT, LabelJobStatus
from modules.shipping.dtos import Address
from modules.shipping.exceptions import LabelJobError
from modules.shipping.labels import LabelStorage, StoredLabel, extract_label
from modules.shipping.models import LabelJob
from modules.shipping.notifications import email_label_to_admin
from modules.shipping.packages import build_packages

logger = structlog.get_logger(__name__)


def order_destination(order: Any) -> Address:
    return Address(
        name=order.recipient_name
        or f"{order.billing_first_name} {order.billing_last_name}".strip(),
        street=order.street,
        suburb=order.suburb,
        city=order.city,
        postcode=order.postcode,
        country_code=order.country_code,
    )


def build_shipment_payload(order: Any, items: List[Any]) -> Dict[str, Any]:
    return {
        "origin": Address.sender().to_payload(),
        "destination": order_destination(order).to_payload(),
        "packages": [package.to_payload() for package in build_packages(items)],
        "Carrier": order.shipping_carrier_name or order.shipping_name,
        "Service": order.shipping_service,
        "QuoteId": order.shipping_quote_id,
        "deliveryreference": order.order_number,
        "outputs": [settings.SHIPPING_LABEL_FORMAT],
    }


class LabelGenerationJob:
    def __init__(
        self,
        client: Optional[RateClient] = None,
        storage: Optional[LabelStorage] = None,
    ) -> None:
        self._client = client or RateClient()
        self._storage = storage or LabelStorage()

    def run(self, order_id: str, courier_id: str) -> Optional[LabelJob]:
        """Create the shipment and store its label. ``None`` if the order is gone."""
        from modules.orders.repositories.django_repository import OrderDjangoRepository

        orders = OrderDjangoRepository()
        log = logger.bind(order_id=str(order_id), courier_id=courier_id)

        order = orders.get_by_id(str(order_id))
        if order is None:
            log.warning("shipping.label_order_missing")
            return None

        job, _ = LabelJob.objects.get_or_create(
            order=order,
            courier_id=courier_id,
            defaults={"scheduled_for": timezone.now()},
        )
        job.attempts += 1
        log.info("shipping.label_job_started", attempt=job.attempts)

        try:
            label = self._create_label(order, orders.items_with_products(order))
        except LabelJobError as exc:
            log.error("shipping.label_job_failed", error=str(exc))
            return self._finish(job, LabelJobStatus.FAILED, str(exc))

        with transaction.atomic():
            orders.update_fields(
                order, {"label_url": label.url, "label_path": label.path}
            )
            job = self._finish(job, LabelJobStatus.SUCCEEDED)

        log.info("shipping.label_job_succeeded", label_url=label.url)
        try:
            email_label_to_admin(order, label)
        except (SMTPException, OSError) as exc:
            log.error("shipping.label_email_failed", error=str(exc))
        return job

    def _create_label(self, order: Any, items: List[Any]) -> StoredLabel:
        result = self._client.request(
            SHIPMENTS_ENDPOINT, build_shipment_payload(order, items)
        )
        if not result.success:
            raise LabelJobError(result.error or "Shipment request failed.")

        document = extract_label(result.data)
        if not document:
            raise LabelJobError("Carrier response did not include a label.")

        try:
            return self._storage.save_label_pdf(order.id, document)
        except OSError as exc:
            raise LabelJobError(f"Could not save label: {exc}") from exc

    @staticmethod
    def _finish(job: LabelJob, status: str, error: str = "") -> LabelJob:
        job.status = status
        job.error_message = error
        job.finished_at = timezone.now()
        job.save(update_fields=["status", "error_message", "finished_at", "attempts"])
        return job
