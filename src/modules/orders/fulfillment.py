"""Order fulfilment trigger.

Runs at order placement. Copies the shopper's committed shipping
selection onto the order in one save, then schedules exactly one label
job per (order, courier). The Celery task is only enqueued once the
surrounding transaction commits, with a short countdown so the order is
fully written before the job reads it back.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.core.middleware import correlation_id_var
from modules.orders.constants import SHIPPING_METADATA_FIELDS

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.shipping.dtos import SelectedRate
    from modules.shipping.models import LabelJob

logger = structlog.get_logger(__name__)


class OrderFulfillmentTrigger:
    def __init__(
        self, order_repository: IOrderRepository, delay: Optional[int] = None
    ) -> None:
        self._order_repo = order_repository
        self._delay = delay if delay is not None else settings.LABEL_JOB_DELAY_SECONDS

    @transaction.atomic
    def on_order_placed(
        self, order: Order, selection: Optional[SelectedRate]
    ) -> Optional[LabelJob]:
        """Record ``selection`` on ``order`` and schedule its label job.

        Does nothing when no courier was chosen (freight orders).
        """
        if selection is None or not selection.courier_id:
            logger.info("order.fulfilment_skipped", order_id=str(order.id))
            return None

        values = (
            selection.courier_id,
            Decimal(f"{selection.cost:.2f}"),
            selection.name,
            selection.quote_id,
            selection.service,
            selection.carrier_name,
        )
        self._order_repo.update_fields(order, dict(zip(SHIPPING_METADATA_FIELDS, values)))
        return self.schedule(order, selection.courier_id)

    def schedule(self, order: Order, courier_id: str) -> LabelJob:
        """Schedule the label job for (order, courier); repeats are no-ops."""
        from modules.shipping.models import LabelJob
        from modules.shipping.tasks import generate_label

        log = logger.bind(order_id=str(order.id), courier_id=courier_id)
        job, created = LabelJob.objects.get_or_create(
            order=order,
            courier_id=courier_id,
            defaults={"scheduled_for": timezone.now() + timedelta(seconds=self._delay)},
        )
        if not created:
            log.info("order.label_job_already_scheduled", job_id=str(job.id))
            return job

        order_id = str(order.id)
        correlation_id = correlation_id_var.get()
        transaction.on_commit(
            lambda: generate_label.apply_async(
                args=[order_id, courier_id],
                kwargs={"correlation_id": correlation_id},
                countdown=self._delay,
            )
        )
        log.info("order.label_job_scheduled", job_id=str(job.id), delay=self._delay)
        return job
