"""Celery tasks for the shipping module."""

import structlog
from celery import shared_task

from modules.shipping.jobs import LabelGenerationJob

logger = structlog.get_logger(__name__)


@shared_task(name="shipping.generate_label")
def generate_label(order_id: str, courier_id: str, correlation_id: str = "") -> dict:
    """Create the carrier shipment for an order and store its label.

    ``correlation_id`` is the ID of the checkout request that scheduled the
    job, so the job's log lines can be traced back to it.
    """
    with structlog.contextvars.bound_contextvars(correlation_id=correlation_id or None):
        job = LabelGenerationJob().run(order_id, courier_id)
        if job is None:
            return {"order_id": order_id, "status": "MISSING"}
        logger.info("shipping.generate_label.executed", order_id=order_id, status=job.status)
        return {"order_id": order_id, "status": job.status, "attempts": job.attempts}
