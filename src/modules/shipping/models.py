"""Label job registry.

One row per (order, courier) for which a label job has been scheduled.
The unique constraint is what makes scheduling idempotent: a second
schedule for the same pair finds the existing row and enqueues nothing.
The row also records how the last run went, for operators.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel
from modules.shipping.constants import LabelJobStatus


class LabelJob(BaseModel):
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="label_jobs",
    )
    courier_id = models.CharField(max_length=64)
    status = models.CharField(
        max_length=20,
        choices=LabelJobStatus.choices,
        default=LabelJobStatus.SCHEDULED,
    )
    scheduled_for = models.DateTimeField()
    attempts = models.PositiveIntegerField(default=0)
    error_message = models.TextField(blank=True, default="")
    finished_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "shipping_label_jobs"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "courier_id"],
                name="label_jobs_unique_order_courier",
            ),
        ]

    def __str__(self) -> str:
        return f"LabelJob {self.order_id}/{self.courier_id} ({self.status})"
