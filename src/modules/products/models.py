"""Catalogue product with the physical attributes shipping needs.

``weight``, ``length``, ``width`` and ``height`` are stored exactly as the
merchant entered them, in the store's configured units
(``STORE_WEIGHT_UNIT`` / ``STORE_DIMENSION_UNIT``). Conversion to the
carrier's kg/cm happens in ``modules.shipping.units`` when packages are
built. Any of them may be blank.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import SoftDeleteModel

logger = structlog.get_logger(__name__)


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


def _measurement_field() -> models.DecimalField:
    return models.DecimalField(
        max_digits=10,
        decimal_places=3,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0"))],
    )


class Product(SoftDeleteModel):
    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )
    weight = _measurement_field()
    length = _measurement_field()
    width = _measurement_field()
    height = _measurement_field()

    class Meta:
        db_table = "products"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(price__gt=0),
                name="products_price_positive",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.price is not None and self.price <= 0:
            raise ValidationError({"price": "Price must be greater than zero."})

    def save(self, *args, **kwargs) -> None:
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"
