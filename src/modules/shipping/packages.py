"""Expansion of cart / order lines into carrier package descriptors."""

from __future__ import annotations

from typing import Any, Iterable, List

from modules.shipping.constants import DEFAULT_PACKAGE, MEASUREMENT_PRECISION
from modules.shipping.dtos import PackageDescriptor
from modules.shipping.units import to_cm, to_kg


def describe(product: Any) -> PackageDescriptor:
    """A single box for one unit of ``product``, in kg / cm."""
    return PackageDescriptor(
        name=product.name,
        kg=round(to_kg(product.weight), MEASUREMENT_PRECISION),
        length=round(to_cm(product.length), MEASUREMENT_PRECISION),
        width=round(to_cm(product.width), MEASUREMENT_PRECISION),
        height=round(to_cm(product.height), MEASUREMENT_PRECISION),
    )


def build_packages(line_items: Iterable[Any]) -> List[PackageDescriptor]:
    """One descriptor per unit of quantity of every line.

    Carriers rate per box, so a quantity-3 line yields three identical
    descriptors rather than one heavier one. Lines without a product are
    skipped. An empty result is replaced by the single default package.
    """
    packages: List[PackageDescriptor] = []
    for line in line_items:
        product = getattr(line, "product", None)
        if product is None:
            continue
        box = describe(product)
        packages.extend(box for _ in range(int(line.quantity or 0)))

    if not packages:
        packages.append(PackageDescriptor(**DEFAULT_PACKAGE))
    return packages
