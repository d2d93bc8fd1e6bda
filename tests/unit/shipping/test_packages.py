"""Unit tests for package descriptor expansion."""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from modules.shipping.constants import DEFAULT_PACKAGE
from modules.shipping.packages import build_packages, describe

pytestmark = pytest.mark.unit


def product(**overrides):
    values = {
        "name": "Widget",
        "weight": Decimal("1.23456"),
        "length": Decimal("10"),
        "width": Decimal("5"),
        "height": Decimal("2"),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestDescribe:
    def test_rounds_to_three_decimals(self):
        box = describe(product())
        assert box.kg == 1.235
        assert box.length == 10.0

    def test_converts_store_units(self, settings):
        settings.STORE_WEIGHT_UNIT = "g"
        settings.STORE_DIMENSION_UNIT = "mm"
        box = describe(product(weight=1500, length=300, width=200, height=100))
        assert (box.kg, box.length, box.width, box.height) == (1.5, 30.0, 20.0, 10.0)

    def test_missing_dimensions_are_zero(self):
        box = describe(product(length=None, width="", height=None))
        assert (box.length, box.width, box.height) == (0.0, 0.0, 0.0)


class TestBuildPackages:
    def test_one_descriptor_per_unit(self):
        packages = build_packages([SimpleNamespace(product=product(), quantity=3)])
        assert len(packages) == 3
        assert packages[0] == packages[1] == packages[2]

    def test_multiple_lines(self):
        packages = build_packages(
            [
                SimpleNamespace(product=product(name="A"), quantity=1),
                SimpleNamespace(product=product(name="B"), quantity=2),
            ]
        )
        assert [p.name for p in packages] == ["A", "B", "B"]

    def test_lines_without_product_are_skipped(self):
        packages = build_packages(
            [
                SimpleNamespace(product=None, quantity=4),
                SimpleNamespace(product=product(name="Real"), quantity=1),
            ]
        )
        assert [p.name for p in packages] == ["Real"]

    def test_empty_input_gives_default_package(self):
        packages = build_packages([])
        assert len(packages) == 1
        assert packages[0].model_dump() == DEFAULT_PACKAGE

    def test_only_productless_lines_give_default_package(self):
        packages = build_packages([SimpleNamespace(product=None, quantity=2)])
        assert [p.name for p in packages] == ["Default"]
