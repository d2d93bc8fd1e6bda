"""Shipping URL configuration."""

from __future__ import annotations

from rest_framework.routers import SimpleRouter

from modules.shipping.views import ShippingViewSet

router = SimpleRouter(trailing_slash=True)
router.register("shipping", ShippingViewSet, basename="shipping")

urlpatterns = router.urls
