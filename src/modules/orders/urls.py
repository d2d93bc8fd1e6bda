"""Order URL configuration."""

from __future__ import annotations

from rest_framework.routers import SimpleRouter

from modules.orders.views import CheckoutViewSet, OrderViewSet

router = SimpleRouter(trailing_slash=True)
router.register("checkout", CheckoutViewSet, basename="checkout")
router.register("orders", OrderViewSet, basename="order")

urlpatterns = router.urls
