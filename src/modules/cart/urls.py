"""Cart URL configuration."""

from __future__ import annotations

from rest_framework.routers import SimpleRouter

from modules.cart.views import CartItemViewSet, CartViewSet

router = SimpleRouter(trailing_slash=True)
router.register("cart/items", CartItemViewSet, basename="cart-item")
router.register("cart", CartViewSet, basename="cart")

urlpatterns = router.urls
