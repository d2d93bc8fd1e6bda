"""Django ORM implementation of the Cart repository."""

from __future__ import annotations

from typing import Optional

import structlog
from django.core.exceptions import ValidationError

from modules.cart.models import Cart, CartItem
from modules.cart.repositories.interfaces import ICartRepository
from modules.products.models import Product

logger = structlog.get_logger(__name__)


class CartDjangoRepository(ICartRepository):
    def get_by_id(self, id: str) -> Optional[Cart]:
        try:
            return Cart.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_session(self, session_key: str) -> Optional[Cart]:
        return Cart.objects.filter(session_key=session_key).first()

    def get_or_create_for_session(self, session_key: str) -> Cart:
        cart, created = Cart.objects.get_or_create(session_key=session_key)
        if created:
            logger.info("cart.created", cart_id=str(cart.id))
        return cart

    def get_item(
        self, cart: Cart, item_id: str, include_deleted: bool = False
    ) -> Optional[CartItem]:
        queryset = CartItem.objects.select_related("product").filter(cart=cart)
        if not include_deleted:
            queryset = queryset.alive()
        try:
            return queryset.filter(id=item_id).first()
        except (ValueError, ValidationError):
            return None

    def find_live_item(self, cart: Cart, product: Product) -> Optional[CartItem]:
        return CartItem.objects.alive().filter(cart=cart, product=product).first()

    def add_item(self, cart: Cart, product: Product, quantity: int) -> CartItem:
        return CartItem.objects.create(cart=cart, product=product, quantity=quantity)

    def get_product(self, product_id: str) -> Optional[Product]:
        try:
            return Product.objects.alive().filter(id=product_id).first()
        except (ValueError, ValidationError):
            return None

    def save(self, entity: Cart) -> Cart:
        entity.save()
        return entity
