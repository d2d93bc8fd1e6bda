"""Cart API views.

The cart belongs to the caller's session. Domain exceptions are caught
and translated into HTTP status codes.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.cart.exceptions import CartItemNotFound, InvalidQuantity
from modules.cart.repositories.django_repository import CartDjangoRepository
from modules.cart.serializers import (
    AddCartItemSerializer,
    CartItemSerializer,
    CartSerializer,
    UpdateCartItemSerializer,
)
from modules.cart.services import CartService
from modules.core.sessions import session_key_for
from modules.products.exceptions import InactiveProduct, ProductNotFound


class CartViewSet(ViewSet):
    """GET /api/v1/cart/ and POST /api/v1/cart/empty/."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CartService(cart_repository=CartDjangoRepository())

    def list(self, request: Request) -> Response:
        cart = self._service.get_cart(session_key_for(request))
        return Response(CartSerializer(cart).data)

    @action(detail=False, methods=["post"])
    def empty(self, request: Request) -> Response:
        session_key = session_key_for(request)
        self._service.empty(session_key)
        return Response(CartSerializer(self._service.get_cart(session_key)).data)


class CartItemViewSet(ViewSet):
    """Line operations under /api/v1/cart/items/."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CartService(cart_repository=CartDjangoRepository())

    def create(self, request: Request) -> Response:
        """POST /api/v1/cart/items/"""
        serializer = AddCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            item = self._service.add_item(
                session_key_for(request),
                str(serializer.validated_data["product_id"]),
                serializer.validated_data["quantity"],
            )
        except ProductNotFound:
            return Response(
                {"detail": "Product not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except InactiveProduct:
            return Response(
                {"detail": "Product is not available."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except InvalidQuantity as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(CartItemSerializer(item).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/cart/items/{pk}/"""
        serializer = UpdateCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            item = self._service.update_quantity(
                session_key_for(request), str(pk), serializer.validated_data["quantity"]
            )
        except CartItemNotFound:
            return Response(
                {"detail": "Cart item not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except InvalidQuantity as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        if item is None:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response(CartItemSerializer(item).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/cart/items/{pk}/"""
        try:
            self._service.remove_item(session_key_for(request), str(pk))
        except CartItemNotFound:
            return Response(
                {"detail": "Cart item not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def restore(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/cart/items/{pk}/restore/"""
        try:
            item = self._service.restore_item(session_key_for(request), str(pk))
        except CartItemNotFound:
            return Response(
                {"detail": "Cart item not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(CartItemSerializer(item).data)
