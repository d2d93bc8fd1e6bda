"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.

Orders are only visible to the session that placed them.
"""

from __future__ import annotations

from pydantic import ValidationError as DTOValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.cart.repositories.django_repository import CartDjangoRepository
from modules.core.sessions import session_key_for
from modules.orders.dtos import PlaceOrderDTO
from modules.orders.exceptions import (
    EmptyCart,
    InvalidOrderStatus,
    OrderNotFound,
    ShippingSelectionRequired,
)
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import CheckoutSerializer, OrderSerializer
from modules.orders.services import OrderService
from modules.shipping.dtos import Address, SelectedRate


def _order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        cart_repository=CartDjangoRepository(),
    )


class CheckoutViewSet(ViewSet):
    """POST /api/v1/checkout/"""

    throttle_scope = "checkout"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _order_service()

    def create(self, request: Request) -> Response:
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            dto = PlaceOrderDTO(
                session_key=session_key_for(request),
                billing_first_name=data["billing_first_name"],
                billing_last_name=data["billing_last_name"],
                billing_email=data["billing_email"],
                destination=Address(
                    name=data["shipping_name"],
                    street=data["shipping_address"],
                    suburb=data["shipping_suburb"],
                    city=data["shipping_city"],
                    postcode=data["shipping_postcode"],
                    country_code=data["shipping_country"],
                ),
                selection=SelectedRate.from_checkout_fields(serializer.hidden_fields()),
                notes=data["notes"],
            )
        except DTOValidationError as exc:
            return Response(
                {"detail": "Invalid checkout data.", "errors": exc.errors(include_url=False)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            order = self._service.place_order(dto)
        except EmptyCart as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except ShippingSelectionRequired as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderViewSet(ViewSet):
    """GET /api/v1/orders/{pk}/ and POST /api/v1/orders/{pk}/pay/"""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _order_service()

    def _owned_order(self, request: Request, pk: str | None):
        order = self._service.get_order(str(pk))
        if order.session_key != session_key_for(request):
            raise OrderNotFound(f"Order {pk} not found.")
        return order

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        try:
            order = self._owned_order(request, pk)
        except OrderNotFound:
            return Response(
                {"detail": "Order not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def pay(self, request: Request, pk: str | None = None) -> Response:
        """Record a successful payment for the order."""
        try:
            order = self._owned_order(request, pk)
            order = self._service.complete_payment(str(order.id))
        except OrderNotFound:
            return Response(
                {"detail": "Order not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except InvalidOrderStatus as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        return Response(OrderSerializer(order).data)
