"""Order API views.

Exposes the ``OrderService`` via HTTP using a DRF ViewSet.
Domain exceptions are caught and translated into HTTP status codes;
anything else propagates to the standardized exception handler.
"""

from __future__ import annotations

from django.http import HttpResponse
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import BasePermission, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.identity import Identity
from modules.core.permissions import IsAdmin
from modules.orders.constants import DEFAULT_RECENT_LIMIT
from modules.orders.dtos import first_error_message
from modules.orders.exceptions import (
    EmailNotVerified,
    InsufficientStock,
    InvalidOrderStatus,
    NotAuthenticated,
    OrderNotFound,
    ProductNotFound,
    ProductUnavailable,
)
from modules.orders.exports import export_orders_csv
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.serializers import (
    CreateOrderSerializer,
    FulfillmentUpdateSerializer,
    OrderListSerializer,
    OrderSerializer,
    StatusTransitionSerializer,
)
from modules.orders.services import build_order_service

_NOT_FOUND = {"detail": "Order not found."}

_ADMIN_ACTIONS = {
    "list",
    "recent",
    "transition",
    "fulfillment",
    "force_delete",
    "cancel_and_delete",
    "export",
}


def checkout_error_response(exc: Exception) -> Response:
    """Map order-creation failures to HTTP; shared with the payment views."""
    if isinstance(exc, ValidationError):
        return Response(
            {"detail": first_error_message(exc)}, status=status.HTTP_400_BAD_REQUEST
        )
    if isinstance(exc, NotAuthenticated):
        return Response({"detail": str(exc)}, status=status.HTTP_401_UNAUTHORIZED)
    if isinstance(exc, EmailNotVerified):
        return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)
    if isinstance(exc, ProductNotFound):
        return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, ProductUnavailable):
        return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, InsufficientStock):
        return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
    raise exc


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Does **not** extend ``ModelViewSet``: every read and write goes
    through the service/repository layer.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    filter_backends = [DjangoFilterBackend]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_permissions(self) -> list[BasePermission]:
        if self.action in _ADMIN_ACTIONS:
            return [IsAdmin()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve", "lookup", "recent"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_by_status()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/ (cash-on-delivery checkout)."""
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            dto = serializer.to_dto()
            order = self._service.create_order(Identity.from_user(request.user), dto)
        except (
            ValidationError,
            NotAuthenticated,
            EmailNotVerified,
            ProductNotFound,
            ProductUnavailable,
            InsufficientStock,
        ) as exc:
            return checkout_error_response(exc)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/?status=&payment_status=&start_date=&end_date="""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/ (admins, or the owner)."""
        identity = Identity.from_user(request.user)
        try:
            order = self._service.get_order_for(identity, pk or "")
        except OrderNotFound:
            return Response(_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=["get"])
    def lookup(self, request: Request) -> Response:
        """GET /api/v1/orders/lookup/?order_number=|email=|phone=

        Always scoped to the caller's own orders.
        """
        identity = Identity.from_user(request.user)
        params = request.query_params
        if params.get("order_number"):
            order = self._service.get_order_by_number(identity, params["order_number"])
            orders = [order] if order else []
        elif params.get("email"):
            orders = self._service.get_orders_by_email(identity, params["email"])
        elif params.get("phone"):
            orders = self._service.get_orders_by_phone(identity, params["phone"])
        else:
            return Response(
                {"detail": "Provide one of order_number, email or phone."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(OrderSerializer(orders, many=True).data)

    @action(detail=False, methods=["get"])
    def recent(self, request: Request) -> Response:
        """GET /api/v1/orders/recent/?limit=10"""
        try:
            limit = int(request.query_params.get("limit", DEFAULT_RECENT_LIMIT))
        except ValueError:
            return Response(
                {"detail": "limit must be an integer."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        orders = self._service.recent_orders(limit)
        return Response(OrderListSerializer(orders, many=True).data)

    @action(detail=False, methods=["get"])
    def export(self, request: Request) -> HttpResponse:
        """GET /api/v1/orders/export/ as ``text/csv``; honours the list filters."""
        orders = self.filter_queryset(self.get_queryset())
        response = HttpResponse(export_orders_csv(orders), content_type="text/csv")
        filename = f"orders-{timezone.localdate():%Y%m%d}.csv"
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response

    # ------------------------------------------------------------------
    # Admin writes
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="status")
    def transition(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/status/"""
        serializer = StatusTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.transition_status(
                pk,
                serializer.validated_data["status"],
                note=serializer.validated_data.get("note"),
                updated_by=_actor(request),
            )
        except OrderNotFound:
            return Response(_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except InvalidOrderStatus as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["patch"])
    def fulfillment(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/fulfillment/ (only the sent fields change)."""
        serializer = FulfillmentUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.update_fulfillment_metadata(pk, serializer.to_dto())
        except OrderNotFound:
            return Response(_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)

        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"], url_path="force-delete")
    def force_delete(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/force-delete/ (stock is not restored)."""
        try:
            self._service.force_delete_without_restoration(pk)
        except OrderNotFound:
            return Response(_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="cancel-and-delete")
    def cancel_and_delete(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel-and-delete/"""
        try:
            self._service.cancel_then_delete(pk, updated_by=_actor(request))
        except OrderNotFound:
            return Response(_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)


def _actor(request: Request) -> str:
    user = request.user
    return getattr(user, "email", "") or str(getattr(user, "pk", "") or "")
