# orders/api/views.py
from django.core.exceptions import ValidationError
from drf_spectacular.utils import OpenApiResponse, extend_schema, extend_schema_view

from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import api_view, action, permission_classes
from rest_framework.response import Response

from orders.api.filters import OrderFilter
from orders.api.pagination import OrderPagination
from orders.api.serializers import (
    CreateOrderRequestSerializer,
    GuestCheckoutRequestSerializer,
    OrderSerializer,
    UpdateStatusRequestSerializer,
)
from orders.models import Order
from orders.services.checkout_service import CheckoutService, ProductUnavailable
from orders.services.guest_checkout_service import GuestCheckoutService, GuestValidationError
from orders.services.order_status_service import OrderStatusService
from users.permissions import IsShopAdmin


def _order_payload(order: Order) -> dict:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "total_amount": order.total_amount,
        "status": order.status,
    }


@extend_schema_view(
    list=extend_schema(tags=["Orders"], summary="Current user's orders (filter by status, page/limit)"),
    retrieve=extend_schema(tags=["Orders"], summary="Get one of the current user's orders"),
)
class OrderViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = OrderSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_class = OrderFilter
    pagination_class = OrderPagination

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Order.objects.none()
        qs = Order.objects.prefetch_related("items").order_by("-created_at", "-id")
        if self.action == "update_status":
            return qs
        return qs.filter(user=self.request.user)

    @extend_schema(
        tags=["Orders"],
        summary="Place an order (prices from catalog, stock reserved, cart cleared)",
        request=CreateOrderRequestSerializer,
        responses={
            201: OpenApiResponse(description='{"message", "order": {id, order_number, total_amount, status}}'),
            400: OpenApiResponse(description="Bad request / insufficient stock"),
            401: OpenApiResponse(description="Unauthorized"),
            404: OpenApiResponse(description="Product not found"),
        },
    )
    def create(self, request):
        ser = CreateOrderRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            order = CheckoutService.checkout(request.user, **ser.validated_data)
        except ProductUnavailable as e:
            return Response({"detail": str(e)}, status=status.HTTP_404_NOT_FOUND)
        except ValueError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(
            {"message": "Order created successfully", "order": _order_payload(order)},
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        tags=["Orders"],
        summary="Admin: update order status (and return stock if cancelled)",
        request=UpdateStatusRequestSerializer,
        responses={
            200: OrderSerializer,
            400: OpenApiResponse(description="Validation error"),
            401: OpenApiResponse(description="Unauthorized"),
            403: OpenApiResponse(description="Forbidden"),
            404: OpenApiResponse(description="Not found"),
        },
    )
    @action(
        detail=True,
        methods=["patch"],
        permission_classes=[IsShopAdmin],
        url_path="update_status",
    )
    def update_status(self, request, pk=None):
        order = self.get_object()

        ser = UpdateStatusRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            order = OrderStatusService.update_status(
                order_id=order.id,
                new_status=ser.validated_data["status"],
            )
        except ValidationError as e:
            return Response({"detail": e.messages[0]}, status=status.HTTP_400_BAD_REQUEST)

        order = Order.objects.prefetch_related("items").get(pk=order.pk)
        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Orders"],
        summary="User: cancel own order (only pending & unpaid; returns stock)",
        request=None,
        responses={
            200: OrderSerializer,
            400: OpenApiResponse(description="Validation error"),
            401: OpenApiResponse(description="Unauthorized"),
            404: OpenApiResponse(description="Not found"),
        },
    )
    @action(
        detail=True,
        methods=["post"],
        permission_classes=[permissions.IsAuthenticated],
        url_path="cancel",
    )
    def cancel(self, request, pk=None):
        order = self.get_object()

        try:
            order = OrderStatusService.cancel_by_user(user=request.user, order_id=order.id)
        except ValidationError as e:
            return Response({"detail": e.messages[0]}, status=status.HTTP_400_BAD_REQUEST)

        order = Order.objects.prefetch_related("items").get(pk=order.pk)
        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)


@extend_schema(
    tags=["Orders"],
    summary="Guest checkout: create a WhatsApp order without an account",
    request=GuestCheckoutRequestSerializer,
    responses={
        201: OpenApiResponse(description='{"success", "orderId", "whatsappLink", "message", "total"}'),
        400: OpenApiResponse(description='{"message": "Validation failed", "errors": [...]}'),
        404: OpenApiResponse(description="Product not found"),
    },
)
@api_view(["POST"])
@permission_classes([permissions.AllowAny])
def guest_checkout(request):
    ser = GuestCheckoutRequestSerializer(data=request.data)
    ser.is_valid(raise_exception=True)

    try:
        result = GuestCheckoutService.checkout(
            customer=ser.validated_data["customer"],
            items=ser.validated_data["items"],
        )
    except GuestValidationError as e:
        return Response({"message": "Validation failed", "errors": e.errors}, status=status.HTTP_400_BAD_REQUEST)
    except ProductUnavailable as e:
        return Response({"detail": str(e)}, status=status.HTTP_404_NOT_FOUND)
    except ValueError as e:
        return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(
        {
            "success": True,
            "orderId": result.order.order_number,
            "whatsappLink": result.whatsapp_link,
            "message": result.message,
            "total": f"{result.order.total_amount:.2f}",
        },
        status=status.HTTP_201_CREATED,
    )
