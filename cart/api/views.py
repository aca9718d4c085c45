from rest_framework import status, permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiResponse

from cart.api.serializers import (
    AddToCartRequestSerializer,
    CartItemSerializer,
    ChangeQuantityRequestSerializer,
)
from cart.services.cart_service import CartService

CART_RESPONSE = OpenApiResponse(description='{"items": [...], "summary": {subtotal, itemCount, shipping, tax, total}}')


def _get_cart_response(user):
    items = list(CartService.items_for(user))
    return Response(
        {
            "items": CartItemSerializer(items, many=True).data,
            "summary": CartService.summary(items),
        }
    )


@extend_schema(
    methods=["GET"],
    tags=["Cart"],
    summary="Get current user's cart",
    responses={200: CART_RESPONSE},
)
@extend_schema(
    methods=["POST"],
    tags=["Cart"],
    summary="Add product to cart",
    request=AddToCartRequestSerializer,
    responses={
        200: CART_RESPONSE,
        400: OpenApiResponse(description="Insufficient stock"),
        404: OpenApiResponse(description="Product not found or inactive"),
    },
)
@extend_schema(
    methods=["DELETE"],
    tags=["Cart"],
    summary="Clear cart",
    request=None,
    responses={200: CART_RESPONSE},
)
@api_view(["GET", "POST", "DELETE"])
@permission_classes([permissions.IsAuthenticated])
def cart_detail(request):
    if request.method == "POST":
        ser = AddToCartRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            CartService.add_to_cart(
                request.user,
                product_id=ser.validated_data["product_id"],
                quantity=ser.validated_data["quantity"],
            )
        except ValueError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

    elif request.method == "DELETE":
        CartService.clear_cart(request.user)

    return _get_cart_response(request.user)


@extend_schema(
    methods=["PATCH"],
    tags=["Cart"],
    summary="Change quantity of a product in cart (0 => remove item)",
    request=ChangeQuantityRequestSerializer,
    responses={
        200: CART_RESPONSE,
        400: OpenApiResponse(description="Bad request"),
        404: OpenApiResponse(description="Not in cart"),
    },
)
@extend_schema(
    methods=["DELETE"],
    tags=["Cart"],
    summary="Remove product from cart",
    request=None,
    responses={200: CART_RESPONSE, 404: OpenApiResponse(description="Not in cart")},
)
@api_view(["PATCH", "DELETE"])
@permission_classes([permissions.IsAuthenticated])
def cart_item(request, product_id: int):
    if request.method == "DELETE":
        CartService.remove_from_cart(request.user, product_id=product_id)
        return _get_cart_response(request.user)

    ser = ChangeQuantityRequestSerializer(data=request.data)
    ser.is_valid(raise_exception=True)

    try:
        CartService.change_quantity(
            request.user,
            product_id=product_id,
            quantity=ser.validated_data["quantity"],
        )
    except ValueError as e:
        return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return _get_cart_response(request.user)
