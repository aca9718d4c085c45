from rest_framework import status, permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiResponse

from wishlist.api.serializers import WishlistActionRequestSerializer, WishlistItemSerializer
from wishlist.services.wishlist_service import AlreadyInWishlist, WishlistService


@extend_schema(
    methods=["GET"],
    tags=["Wishlist"],
    summary="Current user's wishlist",
    responses={200: OpenApiResponse(description='{"items": [...], "total": n}')},
)
@extend_schema(
    methods=["POST"],
    tags=["Wishlist"],
    summary="Add, remove or toggle a product",
    request=WishlistActionRequestSerializer,
    responses={
        200: OpenApiResponse(description='{"message", "action", "inWishlist"}'),
        400: OpenApiResponse(description="Invalid action"),
        404: OpenApiResponse(description="Product not found"),
        409: OpenApiResponse(description="Product already in wishlist"),
    },
)
@extend_schema(methods=["DELETE"], tags=["Wishlist"], summary="Clear wishlist", request=None)
@api_view(["GET", "POST", "DELETE"])
@permission_classes([permissions.IsAuthenticated])
def wishlist_detail(request):
    if request.method == "POST":
        ser = WishlistActionRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            result = WishlistService.apply(request.user, **ser.validated_data)
        except AlreadyInWishlist as e:
            return Response({"detail": str(e)}, status=status.HTTP_409_CONFLICT)
        except ValueError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(result)

    if request.method == "DELETE":
        WishlistService.clear(request.user)
        return Response({"message": "Wishlist cleared successfully"})

    items = WishlistService.items_for(request.user)
    data = WishlistItemSerializer(items, many=True).data
    return Response({"items": data, "total": len(data)})
