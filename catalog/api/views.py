import logging

from django.db import DatabaseError
from django.shortcuts import get_object_or_404
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from drf_spectacular.utils import OpenApiResponse, extend_schema, extend_schema_view

from catalog.models import Brand, Product, ProductImage
from catalog.services.catalog_service import CatalogService
from catalog.services.product_query import ProductCriteria, search_products
from catalog.services.review_service import ReviewService
from .filters import BrandFilter
from .serializers import (
    BrandSerializer,
    CreateReviewRequestSerializer,
    ProductDetailSerializer,
    ProductImageSerializer,
    ProductListQuerySerializer,
    ProductListSerializer,
    ReviewListQuerySerializer,
    ReviewSerializer,
    UpdateReviewRequestSerializer,
)

logger = logging.getLogger(__name__)


def _non_blank(query_params) -> dict:
    # The storefront sends empty strings for cleared filters.
    return {k: v for k, v in query_params.items() if v.strip() != ""}


@extend_schema(
    tags=["Catalog"],
    summary="List products with filters, sorting and pagination",
    parameters=[ProductListQuerySerializer],
    responses={
        200: OpenApiResponse(description='{"products": [...], "pagination": {page, limit, total, totalPages}}'),
        400: OpenApiResponse(description="Malformed filter parameters"),
        500: OpenApiResponse(description="Failed to fetch products"),
    },
)
@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def product_list(request):
    ser = ProductListQuerySerializer(data=_non_blank(request.query_params))
    ser.is_valid(raise_exception=True)
    criteria = ProductCriteria(**ser.validated_data)

    try:
        result = search_products(criteria)
        products = ProductListSerializer(result.products, many=True).data
    except DatabaseError:
        logger.exception("Error fetching products")
        return Response({"error": "Failed to fetch products"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({"products": products, "pagination": result.pagination()})


@extend_schema(
    tags=["Catalog"],
    summary="Product detail with images, recent reviews and related products",
    responses={200: ProductDetailSerializer, 404: OpenApiResponse(description="Product not found")},
)
@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def product_detail(request, product_id: int):
    product = CatalogService.product_detail(product_id)
    return Response({"product": ProductDetailSerializer(product).data})


@extend_schema(tags=["Catalog"], summary="Product images", responses={200: ProductImageSerializer(many=True)})
@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def product_images(request, product_id: int):
    product = get_object_or_404(Product, pk=product_id)
    images = ProductImage.objects.filter(product=product).order_by("sort_order", "id")
    return Response({"success": True, "images": ProductImageSerializer(images, many=True).data})


@extend_schema(
    tags=["Catalog"],
    summary="Active categories as a tree and as a flat list",
    responses={200: OpenApiResponse(description='{"categories": [...], "flat_categories": [...]}')},
)
@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def category_list(request):
    roots, flat = CatalogService.category_tree()
    return Response({"categories": roots, "flat_categories": flat})


@extend_schema_view(
    list=extend_schema(tags=["Catalog"], summary="List active brands"),
    retrieve=extend_schema(tags=["Catalog"], summary="Get brand by slug"),
)
class BrandViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = BrandSerializer
    permission_classes = [permissions.AllowAny]
    filterset_class = BrandFilter
    lookup_field = "slug"

    def get_queryset(self):
        return Brand.objects.filter(is_active=True).order_by("name")


@extend_schema(
    methods=["GET"],
    tags=["Reviews"],
    summary="Approved reviews of a product with rating stats",
    parameters=[ReviewListQuerySerializer],
)
@extend_schema(
    methods=["POST"],
    tags=["Reviews"],
    summary="Review a product (one review per user)",
    request=CreateReviewRequestSerializer,
    responses={201: ReviewSerializer, 400: OpenApiResponse(description="Already reviewed / invalid")},
)
@api_view(["GET", "POST"])
@permission_classes([permissions.IsAuthenticatedOrReadOnly])
def product_reviews(request, product_id: int):
    if request.method == "POST":
        ser = CreateReviewRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            review = ReviewService.create_review(request.user, product_id=product_id, **ser.validated_data)
        except ValueError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)

    query = ReviewListQuerySerializer(data=_non_blank(request.query_params))
    query.is_valid(raise_exception=True)
    limit = query.validated_data["limit"]
    offset = query.validated_data["offset"]

    reviews = list(ReviewService.approved_for_product(product_id, query.validated_data["sort"])[offset:offset + limit])
    return Response({
        "reviews": ReviewSerializer(reviews, many=True).data,
        "stats": ReviewService.stats(product_id),
        "pagination": {"limit": limit, "offset": offset, "hasMore": len(reviews) == limit},
    })


@extend_schema(
    methods=["PATCH"],
    tags=["Reviews"],
    summary="Edit own review",
    request=UpdateReviewRequestSerializer,
    responses={200: ReviewSerializer, 404: OpenApiResponse(description="Review not found or not authorized")},
)
@extend_schema(
    methods=["DELETE"],
    tags=["Reviews"],
    summary="Delete own review (admins may delete any)",
    responses={204: None, 403: OpenApiResponse(description="Not authorized")},
)
@api_view(["PATCH", "DELETE"])
@permission_classes([permissions.IsAuthenticated])
def review_detail(request, review_id: int):
    if request.method == "DELETE":
        ReviewService.delete_review(request.user, review_id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    ser = UpdateReviewRequestSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    review = ReviewService.update_review(request.user, review_id, **ser.validated_data)
    return Response(ReviewSerializer(review).data)
