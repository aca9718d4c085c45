import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema, extend_schema_view
from rest_framework import parsers, status, viewsets
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.response import Response

from backoffice.api.filters import InventoryFilter
from backoffice.api.serializers import (
    AdminProfileSerializer,
    AdminProfileUpdateSerializer,
    ChangePasswordRequestSerializer,
    CleanupRequestSerializer,
    ImageUploadRequestSerializer,
    InventoryProductSerializer,
    InventoryWriteSerializer,
    SalesQuerySerializer,
)
from backoffice.services.analytics_service import DashboardService, SalesAnalyticsService
from backoffice.services.image_service import ImageCleanupService, ImageUploadService
from backoffice.services.inventory_service import DuplicateProduct, InventoryService
from backoffice.services.profile_service import AdminProfileService
from catalog.models import Product
from users.permissions import IsShopAdmin

logger = logging.getLogger(__name__)


@extend_schema(
    tags=["Admin"],
    summary="Dashboard: totals, recent orders, low stock and top sellers",
    responses={200: OpenApiResponse(description='{"success": true, "data": {...}}')},
)
@api_view(["GET"])
@permission_classes([IsShopAdmin])
def dashboard(request):
    return Response({"success": True, "data": DashboardService.overview()})


@extend_schema(
    tags=["Admin"],
    summary="Sales analytics for a date window",
    parameters=[SalesQuerySerializer],
    responses={200: OpenApiResponse(description='{"success": true, "data": {...}}')},
)
@api_view(["GET"])
@permission_classes([IsShopAdmin])
def sales(request):
    ser = SalesQuerySerializer(data=request.query_params)
    ser.is_valid(raise_exception=True)
    return Response({"success": True, "data": SalesAnalyticsService.report(ser.validated_data["dateFilter"])})


@extend_schema_view(
    list=extend_schema(tags=["Admin"], summary="Inventory (search in name/description, filter by category name)"),
    retrieve=extend_schema(tags=["Admin"], summary="Inventory product"),
    create=extend_schema(
        tags=["Admin"],
        summary="Add product",
        request=InventoryWriteSerializer,
        responses={
            201: OpenApiResponse(description='{"success", "message", "productId"}'),
            400: OpenApiResponse(description="Invalid category / bad request"),
            409: OpenApiResponse(description="Product already exists"),
        },
    ),
    update=extend_schema(
        tags=["Admin"],
        summary="Update product (images replaced when image_urls is given)",
        request=InventoryWriteSerializer,
        responses={
            200: OpenApiResponse(description='{"success", "message"}'),
            400: OpenApiResponse(description="Invalid category / bad request"),
            404: OpenApiResponse(description="Not found"),
            409: OpenApiResponse(description="Product already exists"),
        },
    ),
    destroy=extend_schema(tags=["Admin"], summary="Delete product"),
)
class InventoryViewSet(viewsets.ViewSet):
    permission_classes = [IsShopAdmin]

    def get_queryset(self):
        return (
            Product.objects
            .select_related("category", "brand")
            .prefetch_related("images")
            .order_by("-created_at", "-id")
        )

    def list(self, request):
        f = InventoryFilter(request.query_params, queryset=self.get_queryset())
        if not f.is_valid():
            return Response(f.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response({"success": True, "products": InventoryProductSerializer(f.qs, many=True).data})

    def retrieve(self, request, pk=None):
        product = self.get_queryset().filter(pk=pk).first()
        if product is None:
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response({"success": True, "product": InventoryProductSerializer(product).data})

    def create(self, request):
        ser = InventoryWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            product = InventoryService.create_product(ser.validated_data)
        except DuplicateProduct as e:
            return Response({"error": "Product already exists", "message": str(e)}, status=status.HTTP_409_CONFLICT)
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(
            {"success": True, "message": "Product added successfully", "productId": product.id},
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, pk=None):
        ser = InventoryWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            InventoryService.update_product(int(pk), ser.validated_data)
        except DuplicateProduct as e:
            return Response({"error": "Product already exists", "message": str(e)}, status=status.HTTP_409_CONFLICT)
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({"success": True, "message": "Product updated successfully"})

    def destroy(self, request, pk=None):
        InventoryService.delete_product(int(pk))
        return Response({"success": True, "message": "Product deleted successfully"})


@extend_schema(
    tags=["Admin"],
    summary="Upload product images (JPEG/PNG/WebP, multipart field 'images')",
    request={"multipart/form-data": ImageUploadRequestSerializer},
    responses={
        201: OpenApiResponse(description='{"success", "images": [{url, filename, originalName, size}], "count"}'),
        400: OpenApiResponse(description="Rejected file"),
    },
)
@api_view(["POST"])
@permission_classes([IsShopAdmin])
@parser_classes([parsers.MultiPartParser, parsers.FormParser])
def upload_images(request):
    files = request.FILES.getlist("images")
    try:
        images = ImageUploadService.store(files)
    except ValueError as e:
        return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(
        {
            "success": True,
            "images": images,
            "count": len(images),
            "message": f"{len(images)} image(s) uploaded successfully",
        },
        status=status.HTTP_201_CREATED,
    )


@extend_schema(
    methods=["GET"],
    tags=["Admin"],
    summary="Find stored product images nothing refers to, and references to missing files",
)
@extend_schema(
    methods=["POST"],
    tags=["Admin"],
    summary="Delete unused product images (mode=dry-run only reports)",
    request=CleanupRequestSerializer,
)
@api_view(["GET", "POST"])
@permission_classes([IsShopAdmin])
def cleanup_images(request):
    if request.method == "GET":
        return Response({"success": True, "analysis": ImageCleanupService.report()})

    ser = CleanupRequestSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    execute = ser.validated_data["mode"] == "execute"
    results = ImageCleanupService.cleanup(execute=execute, only=ser.validated_data["files"])

    if execute:
        logger.info("Image cleanup by user %s removed %s file(s)", request.user.pk, len(results["deletedFiles"]))
        message = f"Successfully cleaned up {len(results['deletedFiles'])} unused images"
    else:
        message = f"Dry run: Would delete {len(results['deletedFiles'])} unused images"
    return Response({"success": True, "message": message, "results": results})


@extend_schema(
    methods=["GET"],
    tags=["Admin"],
    summary="Signed-in admin's profile",
    responses={200: OpenApiResponse(description='{"success": true, "data": {...}}')},
)
@extend_schema(
    methods=["PUT"],
    tags=["Admin"],
    summary="Update name, mobile, date of birth and gender",
    request=AdminProfileUpdateSerializer,
    responses={
        200: OpenApiResponse(description='{"success", "message", "data"}'),
        400: OpenApiResponse(description="Mobile number already in use / bad request"),
    },
)
@api_view(["GET", "PUT"])
@permission_classes([IsShopAdmin])
def profile(request):
    if request.method == "GET":
        return Response({"success": True, "data": AdminProfileSerializer(request.user).data})

    ser = AdminProfileUpdateSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    try:
        user = AdminProfileService.update(request.user, ser.validated_data)
    except ValueError as e:
        return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(
        {"success": True, "message": "Profile updated successfully", "data": AdminProfileSerializer(user).data}
    )


@extend_schema(
    tags=["Admin"],
    summary="Change the signed-in admin's password",
    request=ChangePasswordRequestSerializer,
    responses={
        200: OpenApiResponse(description='{"success": true, "message": "Password changed successfully"}'),
        400: OpenApiResponse(description="Mismatch, too short or wrong current password"),
    },
)
@api_view(["POST"])
@permission_classes([IsShopAdmin])
def change_password(request):
    ser = ChangePasswordRequestSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    try:
        AdminProfileService.change_password(request.user, **ser.validated_data)
    except ValueError as e:
        return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({"success": True, "message": "Password changed successfully"})
