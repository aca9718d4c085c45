from rest_framework import serializers

from backoffice.services.analytics_service import DATE_FILTERS, DEFAULT_DATE_FILTER
from catalog.api.serializers import ProductImageSerializer, primary_image_url
from catalog.models import Brand, Product
from users.models import User


class InventoryProductSerializer(serializers.ModelSerializer):
    category = serializers.CharField(source="category.name", read_only=True, allow_null=True)
    brand = serializers.CharField(source="brand.name", read_only=True, allow_null=True)
    primary_image = serializers.SerializerMethodField()
    images = ProductImageSerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "slug",
            "description",
            "price",
            "discounted_price",
            "stock_quantity",
            "category",
            "brand",
            "primary_image",
            "images",
            "is_trending",
            "is_must_have",
            "is_new_arrival",
            "is_active",
            "created_at",
            "updated_at",
        ]

    def get_primary_image(self, obj) -> str | None:
        return primary_image_url(obj)


class InventoryWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    description = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    discounted_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True, default=None
    )
    stock_quantity = serializers.IntegerField(min_value=0, required=False, default=0)
    category = serializers.CharField(max_length=100)
    brand_id = serializers.PrimaryKeyRelatedField(
        queryset=Brand.objects.all(), source="brand", required=False, allow_null=True
    )
    image_urls = serializers.ListField(
        child=serializers.CharField(max_length=500), required=False, default=list
    )
    primary_image_index = serializers.IntegerField(min_value=0, required=False, default=0)
    is_trending = serializers.BooleanField(required=False, default=False)
    is_must_have = serializers.BooleanField(required=False, default=False)
    is_new_arrival = serializers.BooleanField(required=False, default=False)
    is_active = serializers.BooleanField(required=False, default=True)

    def validate(self, attrs):
        urls = attrs.get("image_urls") or []
        if urls and attrs.get("primary_image_index", 0) >= len(urls):
            raise serializers.ValidationError({"primary_image_index": "Must point at one of image_urls."})
        return attrs


class SalesQuerySerializer(serializers.Serializer):
    dateFilter = serializers.ChoiceField(choices=DATE_FILTERS, required=False, default=DEFAULT_DATE_FILTER)


class ImageUploadRequestSerializer(serializers.Serializer):
    images = serializers.ListField(child=serializers.FileField(), allow_empty=False)


class CleanupRequestSerializer(serializers.Serializer):
    mode = serializers.ChoiceField(choices=["execute", "dry-run"], required=False, default="execute")
    files = serializers.ListField(child=serializers.CharField(), required=False, default=list)


class AdminProfileSerializer(serializers.ModelSerializer):
    mobile = serializers.CharField(source="phone", read_only=True)
    created_at = serializers.DateTimeField(source="date_joined", read_only=True)

    class Meta:
        model = User
        fields = [
            "id", "email", "first_name", "last_name", "mobile",
            "date_of_birth", "gender", "role", "created_at", "last_login",
        ]
        read_only_fields = fields


class AdminProfileUpdateSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    mobile = serializers.CharField(source="phone", max_length=20, required=False, allow_blank=True, allow_null=True)
    date_of_birth = serializers.DateField(required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=User.Gender.choices, required=False, allow_blank=True)


class ChangePasswordRequestSerializer(serializers.Serializer):
    current_password = serializers.CharField()
    new_password = serializers.CharField()
    confirm_password = serializers.CharField()
