from rest_framework import serializers

from catalog.models import Brand, Category, Product, ProductImage, Review
from catalog.services.product_query import DEFAULT_LIMIT, DEFAULT_PAGE, SORT_CHOICES, SORT_NEWEST


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ["id", "name", "slug", "description", "parent", "is_active", "sort_order"]


class BrandSerializer(serializers.ModelSerializer):
    class Meta:
        model = Brand
        fields = ["id", "name", "slug", "description", "is_active", "is_featured"]


class ProductImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductImage
        fields = ["id", "image_url", "alt_text", "is_primary", "sort_order"]


def primary_image_url(product) -> str | None:
    images = list(product.images.all())
    img = next((i for i in images if i.is_primary), None) or (images[0] if images else None)
    return img.image_url if img else None


class ProductListSerializer(serializers.ModelSerializer):
    """Row of the storefront listing. Expects the annotations added by ProductQueryBuilder."""

    category_name = serializers.CharField(read_only=True, allow_null=True)
    category_slug = serializers.CharField(read_only=True, allow_null=True)
    brand_name = serializers.CharField(read_only=True)
    avg_rating = serializers.FloatField(read_only=True)
    review_count = serializers.IntegerField(read_only=True)
    main_image = serializers.SerializerMethodField(read_only=True)
    is_on_sale = serializers.BooleanField(read_only=True)

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
            "is_trending",
            "is_must_have",
            "is_new_arrival",
            "is_on_sale",
            "category_id",
            "category_name",
            "category_slug",
            "brand_id",
            "brand_name",
            "avg_rating",
            "review_count",
            "main_image",
            "created_at",
            "updated_at",
        ]

    def get_main_image(self, obj) -> str | None:
        return primary_image_url(obj)


class ReviewSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source="user.full_name", read_only=True)

    class Meta:
        model = Review
        fields = [
            "id",
            "product",
            "user",
            "user_name",
            "rating",
            "title",
            "comment",
            "is_verified_purchase",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RelatedProductSerializer(serializers.ModelSerializer):
    avg_rating = serializers.FloatField(read_only=True)
    main_image = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = Product
        fields = ["id", "name", "slug", "price", "discounted_price", "avg_rating", "main_image"]

    def get_main_image(self, obj) -> str | None:
        return primary_image_url(obj)


class ProductDetailSerializer(ProductListSerializer):
    images = ProductImageSerializer(many=True, read_only=True)
    reviews = ReviewSerializer(source="recent_reviews", many=True, read_only=True)
    related_products = RelatedProductSerializer(many=True, read_only=True)

    class Meta(ProductListSerializer.Meta):
        fields = ProductListSerializer.Meta.fields + ["images", "reviews", "related_products"]


class ProductListQuerySerializer(serializers.Serializer):
    """Listing query string. Names follow the storefront's camelCase parameters."""

    category = serializers.CharField(required=False, max_length=100)
    brand = serializers.CharField(required=False, max_length=100)
    search = serializers.CharField(required=False, max_length=255)
    minPrice = serializers.DecimalField(source="min_price", required=False, max_digits=12, decimal_places=2, min_value=0)
    maxPrice = serializers.DecimalField(source="max_price", required=False, max_digits=12, decimal_places=2, min_value=0)
    rating = serializers.FloatField(required=False, min_value=0, max_value=5)
    inStock = serializers.BooleanField(source="in_stock", required=False, default=False)
    onSale = serializers.BooleanField(source="on_sale", required=False, default=False)
    trending = serializers.BooleanField(required=False, allow_null=True, default=None)
    featured = serializers.BooleanField(required=False, allow_null=True, default=None)
    sort = serializers.ChoiceField(choices=SORT_CHOICES, required=False, default=SORT_NEWEST)
    page = serializers.IntegerField(required=False, default=DEFAULT_PAGE, min_value=1)
    limit = serializers.IntegerField(required=False, default=DEFAULT_LIMIT, min_value=1, max_value=100)


class ReviewListQuerySerializer(serializers.Serializer):
    sort = serializers.ChoiceField(choices=["newest", "oldest", "rating_high", "rating_low"], required=False, default="newest")
    limit = serializers.IntegerField(required=False, default=10, min_value=1, max_value=100)
    offset = serializers.IntegerField(required=False, default=0, min_value=0)


class CreateReviewRequestSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    title = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class UpdateReviewRequestSerializer(serializers.Serializer):
    rating = serializers.IntegerField(required=False, min_value=1, max_value=5)
    title = serializers.CharField(required=False, allow_blank=True, max_length=255)
    comment = serializers.CharField(required=False, allow_blank=True)
