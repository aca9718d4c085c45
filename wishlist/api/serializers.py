from rest_framework import serializers
from catalog.api.serializers import primary_image_url
from wishlist.models import WishlistItem
from wishlist.services.wishlist_service import ACTIONS


class WishlistItemSerializer(serializers.ModelSerializer):
    product_id = serializers.IntegerField(read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)
    slug = serializers.CharField(source="product.slug", read_only=True)
    price = serializers.DecimalField(source="product.price", max_digits=10, decimal_places=2, read_only=True)
    discounted_price = serializers.DecimalField(
        source="product.discounted_price", max_digits=10, decimal_places=2, read_only=True
    )
    stock_quantity = serializers.IntegerField(source="product.stock_quantity", read_only=True)
    brand_name = serializers.SerializerMethodField()
    image_url = serializers.SerializerMethodField()
    avg_rating = serializers.FloatField(read_only=True)
    review_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = WishlistItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "slug",
            "price",
            "discounted_price",
            "stock_quantity",
            "brand_name",
            "image_url",
            "avg_rating",
            "review_count",
            "created_at",
        ]

    def get_brand_name(self, obj) -> str | None:
        return obj.product.brand.name if obj.product.brand_id else None

    def get_image_url(self, obj) -> str | None:
        return primary_image_url(obj.product)


class WishlistActionRequestSerializer(serializers.Serializer):
    action = serializers.ChoiceField(
        choices=ACTIONS,
        error_messages={"invalid_choice": "Invalid action. Use add, remove, or toggle"},
    )
    product_id = serializers.IntegerField()
