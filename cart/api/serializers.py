from rest_framework import serializers
from cart.models import CartItem
from catalog.api.serializers import primary_image_url


class CartItemSerializer(serializers.ModelSerializer):
    product_id = serializers.IntegerField(source="product.id", read_only=True)
    name = serializers.CharField(source="product.name", read_only=True)
    slug = serializers.CharField(source="product.slug", read_only=True)
    price = serializers.DecimalField(source="product.price", max_digits=10, decimal_places=2, read_only=True)
    discounted_price = serializers.DecimalField(
        source="product.discounted_price", max_digits=10, decimal_places=2, read_only=True
    )
    stock_quantity = serializers.IntegerField(source="product.stock_quantity", read_only=True)
    brand_name = serializers.SerializerMethodField()
    image_url = serializers.SerializerMethodField()
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CartItem
        fields = [
            "id",
            "product_id",
            "name",
            "slug",
            "price",
            "discounted_price",
            "stock_quantity",
            "brand_name",
            "image_url",
            "quantity",
            "unit_price",
            "total_price",
            "created_at",
        ]

    def get_brand_name(self, obj) -> str | None:
        return obj.product.brand.name if obj.product.brand_id else None

    def get_image_url(self, obj) -> str | None:
        return primary_image_url(obj.product)


class AddToCartRequestSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class ChangeQuantityRequestSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=0)  # 0 removes the item
