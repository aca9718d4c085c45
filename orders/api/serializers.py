# orders/api/serializers.py
from rest_framework import serializers
from orders.models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    product_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "unit_price",
            "quantity",
            "total_price",
        ]


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "payment_status",
            "payment_method",
            "payment_reference",
            "subtotal",
            "tax_amount",
            "shipping_amount",
            "discount_amount",
            "total_amount",
            "shipping_address",
            "billing_address",
            "notes",
            "paid_at",
            "cancelled_at",
            "created_at",
            "updated_at",
            "items",
        ]


class OrderLineRequestSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class CreateOrderRequestSerializer(serializers.Serializer):
    shipping_address = serializers.JSONField()
    billing_address = serializers.JSONField()
    payment_method = serializers.CharField(max_length=30)
    payment_reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = OrderLineRequestSerializer(many=True, allow_empty=False)

    def validate_shipping_address(self, value):
        if not value:
            raise serializers.ValidationError("Shipping address is required.")
        return value

    def validate_billing_address(self, value):
        if not value:
            raise serializers.ValidationError("Billing address is required.")
        return value


class UpdateStatusRequestSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)


class GuestCustomerSerializer(serializers.Serializer):
    # Field rules are checked by the guest checkout service so that every
    # problem is reported together.
    first_name = serializers.CharField(required=False, allow_blank=True, default="")
    last_name = serializers.CharField(required=False, allow_blank=True, default="")
    email = serializers.CharField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(required=False, allow_blank=True, default="")
    address_line_1 = serializers.CharField(required=False, allow_blank=True, default="")
    address_line_2 = serializers.CharField(required=False, allow_blank=True, allow_null=True, default="")
    city = serializers.CharField(required=False, allow_blank=True, default="")
    state = serializers.CharField(required=False, allow_blank=True, default="")
    postal_code = serializers.CharField(required=False, allow_blank=True, default="")
    country = serializers.CharField(required=False, allow_blank=True, default="India")


class GuestCheckoutRequestSerializer(serializers.Serializer):
    customer = GuestCustomerSerializer()
    items = OrderLineRequestSerializer(many=True, allow_empty=False)
