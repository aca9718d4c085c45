# orders/models.py
from decimal import Decimal
from django.db import models
from django.conf import settings
from django.utils import timezone
from django.utils.crypto import get_random_string
from django.core.exceptions import ValidationError

from catalog.models import Product

ORDER_NUMBER_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


def _epoch_ms() -> int:
    return int(timezone.now().timestamp() * 1000)


def make_order_number() -> str:
    return f"AYN{_epoch_ms()}{get_random_string(3, ORDER_NUMBER_CHARS)}"


def make_guest_order_number() -> str:
    return f"ORD-{_epoch_ms()}-{get_random_string(5, ORDER_NUMBER_CHARS)}"


class Order(models.Model):
    STATUS_PENDING = "pending"
    STATUS_CONFIRMED = "confirmed"
    STATUS_PROCESSING = "processing"
    STATUS_SHIPPED = "shipped"
    STATUS_DELIVERED = "delivered"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_SHIPPED, "Shipped"),
        (STATUS_DELIVERED, "Delivered"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    # Orders in these states count as sales even before payment is recorded.
    SALE_STATUSES = (STATUS_CONFIRMED, STATUS_PROCESSING, STATUS_SHIPPED, STATUS_DELIVERED)

    PAYMENT_PENDING = "pending"
    PAYMENT_PAID = "paid"

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_PAID, "Paid"),
    ]

    PAYMENT_METHOD_WHATSAPP = "whatsapp"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="orders",
    )

    order_number = models.CharField(max_length=40, unique=True)

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True,
    )

    payment_status = models.CharField(
        max_length=20,
        choices=PAYMENT_STATUS_CHOICES,
        default=PAYMENT_PENDING,
        db_index=True,
    )
    payment_method = models.CharField(max_length=30)
    payment_reference = models.CharField(max_length=100, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    shipping_address = models.JSONField(default=dict)
    billing_address = models.JSONField(default=dict)
    notes = models.TextField(blank=True)

    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    STATUS_TRANSITIONS = {
        STATUS_PENDING: {STATUS_CONFIRMED, STATUS_CANCELLED},
        STATUS_CONFIRMED: {STATUS_PROCESSING, STATUS_SHIPPED, STATUS_CANCELLED},
        STATUS_PROCESSING: {STATUS_SHIPPED, STATUS_CANCELLED},
        STATUS_SHIPPED: {STATUS_DELIVERED},
        STATUS_DELIVERED: set(),
        STATUS_CANCELLED: set(),
    }

    class Meta:
        ordering = ["-created_at", "-id"]

    @property
    def is_paid(self) -> bool:
        return self.payment_status == self.PAYMENT_PAID

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in self.STATUS_TRANSITIONS.get(self.status, set())

    def set_status(self, new_status: str, *, save: bool = True):
        if new_status == self.status:
            return  # idempotent

        valid_statuses = {c[0] for c in self.STATUS_CHOICES}
        if new_status not in valid_statuses:
            raise ValidationError("Invalid status")

        if not self.can_transition_to(new_status):
            raise ValidationError(f"Cannot change status {self.status} → {new_status}")

        self.status = new_status

        update_fields = ["status", "updated_at"]

        if new_status == self.STATUS_CANCELLED and self.cancelled_at is None:
            self.cancelled_at = timezone.now()
            update_fields.append("cancelled_at")

        if save:
            self.save(update_fields=update_fields)

    def mark_paid(self, reference: str = ""):
        if self.is_paid:
            return
        self.payment_status = self.PAYMENT_PAID
        self.paid_at = timezone.now()
        update_fields = ["payment_status", "paid_at", "updated_at"]
        if reference:
            self.payment_reference = reference
            update_fields.append("payment_reference")
        self.save(update_fields=update_fields)

    def __str__(self):
        return f"Order {self.order_number} - {self.user}"


class OrderItem(models.Model):
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
    )

    # Kept nullable so order history survives product deletion.
    product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )

    product_name = models.CharField(max_length=255)

    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField()
    total_price = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"
