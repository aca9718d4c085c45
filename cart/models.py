from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from catalog.models import Product


class CartItem(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="cart_items",
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="cart_items",
    )
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "product"],
                name="unique_cart_user_product",
            )
        ]

    def __str__(self):
        return f"{self.product} x {self.quantity}"

    @property
    def unit_price(self) -> Decimal:
        return self.product.effective_price

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity
