import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.shortcuts import get_object_or_404
from cart.models import CartItem
from cart.services.pricing import totals_for
from catalog.models import Product

logger = logging.getLogger(__name__)


class CartService:
    """
    Cart business rules. Views only call these; quantity changes run inside
    a transaction with the product and cart rows locked.
    """

    @staticmethod
    def items_for(user):
        return (
            CartItem.objects
            .filter(user=user)
            .select_related("product", "product__brand")
            .prefetch_related("product__images")
            .order_by("-created_at", "-id")
        )

    @staticmethod
    def summary(items) -> dict:
        items = list(items)
        subtotal = sum((i.total_price for i in items), Decimal("0.00"))
        totals = totals_for(subtotal)
        return {
            "subtotal": totals["subtotal"],
            "itemCount": sum(i.quantity for i in items),
            "shipping": totals["shipping"],
            "tax": totals["tax"],
            "total": totals["total"],
        }

    @staticmethod
    @transaction.atomic
    def add_to_cart(user, product_id: int, quantity: int = 1) -> CartItem:
        if quantity < 1:
            raise ValueError("quantity must be greater than 0")

        product = get_object_or_404(
            Product.objects.select_for_update(),
            pk=product_id,
            is_active=True,
        )

        item = (
            CartItem.objects
            .select_for_update()
            .filter(user=user, product=product)
            .first()
        )
        new_quantity = quantity + (item.quantity if item else 0)

        if product.stock_quantity < new_quantity:
            logger.info("Cart add rejected: product=%s wanted=%s stock=%s", product.pk, new_quantity, product.stock_quantity)
            raise ValueError("Insufficient stock" if item is None else "Insufficient stock for requested quantity")

        if item:
            CartItem.objects.filter(pk=item.pk).update(quantity=F("quantity") + quantity)
            item.refresh_from_db()
            return item

        return CartItem.objects.create(user=user, product=product, quantity=quantity)

    @staticmethod
    @transaction.atomic
    def change_quantity(user, product_id: int, quantity: int):
        """Set an item's quantity. Zero removes the item."""
        item = get_object_or_404(
            CartItem.objects.select_for_update().select_related("product"),
            user=user,
            product_id=product_id,
        )

        if quantity < 1:
            item.delete()
            return None

        if quantity > item.product.stock_quantity:
            raise ValueError("Insufficient stock")

        item.quantity = quantity
        item.save(update_fields=["quantity", "updated_at"])
        return item

    @staticmethod
    @transaction.atomic
    def remove_from_cart(user, product_id: int) -> None:
        deleted, _ = CartItem.objects.filter(user=user, product_id=product_id).delete()
        if not deleted:
            get_object_or_404(CartItem, user=user, product_id=product_id)

    @staticmethod
    def clear_cart(user) -> int:
        deleted, _ = CartItem.objects.filter(user=user).delete()
        return deleted
