from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, FloatField, Q, Value
from django.db.models.functions import Coalesce
from django.shortcuts import get_object_or_404

from catalog.models import Product
from wishlist.models import WishlistItem

ACTION_ADD = "add"
ACTION_REMOVE = "remove"
ACTION_TOGGLE = "toggle"
ACTIONS = (ACTION_ADD, ACTION_REMOVE, ACTION_TOGGLE)


class AlreadyInWishlist(ValueError):
    pass


class WishlistService:

    @staticmethod
    def items_for(user):
        rating = Q(product__reviews__is_approved=True)
        return (
            WishlistItem.objects
            .filter(user=user, product__is_active=True)
            .select_related("product", "product__brand")
            .prefetch_related("product__images")
            .annotate(
                avg_rating=Coalesce(
                    Avg("product__reviews__rating", filter=rating), Value(0.0), output_field=FloatField()
                ),
                review_count=Count("product__reviews", filter=rating),
            )
            .order_by("-created_at", "-id")
        )

    @staticmethod
    def _add(user, product) -> WishlistItem:
        try:
            with transaction.atomic():
                return WishlistItem.objects.create(user=user, product=product)
        except IntegrityError:
            raise AlreadyInWishlist("Product already in wishlist")

    @staticmethod
    @transaction.atomic
    def apply(user, *, action: str, product_id: int) -> dict:
        """Run a wishlist action. Returns the outcome for the response body."""
        product = get_object_or_404(Product, pk=product_id, is_active=True)

        if action == ACTION_ADD:
            WishlistService._add(user, product)
            return {"message": "Product added to wishlist", "action": "added", "inWishlist": True}

        if action == ACTION_REMOVE:
            WishlistItem.objects.filter(user=user, product=product).delete()
            return {"message": "Product removed from wishlist", "action": "removed", "inWishlist": False}

        if action == ACTION_TOGGLE:
            deleted, _ = WishlistItem.objects.filter(user=user, product=product).delete()
            if deleted:
                return {"message": "Product removed from wishlist", "action": "removed", "inWishlist": False}
            WishlistService._add(user, product)
            return {"message": "Product added to wishlist", "action": "added", "inWishlist": True}

        raise ValueError("Invalid action. Use add, remove, or toggle")

    @staticmethod
    def clear(user) -> None:
        WishlistItem.objects.filter(user=user).delete()
