from django.core.exceptions import PermissionDenied
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Q
from django.shortcuts import get_object_or_404

from catalog.models import Product, Review
from orders.models import Order, OrderItem

REVIEW_ORDERINGS = {
    "newest": ("-created_at",),
    "oldest": ("created_at",),
    "rating_high": ("-rating", "-created_at"),
    "rating_low": ("rating", "-created_at"),
}


class ReviewService:

    @staticmethod
    def approved_for_product(product_id: int, sort: str = "newest"):
        ordering = REVIEW_ORDERINGS.get(sort, REVIEW_ORDERINGS["newest"])
        return (
            Review.objects
            .filter(product_id=product_id, is_approved=True)
            .select_related("user")
            .order_by(*ordering, "-id")
        )

    @staticmethod
    def stats(product_id: int) -> dict:
        """Totals over approved reviews: count, average and per-star breakdown."""
        agg = Review.objects.filter(product_id=product_id, is_approved=True).aggregate(
            total_reviews=Count("id"),
            average_rating=Avg("rating"),
            **{f"rating_{n}": Count("id", filter=Q(rating=n)) for n in range(1, 6)},
        )
        agg["average_rating"] = round(float(agg["average_rating"] or 0), 1)
        return agg

    @staticmethod
    def has_purchased(user, product_id: int) -> bool:
        return OrderItem.objects.filter(
            order__user=user,
            order__status=Order.STATUS_DELIVERED,
            product_id=product_id,
        ).exists()

    @staticmethod
    @transaction.atomic
    def create_review(user, *, product_id: int, rating: int, title: str = "", comment: str = "") -> Review:
        product = get_object_or_404(Product, pk=product_id, is_active=True)

        verified = ReviewService.has_purchased(user, product.id)
        try:
            with transaction.atomic():
                return Review.objects.create(
                    user=user,
                    product=product,
                    rating=rating,
                    title=title,
                    comment=comment,
                    is_verified_purchase=verified,
                    is_approved=True,
                )
        except IntegrityError:
            raise ValueError("You have already reviewed this product")

    @staticmethod
    def update_review(user, review_id: int, **changes) -> Review:
        review = get_object_or_404(Review, pk=review_id, user=user)
        for attr, value in changes.items():
            setattr(review, attr, value)
        review.save(update_fields=[*changes.keys(), "updated_at"])
        return review

    @staticmethod
    def delete_review(user, review_id: int) -> None:
        review = get_object_or_404(Review, pk=review_id)
        if review.user_id != user.id and not getattr(user, "is_admin", False):
            raise PermissionDenied("Not authorized")
        review.delete()
