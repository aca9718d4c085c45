from django.db.models import Avg, Count, F, FloatField, Q, Value
from django.db.models.functions import Coalesce
from django.shortcuts import get_object_or_404

from catalog.models import Category, Product
from catalog.services.product_query import APPROVED_REVIEWS, UNKNOWN_BRAND

RECENT_REVIEWS_LIMIT = 5
RELATED_PRODUCTS_LIMIT = 4


def with_rating(qs):
    return qs.annotate(
        avg_rating=Coalesce(Avg("reviews__rating", filter=APPROVED_REVIEWS), Value(0.0), output_field=FloatField()),
        review_count=Count("reviews", filter=APPROVED_REVIEWS),
    )


class CatalogService:

    @staticmethod
    def product_detail(product_id: int) -> Product:
        qs = with_rating(Product.objects.filter(is_active=True)).annotate(
            category_name=F("category__name"),
            category_slug=F("category__slug"),
            brand_name=Coalesce(F("brand__name"), Value(UNKNOWN_BRAND)),
        )
        product = get_object_or_404(qs.prefetch_related("images"), pk=product_id)

        product.recent_reviews = list(
            product.reviews.filter(is_approved=True)
            .select_related("user")
            .order_by("-created_at", "-id")[:RECENT_REVIEWS_LIMIT]
        )
        product.related_products = CatalogService.related_products(product)
        return product

    @staticmethod
    def related_products(product: Product):
        if product.category_id is None:
            return []
        qs = (
            Product.objects
            .filter(category_id=product.category_id, is_active=True)
            .exclude(pk=product.pk)
            .prefetch_related("images")
        )
        return list(with_rating(qs).order_by("?")[:RELATED_PRODUCTS_LIMIT])

    @staticmethod
    def category_tree() -> tuple[list[dict], list[dict]]:
        """Active categories as (roots with nested children, flat list)."""
        categories = (
            Category.objects.filter(is_active=True)
            .annotate(
                parent_name=F("parent__name"),
                product_count=Count("products", filter=Q(products__is_active=True)),
            )
            .order_by("sort_order", "name")
        )

        nodes = {}
        for c in categories:
            nodes[c.id] = {
                "id": c.id,
                "name": c.name,
                "slug": c.slug,
                "description": c.description,
                "parent_id": c.parent_id,
                "parent_name": c.parent_name,
                "sort_order": c.sort_order,
                "product_count": c.product_count,
                "children": [],
            }

        roots = []
        for node in nodes.values():
            parent = nodes.get(node["parent_id"]) if node["parent_id"] else None
            if parent is not None:
                parent["children"].append(node)
            elif node["parent_id"] is None:
                roots.append(node)

        return roots, list(nodes.values())
