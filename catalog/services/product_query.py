"""Storefront product listing: optional filters, aggregate rating, sorting and pagination.

Every filter is collected once into a :class:`ProductQueryBuilder` as bound ORM
predicates, split into row predicates (WHERE) and aggregate predicates (HAVING).
Both the page query and the count query are derived from the same grouped
queryset, so the reported total always matches the filtered set.
"""
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from django.db.models import Avg, Case, Count, F, FloatField, IntegerField, Q, QuerySet, Value, When
from django.db.models.functions import Coalesce

from catalog.models import Product

SORT_NEWEST = "newest"
SORT_PRICE_LOW = "price-low"
SORT_PRICE_HIGH = "price-high"
SORT_RATING = "rating"
SORT_NAME_ASC = "name-asc"
SORT_NAME_DESC = "name-desc"
SORT_POPULARITY = "popularity"
SORT_RELEVANCE = "relevance"
SORT_BEST_MATCH = "best-match"

SORT_CHOICES = (
    SORT_NEWEST,
    SORT_PRICE_LOW,
    SORT_PRICE_HIGH,
    SORT_RATING,
    SORT_NAME_ASC,
    SORT_NAME_DESC,
    SORT_POPULARITY,
    SORT_RELEVANCE,
    SORT_BEST_MATCH,
)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 12

UNKNOWN_BRAND = "Unknown"

# Only approved reviews contribute to rating and review count.
APPROVED_REVIEWS = Q(reviews__is_approved=True)

_STATIC_ORDERINGS = {
    SORT_NEWEST: ("-created_at", "-id"),
    SORT_PRICE_LOW: ("price", "id"),
    SORT_PRICE_HIGH: ("-price", "-id"),
    SORT_RATING: ("-avg_rating", "-created_at", "-id"),
    SORT_NAME_ASC: ("name", "id"),
    SORT_NAME_DESC: ("-name", "-id"),
    SORT_POPULARITY: ("-review_count", "-avg_rating", "-id"),
}


@dataclass
class ProductCriteria:
    category: Optional[str] = None
    brand: Optional[str] = None
    search: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    rating: Optional[float] = None
    in_stock: bool = False
    on_sale: bool = False
    trending: Optional[bool] = None
    featured: Optional[bool] = None
    sort: str = SORT_NEWEST
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class ProductPage:
    products: List[Product]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit > 0 else 0

    def pagination(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
        }


@dataclass
class ProductQueryBuilder:
    criteria: ProductCriteria
    where: List[Q] = field(default_factory=list)
    having: List[Q] = field(default_factory=list)

    def __post_init__(self):
        self._collect()

    def _collect(self) -> None:
        c = self.criteria
        self.where.append(Q(is_active=True))

        if c.category:
            self.where.append(Q(category__slug=c.category))

        if c.brand:
            self.where.append(Q(brand__name=c.brand))

        if c.search:
            self.where.append(Q(name__icontains=c.search) | Q(description__icontains=c.search))

        if c.min_price is not None:
            self.where.append(Q(price__gte=c.min_price))

        if c.max_price is not None:
            self.where.append(Q(price__lte=c.max_price))

        if c.in_stock:
            self.where.append(Q(stock_quantity__gt=0))

        if c.on_sale:
            self.where.append(Q(discounted_price__isnull=False, discounted_price__lt=F("price")))

        if c.trending is not None:
            self.where.append(Q(is_trending=c.trending))

        if c.featured is not None:
            self.where.append(Q(is_must_have=c.featured))

        if c.rating is not None:
            self.having.append(Q(avg_rating__gte=float(c.rating)))

    def grouped(self) -> QuerySet:
        """Filtered products grouped with their review aggregates, HAVING predicates applied."""
        qs = Product.objects.filter(*self.where).annotate(
            avg_rating=Coalesce(Avg("reviews__rating", filter=APPROVED_REVIEWS), Value(0.0), output_field=FloatField()),
            review_count=Count("reviews", filter=APPROVED_REVIEWS),
        )
        if self.having:
            qs = qs.filter(*self.having)
        return qs

    def count(self) -> int:
        # Counts groups after HAVING (Django wraps the grouped query in a subquery).
        return self.grouped().count()

    def rows(self) -> QuerySet:
        qs = (
            self.grouped()
            .annotate(
                category_name=F("category__name"),
                category_slug=F("category__slug"),
                brand_name=Coalesce(F("brand__name"), Value(UNKNOWN_BRAND)),
            )
            .prefetch_related("images")
        )
        return self._order(qs)

    def _order(self, qs: QuerySet) -> QuerySet:
        sort = self.criteria.sort

        if sort in (SORT_RELEVANCE, SORT_BEST_MATCH):
            search = self.criteria.search
            if not search:
                return qs.order_by("-is_trending", "-is_must_have", "-avg_rating", "-created_at", "-id")
            match_rank = Case(
                When(name__icontains=search, then=Value(0)),
                default=Value(1),
                output_field=IntegerField(),
            )
            return qs.alias(match_rank=match_rank).order_by("match_rank", "-avg_rating", "-created_at", "-id")

        return qs.order_by(*_STATIC_ORDERINGS.get(sort, _STATIC_ORDERINGS[SORT_NEWEST]))

    def page(self) -> ProductPage:
        c = self.criteria
        total = self.count()
        products = list(self.rows()[c.offset:c.offset + c.limit])
        return ProductPage(products=products, page=c.page, limit=c.limit, total=total)


def search_products(criteria: ProductCriteria) -> ProductPage:
    return ProductQueryBuilder(criteria).page()
