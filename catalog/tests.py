"""
Catalog tests: product listing query builder, listing endpoint, detail,
categories, brands and reviews.
"""
import math
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from catalog.models import Brand, Category, Product, ProductImage, Review
from catalog.services.product_query import ProductCriteria, ProductQueryBuilder, search_products
from catalog.services.review_service import ReviewService
from orders.models import Order, OrderItem

User = get_user_model()


def make_user(email="buyer@example.com", **extra):
    return User.objects.create_user(username=email, email=email, password="secret123", **extra)


def make_product(name, price, **extra):
    return Product.objects.create(
        name=name,
        slug=Product.make_slug(name),
        price=Decimal(str(price)),
        stock_quantity=extra.pop("stock_quantity", 10),
        **extra,
    )


def review(product, user, rating, approved=True):
    return Review.objects.create(product=product, user=user, rating=rating, is_approved=approved)


# ============================================================================
# QUERY BUILDER
# ============================================================================

class ProductQueryBuilderTest(TestCase):

    def setUp(self):
        self.skincare = Category.objects.create(name="Skincare", slug="skincare")
        self.lips = Category.objects.create(name="Lips", slug="lips")
        self.glow = Brand.objects.create(name="Glow", slug="glow")
        self.velvet = Brand.objects.create(name="Velvet", slug="velvet")

        self.serum = make_product(
            "Vitamin C Serum", 450, category=self.skincare, brand=self.glow,
            discounted_price=Decimal("399.00"), is_trending=True,
        )
        self.cream = make_product("Night Cream", 300, category=self.skincare, brand=self.glow, stock_quantity=0)
        self.lipstick = make_product(
            "Matte Lipstick", 150, category=self.lips, brand=self.velvet, is_must_have=True,
            discounted_price=Decimal("150.00"),
        )
        self.balm = make_product("Lip Balm", 90, category=self.lips)
        self.hidden = make_product("Retired Toner", 120, category=self.skincare, is_active=False)

        self.u1 = make_user("a@example.com")
        self.u2 = make_user("b@example.com")
        review(self.serum, self.u1, 5)
        review(self.serum, self.u2, 4)
        review(self.lipstick, self.u1, 3)
        # unapproved reviews never count
        review(self.balm, self.u1, 5, approved=False)
        review(self.cream, self.u2, 1, approved=False)

    def ids(self, **criteria):
        return [p.id for p in search_products(ProductCriteria(**criteria)).products]

    def test_inactive_products_never_listed(self):
        self.assertNotIn(self.hidden.id, self.ids(limit=100))

    def test_count_matches_unpaginated_rows(self):
        combos = [
            {},
            {"category": "skincare"},
            {"brand": "Glow", "in_stock": True},
            {"on_sale": True},
            {"rating": 3.5},
            {"min_price": Decimal("100"), "max_price": Decimal("400")},
            {"search": "lip", "trending": False},
            {"featured": True},
        ]
        for c in combos:
            builder = ProductQueryBuilder(ProductCriteria(**c))
            with self.subTest(criteria=c):
                self.assertEqual(builder.count(), len(list(builder.rows())))

    def test_page_length_and_total_pages(self):
        total = 4
        for limit in (1, 2, 3, 4, 5):
            for page in (1, 2, 3, 5):
                result = search_products(ProductCriteria(page=page, limit=limit))
                with self.subTest(page=page, limit=limit):
                    self.assertEqual(result.total, total)
                    self.assertEqual(len(result.products), min(limit, max(0, total - (page - 1) * limit)))
                    self.assertEqual(result.total_pages, math.ceil(total / limit))

    def test_price_sorts_are_monotonic(self):
        low = [p.price for p in search_products(ProductCriteria(sort="price-low", limit=100)).products]
        high = [p.price for p in search_products(ProductCriteria(sort="price-high", limit=100)).products]
        self.assertEqual(low, sorted(low))
        self.assertEqual(high, sorted(high, reverse=True))

    def test_on_sale_requires_discount_below_price(self):
        self.assertEqual(self.ids(on_sale=True), [self.serum.id])

    def test_in_stock_excludes_zero_stock(self):
        ids = self.ids(in_stock=True, limit=100)
        self.assertNotIn(self.cream.id, ids)
        self.assertEqual(len(ids), 3)

    def test_rating_filter_uses_approved_reviews_only(self):
        # balm has only an unapproved 5 star review, so its rating is 0
        self.assertEqual(self.ids(rating=4), [self.serum.id])
        self.assertCountEqual(self.ids(rating=3), [self.serum.id, self.lipstick.id])

    def test_rating_annotations(self):
        rows = {p.id: p for p in search_products(ProductCriteria(limit=100)).products}
        self.assertEqual(rows[self.serum.id].avg_rating, 4.5)
        self.assertEqual(rows[self.serum.id].review_count, 2)
        self.assertEqual(rows[self.balm.id].avg_rating, 0.0)
        self.assertEqual(rows[self.balm.id].review_count, 0)

    def test_missing_brand_reported_as_unknown(self):
        rows = {p.id: p for p in search_products(ProductCriteria(limit=100)).products}
        self.assertEqual(rows[self.balm.id].brand_name, "Unknown")
        self.assertEqual(rows[self.serum.id].brand_name, "Glow")
        self.assertEqual(rows[self.serum.id].category_slug, "skincare")

    def test_search_is_case_insensitive_on_name_and_description(self):
        self.assertEqual(self.ids(search="serum"), [self.serum.id])
        self.balm.description = "A soothing SERUM-like balm"
        self.balm.save()
        self.assertCountEqual(self.ids(search="Serum"), [self.serum.id, self.balm.id])

    def test_trending_and_featured_flags(self):
        self.assertEqual(self.ids(trending=True), [self.serum.id])
        self.assertEqual(self.ids(featured=True), [self.lipstick.id])

    def test_unknown_brand_gives_empty_page(self):
        result = search_products(ProductCriteria(category="skincare", brand="NoSuchBrand"))
        self.assertEqual(result.products, [])
        self.assertEqual(result.total, 0)
        self.assertEqual(result.total_pages, 0)

    def test_relevance_puts_name_matches_first(self):
        self.cream.description = "pairs well with lipstick"
        self.cream.save()
        ids = self.ids(search="lipstick", sort="relevance", limit=100)
        self.assertEqual(ids, [self.lipstick.id, self.cream.id])

    def test_name_sorts(self):
        names = [p.name for p in search_products(ProductCriteria(sort="name-asc", limit=100)).products]
        self.assertEqual(names, sorted(names))
        names = [p.name for p in search_products(ProductCriteria(sort="name-desc", limit=100)).products]
        self.assertEqual(names, ["Vitamin C Serum", "Night Cream", "Matte Lipstick", "Lip Balm"])

    def test_newest_is_default(self):
        expected = [self.balm.id, self.lipstick.id, self.cream.id, self.serum.id]
        self.assertEqual(self.ids(limit=100), expected)
        self.assertEqual(self.ids(sort="newest", limit=100), expected)

    def test_rating_sort(self):
        # ties at 0 fall back to newest first
        self.assertEqual(
            self.ids(sort="rating", limit=100),
            [self.serum.id, self.lipstick.id, self.balm.id, self.cream.id],
        )

    def test_popularity_sort(self):
        review(self.balm, self.u2, 2)
        review(self.cream, self.u1, 1)
        # lipstick, balm and cream each have one approved review; rating breaks the tie
        self.assertEqual(
            self.ids(sort="popularity", limit=100),
            [self.serum.id, self.lipstick.id, self.balm.id, self.cream.id],
        )

    def test_relevance_without_search_term(self):
        expected = [self.serum.id, self.lipstick.id, self.balm.id, self.cream.id]
        self.assertEqual(self.ids(sort="relevance", limit=100), expected)
        self.assertEqual(self.ids(sort="best-match", limit=100), expected)


# ============================================================================
# LISTING ENDPOINT
# ============================================================================

class ProductListApiTest(APITestCase):

    def setUp(self):
        self.url = reverse("catalog-products")
        self.skincare = Category.objects.create(name="Skincare", slug="skincare")
        make_product("Basic Wash", 100, category=self.skincare)
        make_product("Vitamin C Serum", 200, category=self.skincare)
        make_product("Rich Cream", 300, category=self.skincare)

    def test_price_high_first_page(self):
        r = self.client.get(self.url, {"sort": "price-high", "limit": 2, "page": 1})
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual([Decimal(p["price"]) for p in r.data["products"]], [Decimal("300"), Decimal("200")])
        self.assertEqual(r.data["pagination"], {"page": 1, "limit": 2, "total": 3, "totalPages": 2})

    def test_search_matches_substring_with_different_case(self):
        r = self.client.get(self.url, {"search": "Serum"})
        self.assertEqual([p["name"] for p in r.data["products"]], ["Vitamin C Serum"])
        r = self.client.get(self.url, {"search": "sErUm"})
        self.assertEqual(r.data["pagination"]["total"], 1)

    def test_unknown_brand_returns_empty_list(self):
        r = self.client.get(self.url, {"category": "skincare", "brand": "NoSuchBrand"})
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data["products"], [])
        self.assertEqual(r.data["pagination"]["total"], 0)

    def test_defaults(self):
        r = self.client.get(self.url)
        self.assertEqual(r.data["pagination"]["page"], 1)
        self.assertEqual(r.data["pagination"]["limit"], 12)

    def test_blank_params_are_ignored(self):
        r = self.client.get(self.url, {"category": "", "minPrice": "", "inStock": ""})
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data["pagination"]["total"], 3)

    def test_malformed_numbers_rejected(self):
        for params in ({"page": "abc"}, {"page": 0}, {"limit": 0}, {"limit": 101}, {"minPrice": "cheap"}, {"rating": 9}):
            with self.subTest(params=params):
                r = self.client.get(self.url, params)
                self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_sort_rejected(self):
        r = self.client.get(self.url, {"sort": "random"})
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_row_shape(self):
        r = self.client.get(self.url, {"sort": "price-low", "limit": 1})
        row = r.data["products"][0]
        for key in ("category_name", "category_slug", "brand_name", "avg_rating", "review_count", "main_image"):
            self.assertIn(key, row)
        self.assertEqual(row["brand_name"], "Unknown")

    def test_database_failure_returns_fixed_message(self):
        with patch("catalog.api.views.search_products", side_effect=DatabaseError("boom")):
            r = self.client.get(self.url)
        self.assertEqual(r.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(r.data, {"error": "Failed to fetch products"})


class ProductListFilterApiTest(APITestCase):

    def setUp(self):
        self.url = reverse("catalog-products")
        self.wash = make_product("Basic Wash", 100, stock_quantity=0)
        self.serum = make_product("Vitamin C Serum", 200, discounted_price=Decimal("150.00"), is_trending=True)
        self.cream = make_product("Rich Cream", 300, is_must_have=True)
        review(self.cream, make_user(), 5)

    def names(self, params):
        r = self.client.get(self.url, {**params, "sort": "price-low"})
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        return [p["name"] for p in r.data["products"]]

    def test_in_stock(self):
        self.assertEqual(self.names({"inStock": "true"}), ["Vitamin C Serum", "Rich Cream"])
        self.assertEqual(len(self.names({"inStock": "false"})), 3)

    def test_on_sale(self):
        self.assertEqual(self.names({"onSale": "true"}), ["Vitamin C Serum"])

    def test_price_range_is_inclusive(self):
        self.assertEqual(self.names({"minPrice": "200", "maxPrice": "300"}), ["Vitamin C Serum", "Rich Cream"])
        self.assertEqual(self.names({"maxPrice": "100"}), ["Basic Wash"])

    def test_min_rating(self):
        self.assertEqual(self.names({"rating": "4"}), ["Rich Cream"])

    def test_trending(self):
        self.assertEqual(self.names({"trending": "true"}), ["Vitamin C Serum"])

    def test_featured(self):
        self.assertEqual(self.names({"featured": "true"}), ["Rich Cream"])


# ============================================================================
# DETAIL, CATEGORIES, BRANDS
# ============================================================================

class CatalogBrowseApiTest(APITestCase):

    def setUp(self):
        self.face = Category.objects.create(name="Face", slug="face", sort_order=1)
        self.serums = Category.objects.create(name="Serums", slug="serums", parent=self.face)
        Category.objects.create(name="Archived", slug="archived", is_active=False)
        self.brand = Brand.objects.create(name="Glow", slug="glow", is_featured=True)
        Brand.objects.create(name="Gone", slug="gone", is_active=False)

        self.product = make_product("Hydra Serum", 500, category=self.serums, brand=self.brand)
        self.sibling = make_product("Peptide Serum", 650, category=self.serums)
        ProductImage.objects.create(product=self.product, image_url="/media/products/b.jpg", sort_order=1)
        ProductImage.objects.create(product=self.product, image_url="/media/products/a.jpg", is_primary=True)

    def test_detail(self):
        r = self.client.get(reverse("catalog-product-detail", args=[self.product.id]))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        data = r.data["product"]
        self.assertEqual(data["main_image"], "/media/products/a.jpg")
        self.assertEqual(len(data["images"]), 2)
        self.assertEqual([p["id"] for p in data["related_products"]], [self.sibling.id])

    def test_detail_of_inactive_product_is_404(self):
        self.product.is_active = False
        self.product.save()
        r = self.client.get(reverse("catalog-product-detail", args=[self.product.id]))
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    def test_images(self):
        r = self.client.get(reverse("catalog-product-images", args=[self.product.id]))
        self.assertEqual([i["image_url"] for i in r.data["images"]], ["/media/products/a.jpg", "/media/products/b.jpg"])

    def test_category_tree(self):
        r = self.client.get(reverse("catalog-categories"))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual([c["slug"] for c in r.data["categories"]], ["face"])
        child = r.data["categories"][0]["children"][0]
        self.assertEqual(child["slug"], "serums")
        self.assertEqual(child["parent_name"], "Face")
        self.assertEqual(child["product_count"], 2)
        self.assertEqual(len(r.data["flat_categories"]), 2)

    def test_brands_only_active(self):
        r = self.client.get(reverse("catalog-brands-list"))
        self.assertEqual([b["name"] for b in r.data], ["Glow"])


# ============================================================================
# REVIEWS
# ============================================================================

class ReviewApiTest(APITestCase):

    def setUp(self):
        self.product = make_product("Hydra Serum", 500)
        self.user = make_user()
        self.other = make_user("other@example.com")
        self.url = reverse("catalog-product-reviews", args=[self.product.id])

    def test_create_and_list(self):
        self.client.force_authenticate(self.user)
        r = self.client.post(self.url, {"rating": 4, "title": "Nice", "comment": "Soft skin"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertFalse(r.data["is_verified_purchase"])

        review(self.product, self.other, 2, approved=False)
        r = self.client.get(self.url)
        self.assertEqual(len(r.data["reviews"]), 1)
        self.assertEqual(r.data["stats"]["total_reviews"], 1)
        self.assertEqual(r.data["stats"]["average_rating"], 4.0)
        self.assertEqual(r.data["stats"]["rating_4"], 1)

    def test_one_review_per_user(self):
        self.client.force_authenticate(self.user)
        self.client.post(self.url, {"rating": 4}, format="json")
        r = self.client.post(self.url, {"rating": 5}, format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_insert_is_reported_not_raised(self):
        review(self.product, self.user, 3, approved=False)
        with self.assertRaisesMessage(ValueError, "already reviewed"):
            ReviewService.create_review(self.user, product_id=self.product.id, rating=5)
        self.assertEqual(Review.objects.filter(user=self.user).count(), 1)

    def test_delivered_order_marks_verified_purchase(self):
        order = Order.objects.create(user=self.user, order_number="AYN1", payment_method="cod", status=Order.STATUS_DELIVERED)
        OrderItem.objects.create(
            order=order, product=self.product, product_name=self.product.name,
            unit_price=self.product.price, quantity=1, total_price=self.product.price,
        )
        self.client.force_authenticate(self.user)
        r = self.client.post(self.url, {"rating": 5}, format="json")
        self.assertTrue(r.data["is_verified_purchase"])

    def test_anonymous_cannot_review(self):
        r = self.client.post(self.url, {"rating": 5}, format="json")
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_rating_out_of_range(self):
        self.client.force_authenticate(self.user)
        r = self.client.post(self.url, {"rating": 6}, format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_edit_and_delete_own_review_only(self):
        mine = review(self.product, self.user, 3)
        detail = reverse("catalog-review-detail", args=[mine.id])

        self.client.force_authenticate(self.other)
        self.assertEqual(self.client.patch(detail, {"rating": 1}, format="json").status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.delete(detail).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.user)
        r = self.client.patch(detail, {"rating": 5}, format="json")
        self.assertEqual(r.data["rating"], 5)
        self.assertEqual(self.client.delete(detail).status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Review.objects.filter(pk=mine.pk).exists())
