from decimal import Decimal

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from catalog.models import Product, Review
from wishlist.models import WishlistItem

User = get_user_model()


class WishlistApiTest(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(username="w@example.com", email="w@example.com", password="secret123")
        self.client.force_authenticate(self.user)
        self.url = reverse("wishlist:detail")
        self.product = Product.objects.create(name="Serum", slug="serum", price=Decimal("250.00"), stock_quantity=4)

    def post(self, action, product_id=None):
        return self.client.post(
            self.url, {"action": action, "product_id": product_id or self.product.id}, format="json"
        )

    def test_add_then_duplicate_conflicts(self):
        r = self.post("add")
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data["action"], "added")
        r = self.post("add")
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)

    def test_toggle(self):
        self.assertTrue(self.post("toggle").data["inWishlist"])
        self.assertFalse(self.post("toggle").data["inWishlist"])
        self.assertFalse(WishlistItem.objects.exists())

    def test_remove(self):
        self.post("add")
        r = self.post("remove")
        self.assertEqual(r.data["action"], "removed")
        self.assertFalse(WishlistItem.objects.exists())

    def test_unknown_action_and_product(self):
        self.assertEqual(self.post("star").status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.post("add", 424242).status_code, status.HTTP_404_NOT_FOUND)

    def test_list_with_rating(self):
        Review.objects.create(product=self.product, user=self.user, rating=4)
        self.post("add")
        r = self.client.get(self.url)
        self.assertEqual(r.data["total"], 1)
        item = r.data["items"][0]
        self.assertEqual(item["product_name"], "Serum")
        self.assertEqual(item["avg_rating"], 4.0)
        self.assertEqual(item["review_count"], 1)

    def test_inactive_products_hidden_and_clear(self):
        self.post("add")
        self.product.is_active = False
        self.product.save()
        self.assertEqual(self.client.get(self.url).data["total"], 0)

        r = self.client.delete(self.url)
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertFalse(WishlistItem.objects.exists())
