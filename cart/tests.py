from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.conf import settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from cart.models import CartItem
from cart.services.pricing import shipping_for, totals_for
from catalog.models import Brand, Product

User = get_user_model()


def make_product(name, price, stock=10, **extra):
    return Product.objects.create(
        name=name, slug=Product.make_slug(name), price=Decimal(str(price)), stock_quantity=stock, **extra
    )


class PricingTest(TestCase):

    def test_shipping_threshold(self):
        self.assertEqual(shipping_for(Decimal("298.99")), Decimal("49.00"))
        self.assertEqual(shipping_for(Decimal("299.00")), Decimal("0.00"))
        self.assertEqual(shipping_for(Decimal("0.00")), Decimal("0.00"))

    def test_tax_rate_applies(self):
        shop = {**settings.AYNBEAUTY, "TAX_RATE": Decimal("0.18")}
        with override_settings(AYNBEAUTY=shop):
            totals = totals_for(Decimal("100.00"))
        self.assertEqual(totals["tax"], Decimal("18.00"))
        self.assertEqual(totals["total"], Decimal("167.00"))


class CartApiTest(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(username="c@example.com", email="c@example.com", password="secret123")
        self.client.force_authenticate(self.user)
        self.url = reverse("cart:detail")
        brand = Brand.objects.create(name="Glow", slug="glow")
        self.serum = make_product("Serum", 200, stock=3, brand=brand, discounted_price=Decimal("150.00"))
        self.balm = make_product("Balm", 99, stock=5)

    def test_requires_auth(self):
        self.client.force_authenticate(None)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_401_UNAUTHORIZED)

    def test_add_and_summary(self):
        r = self.client.post(self.url, {"product_id": self.serum.id, "quantity": 2}, format="json")
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.client.post(self.url, {"product_id": self.balm.id}, format="json")

        r = self.client.get(self.url)
        summary = r.data["summary"]
        # line price is the effective price
        self.assertEqual(summary["subtotal"], Decimal("399.00"))
        self.assertEqual(summary["itemCount"], 3)
        self.assertEqual(summary["shipping"], Decimal("0.00"))
        self.assertEqual(summary["total"], Decimal("399.00"))
        serum_row = next(i for i in r.data["items"] if i["product_id"] == self.serum.id)
        self.assertEqual(serum_row["brand_name"], "Glow")

    def test_small_cart_pays_shipping(self):
        self.client.post(self.url, {"product_id": self.balm.id}, format="json")
        summary = self.client.get(self.url).data["summary"]
        self.assertEqual(summary["shipping"], Decimal("49.00"))
        self.assertEqual(summary["total"], Decimal("148.00"))

    def test_adding_again_accumulates_within_stock(self):
        self.client.post(self.url, {"product_id": self.serum.id, "quantity": 2}, format="json")
        r = self.client.post(self.url, {"product_id": self.serum.id, "quantity": 2}, format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(CartItem.objects.get(user=self.user, product=self.serum).quantity, 2)

        self.client.post(self.url, {"product_id": self.serum.id, "quantity": 1}, format="json")
        self.assertEqual(CartItem.objects.get(user=self.user, product=self.serum).quantity, 3)

    def test_inactive_or_missing_product_is_404(self):
        self.balm.is_active = False
        self.balm.save()
        r = self.client.post(self.url, {"product_id": self.balm.id}, format="json")
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)
        r = self.client.post(self.url, {"product_id": 999999}, format="json")
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    def test_change_quantity_and_remove(self):
        self.client.post(self.url, {"product_id": self.serum.id}, format="json")
        item_url = reverse("cart:item", args=[self.serum.id])

        r = self.client.patch(item_url, {"quantity": 3}, format="json")
        self.assertEqual(r.data["summary"]["itemCount"], 3)

        r = self.client.patch(item_url, {"quantity": 4}, format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

        r = self.client.patch(item_url, {"quantity": 0}, format="json")
        self.assertEqual(r.data["items"], [])

        r = self.client.delete(item_url)
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    def test_clear(self):
        self.client.post(self.url, {"product_id": self.serum.id}, format="json")
        self.client.post(self.url, {"product_id": self.balm.id}, format="json")
        r = self.client.delete(self.url)
        self.assertEqual(r.data["items"], [])
        self.assertFalse(CartItem.objects.filter(user=self.user).exists())

    def test_carts_are_per_user(self):
        other = User.objects.create_user(username="o@example.com", email="o@example.com", password="secret123")
        CartItem.objects.create(user=other, product=self.balm, quantity=1)
        self.assertEqual(self.client.get(self.url).data["items"], [])
