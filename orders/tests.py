from decimal import Decimal
from urllib.parse import unquote

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from cart.models import CartItem
from catalog.models import Product
from orders.models import Order
from orders.services.guest_checkout_service import validate_customer

User = get_user_model()

ADDRESS = {"line1": "12 MG Road", "city": "Pune", "state": "MH", "postal_code": "411001"}


def make_product(name, price, stock=10, **extra):
    return Product.objects.create(
        name=name, slug=Product.make_slug(name), price=Decimal(str(price)), stock_quantity=stock, **extra
    )


class OrderApiTest(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(username="o@example.com", email="o@example.com", password="secret123")
        self.admin = User.objects.create_user(
            username="admin@example.com", email="admin@example.com", password="secret123", role=User.Role.ADMIN
        )
        self.client.force_authenticate(self.user)
        self.url = reverse("orders-list")
        self.serum = make_product("Serum", 200, stock=5, discounted_price=Decimal("180.00"))
        self.balm = make_product("Balm", 60, stock=2)

    def place(self, items, **extra):
        payload = {
            "shipping_address": ADDRESS,
            "billing_address": ADDRESS,
            "payment_method": "cod",
            "items": items,
            **extra,
        }
        return self.client.post(self.url, payload, format="json")

    def test_place_order_prices_from_catalog(self):
        CartItem.objects.create(user=self.user, product=self.balm, quantity=1)
        r = self.place([{"product_id": self.serum.id, "quantity": 2}])
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(r.data["message"], "Order created successfully")

        order = Order.objects.get(pk=r.data["order"]["id"])
        self.assertTrue(order.order_number.startswith("AYN"))
        self.assertEqual(order.subtotal, Decimal("360.00"))
        self.assertEqual(order.shipping_amount, Decimal("0.00"))
        self.assertEqual(order.total_amount, Decimal("360.00"))
        self.assertEqual(order.payment_status, Order.PAYMENT_PENDING)
        self.assertIsNone(order.paid_at)
        self.assertEqual(order.items.get().unit_price, Decimal("180.00"))

        self.serum.refresh_from_db()
        self.assertEqual(self.serum.stock_quantity, 3)
        self.assertFalse(CartItem.objects.filter(user=self.user).exists())

    def test_shipping_below_threshold_and_payment_reference(self):
        r = self.place([{"product_id": self.balm.id, "quantity": 1}], payment_reference="pay_123")
        order = Order.objects.get(pk=r.data["order"]["id"])
        self.assertEqual(order.shipping_amount, Decimal("49.00"))
        self.assertEqual(order.total_amount, Decimal("109.00"))
        self.assertEqual(order.payment_status, Order.PAYMENT_PAID)
        self.assertEqual(order.payment_reference, "pay_123")
        self.assertIsNotNone(order.paid_at)

    def test_insufficient_stock_rolls_back(self):
        r = self.place([
            {"product_id": self.serum.id, "quantity": 1},
            {"product_id": self.balm.id, "quantity": 3},
        ])
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.serum.refresh_from_db()
        self.assertEqual(self.serum.stock_quantity, 5)
        self.assertFalse(Order.objects.exists())

    def test_unknown_product_is_404(self):
        r = self.place([{"product_id": 999999, "quantity": 1}])
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    def test_missing_fields(self):
        r = self.client.post(self.url, {"payment_method": "cod", "items": []}, format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filter_and_pagination(self):
        for _ in range(3):
            self.place([{"product_id": self.serum.id, "quantity": 1}])
        Order.objects.filter(pk=Order.objects.order_by("id").first().pk).update(status=Order.STATUS_CONFIRMED)

        r = self.client.get(self.url, {"limit": 2, "page": 1})
        self.assertEqual(r.data["total"], 3)
        self.assertEqual(r.data["totalPages"], 2)
        self.assertEqual(len(r.data["orders"]), 2)
        self.assertEqual(len(r.data["orders"][0]["items"]), 1)

        r = self.client.get(self.url, {"status": "confirmed"})
        self.assertEqual(r.data["total"], 1)

    def test_other_users_orders_hidden(self):
        self.place([{"product_id": self.serum.id, "quantity": 1}])
        stranger = User.objects.create_user(username="s@example.com", email="s@example.com", password="secret123")
        self.client.force_authenticate(stranger)
        self.assertEqual(self.client.get(self.url).data["total"], 0)

    def test_cancel_returns_stock(self):
        order_id = self.place([{"product_id": self.serum.id, "quantity": 2}]).data["order"]["id"]
        r = self.client.post(reverse("orders-cancel", args=[order_id]))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data["status"], Order.STATUS_CANCELLED)
        self.assertIsNotNone(r.data["cancelled_at"])
        self.serum.refresh_from_db()
        self.assertEqual(self.serum.stock_quantity, 5)

    def test_paid_or_confirmed_order_cannot_be_cancelled_by_owner(self):
        paid_id = self.place([{"product_id": self.balm.id, "quantity": 1}], payment_reference="x").data["order"]["id"]
        r = self.client.post(reverse("orders-cancel", args=[paid_id]))
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

        other_id = self.place([{"product_id": self.serum.id, "quantity": 1}]).data["order"]["id"]
        Order.objects.filter(pk=other_id).update(status=Order.STATUS_CONFIRMED)
        r = self.client.post(reverse("orders-cancel", args=[other_id]))
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_status_transitions(self):
        order_id = self.place([{"product_id": self.serum.id, "quantity": 1}]).data["order"]["id"]
        url = reverse("orders-update-status", args=[order_id])

        self.assertEqual(self.client.patch(url, {"status": "confirmed"}, format="json").status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        self.assertEqual(self.client.patch(url, {"status": "delivered"}, format="json").status_code, status.HTTP_400_BAD_REQUEST)
        for step in ("confirmed", "processing", "shipped", "delivered"):
            r = self.client.patch(url, {"status": step}, format="json")
            self.assertEqual(r.status_code, status.HTTP_200_OK, step)
        r = self.client.patch(url, {"status": "cancelled"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_cancel_returns_stock(self):
        order_id = self.place([{"product_id": self.serum.id, "quantity": 2}]).data["order"]["id"]
        self.client.force_authenticate(self.admin)
        url = reverse("orders-update-status", args=[order_id])
        self.client.patch(url, {"status": "confirmed"}, format="json")
        r = self.client.patch(url, {"status": "cancelled"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.serum.refresh_from_db()
        self.assertEqual(self.serum.stock_quantity, 5)


class GuestCheckoutTest(APITestCase):

    def setUp(self):
        self.url = reverse("guest-checkout")
        self.serum = make_product("Vitamin C Serum", 350, stock=4)
        self.customer = {
            "first_name": "Asha",
            "last_name": "Rao",
            "email": "asha@example.com",
            "phone": "98765 43210",
            "address_line_1": "12 MG Road",
            "city": "Pune",
            "state": "Maharashtra",
            "postal_code": "411 001",
            "country": "India",
        }

    def test_validation_collects_every_error(self):
        errors = validate_customer({"email": "nope", "phone": "12345", "postal_code": "41"})
        self.assertIn("First name is required", errors)
        self.assertIn("Valid email is required", errors)
        self.assertIn("Valid 10-digit phone number is required", errors)
        self.assertIn("Valid 6-digit postal code is required", errors)
        self.assertEqual(len(errors), 8)

    def test_invalid_customer_response(self):
        customer = {**self.customer, "phone": "5123456789"}
        r = self.client.post(self.url, {"customer": customer, "items": [{"product_id": self.serum.id, "quantity": 1}]}, format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data["message"], "Validation failed")
        self.assertEqual(r.data["errors"], ["Valid 10-digit phone number is required"])

    def test_guest_order_and_whatsapp_link(self):
        r = self.client.post(
            self.url,
            {"customer": self.customer, "items": [{"product_id": self.serum.id, "quantity": 1}]},
            format="json",
        )
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertTrue(r.data["orderId"].startswith("ORD-"))
        self.assertEqual(r.data["total"], "350.00")
        self.assertTrue(r.data["whatsappLink"].startswith("https://wa.me/"))
        self.assertIn("Order ID: " + r.data["orderId"], unquote(r.data["whatsappLink"].split("?text=", 1)[1]))

        guest = User.objects.get(email="asha@example.com")
        self.assertTrue(guest.is_guest)
        self.assertFalse(guest.has_usable_password())
        order = Order.objects.get(order_number=r.data["orderId"])
        self.assertEqual(order.user, guest)
        self.assertEqual(order.payment_method, Order.PAYMENT_METHOD_WHATSAPP)
        self.assertEqual(order.shipping_address["postal_code"], "411001")

    def test_existing_user_is_reused(self):
        user = User.objects.create_user(username="asha@example.com", email="asha@example.com", password="secret123")
        items = [{"product_id": self.serum.id, "quantity": 1}]
        self.client.post(self.url, {"customer": self.customer, "items": items}, format="json")
        self.assertEqual(Order.objects.get().user, user)
        self.assertEqual(User.objects.filter(email="asha@example.com").count(), 1)
