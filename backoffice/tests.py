import io
import tempfile
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.urls import reverse
from PIL import Image
from rest_framework import status
from rest_framework.test import APITestCase

from catalog.models import Brand, Category, Product, ProductImage
from orders.models import Order
from orders.services.checkout_service import CheckoutService

User = get_user_model()

ADDRESS = {"line1": "12 MG Road", "city": "Pune", "postal_code": "411001"}


def png_upload(name="photo.png", content_type="image/png"):
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), (200, 80, 120)).save(buf, format="PNG")
    return SimpleUploadedFile(name, buf.getvalue(), content_type=content_type)


class AdminApiTestCase(APITestCase):

    def setUp(self):
        self.admin = User.objects.create_user(
            username="admin@example.com", email="admin@example.com", password="secret123", role=User.Role.ADMIN
        )
        self.customer = User.objects.create_user(
            username="c@example.com", email="c@example.com", password="secret123", first_name="Meera"
        )
        self.client.force_authenticate(self.admin)


class AccessTest(AdminApiTestCase):

    def test_admin_routes_are_guarded(self):
        urls = [reverse("admin-dashboard"), reverse("admin-sales"), reverse("admin-inventory-list")]
        self.client.force_authenticate(None)
        for url in urls:
            self.assertEqual(self.client.get(url).status_code, status.HTTP_401_UNAUTHORIZED, url)

        self.client.force_authenticate(self.customer)
        for url in urls:
            self.assertEqual(self.client.get(url).status_code, status.HTTP_403_FORBIDDEN, url)


class AnalyticsTest(AdminApiTestCase):

    def setUp(self):
        super().setUp()
        self.serum = Product.objects.create(name="Serum", slug="serum", price=Decimal("400.00"), stock_quantity=20)
        self.balm = Product.objects.create(name="Balm", slug="balm", price=Decimal("100.00"), stock_quantity=3)

        confirmed = CheckoutService.place_order(
            self.customer,
            items=[{"product_id": self.serum.id, "quantity": 2}, {"product_id": self.balm.id, "quantity": 1}],
            payment_method="cod",
            shipping_address=ADDRESS,
        )
        confirmed.set_status(Order.STATUS_CONFIRMED, save=True)
        # pending and unpaid: not a sale
        CheckoutService.place_order(
            self.customer,
            items=[{"product_id": self.balm.id, "quantity": 1}],
            payment_method="cod",
            shipping_address=ADDRESS,
        )

    def test_dashboard(self):
        r = self.client.get(reverse("admin-dashboard"))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        data = r.data["data"]
        self.assertEqual(data["stats"]["totalUsers"], 1)
        self.assertEqual(data["stats"]["totalOrders"], 2)
        self.assertEqual(data["stats"]["totalRevenue"], Decimal("900.00"))
        self.assertEqual(len(data["recentOrders"]), 2)
        self.assertEqual(data["recentOrders"][0]["first_name"], "Meera")
        self.assertEqual([p["name"] for p in data["lowStockProducts"]], ["Balm"])
        top = data["topSellingProducts"][0]
        self.assertEqual((top["name"], top["total_sold"]), ("Serum", 2))

    def test_sales_report_counts_only_sales(self):
        r = self.client.get(reverse("admin-sales"), {"dateFilter": "all"})
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        data = r.data["data"]
        self.assertEqual(data["dateFilter"], "all")
        self.assertEqual(data["summary"]["total_orders"], 1)
        self.assertEqual(data["summary"]["total_items_sold"], 3)
        self.assertEqual(data["summary"]["total_revenue"], Decimal("900.00"))

        per_product = {row["name"]: row for row in data["salesPerProduct"]}
        self.assertEqual(per_product["Serum"]["units_sold"], 2)
        self.assertEqual(per_product["Balm"]["units_sold"], 1)
        self.assertEqual(data["salesPerDay"][0]["items_sold"], 3)
        self.assertEqual(data["topCustomers"][0]["email"], "c@example.com")

    def test_sales_defaults_and_rejects_unknown_window(self):
        r = self.client.get(reverse("admin-sales"))
        self.assertEqual(r.data["data"]["dateFilter"], "30")
        r = self.client.get(reverse("admin-sales"), {"dateFilter": "45"})
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)


class InventoryTest(AdminApiTestCase):

    def setUp(self):
        super().setUp()
        self.category = Category.objects.create(name="Bath and Body", slug="bath-and-body")
        self.list_url = reverse("admin-inventory-list")

    def payload(self, **extra):
        return {
            "name": "Rose Body Wash",
            "description": "Gentle daily cleanser",
            "price": "349.00",
            "stock_quantity": 12,
            "category": "Bath & Body",
            "image_urls": ["/media/products/a.png", "/media/products/b.png"],
            "primary_image_index": 1,
            **extra,
        }

    def test_create_product(self):
        r = self.client.post(self.list_url, self.payload(), format="json")
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        product = Product.objects.get(pk=r.data["productId"])
        self.assertEqual(product.slug, "rose-body-wash")
        self.assertEqual(product.category, self.category)
        self.assertEqual(product.images.get(is_primary=True).image_url, "/media/products/b.png")

        r = self.client.post(self.list_url, self.payload(), format="json")
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)

    def test_unknown_category(self):
        r = self.client.post(self.list_url, self.payload(category="Fragrance"), format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data["error"], "Invalid category: Fragrance")

    def test_brand_must_exist(self):
        r = self.client.post(self.list_url, self.payload(brand_id=9999), format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("brand_id", r.data)
        self.assertFalse(Product.objects.exists())

        brand = Brand.objects.create(name="Glow", slug="glow")
        r = self.client.post(self.list_url, self.payload(brand_id=brand.id), format="json")
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Product.objects.get(pk=r.data["productId"]).brand, brand)

        r = self.client.put(
            reverse("admin-inventory-detail", args=[r.data["productId"]]), self.payload(brand_id=9999), format="json"
        )
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_primary_index_must_point_at_an_image(self):
        r = self.client.post(self.list_url, self.payload(primary_image_index=2), format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_replaces_images(self):
        pid = self.client.post(self.list_url, self.payload(), format="json").data["productId"]
        url = reverse("admin-inventory-detail", args=[pid])
        r = self.client.put(
            url, self.payload(name="Rose Wash", price="299.00", image_urls=["/media/products/c.png"], primary_image_index=0),
            format="json",
        )
        self.assertEqual(r.status_code, status.HTTP_200_OK)

        product = Product.objects.get(pk=pid)
        self.assertEqual(product.slug, "rose-wash")
        self.assertEqual(product.price, Decimal("299.00"))
        self.assertEqual(list(product.images.values_list("image_url", flat=True)), ["/media/products/c.png"])

        r = self.client.get(url)
        self.assertEqual(r.data["product"]["primary_image"], "/media/products/c.png")

    def test_list_search_and_delete(self):
        self.client.post(self.list_url, self.payload(), format="json")
        other = self.client.post(
            self.list_url, self.payload(name="Night Cream", description="Rich moisture", image_urls=[]), format="json"
        ).data["productId"]

        r = self.client.get(self.list_url, {"search": "cleanser"})
        self.assertEqual([p["name"] for p in r.data["products"]], ["Rose Body Wash"])
        r = self.client.get(self.list_url, {"category": "Bath & Body"})
        self.assertEqual(len(r.data["products"]), 2)

        r = self.client.delete(reverse("admin-inventory-detail", args=[other]))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertFalse(Product.objects.filter(pk=other).exists())
        r = self.client.delete(reverse("admin-inventory-detail", args=[other]))
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)


@override_settings(MEDIA_ROOT=tempfile.mkdtemp(prefix="aynbeauty-images-"))
class ProductImageTest(AdminApiTestCase):

    def test_upload(self):
        r = self.client.post(
            reverse("admin-upload-images"), {"images": [png_upload(), png_upload("b.png")]}, format="multipart"
        )
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(r.data["count"], 2)
        first = r.data["images"][0]
        self.assertTrue(first["url"].startswith("/media/products/product_"))
        self.assertTrue(first["filename"].endswith(".png"))
        self.assertEqual(first["originalName"], "photo.png")
        self.assertTrue(default_storage.exists("products/" + first["filename"]))

    def test_upload_rejections(self):
        url = reverse("admin-upload-images")
        r = self.client.post(url, {"images": [png_upload("x.gif", "image/gif")]}, format="multipart")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

        fake = SimpleUploadedFile("fake.png", b"not an image", content_type="image/png")
        r = self.client.post(url, {"images": [fake]}, format="multipart")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

        r = self.client.post(url, {"images": [png_upload(f"{i}.png") for i in range(6)]}, format="multipart")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data["error"], "Maximum 5 images allowed")

    def test_cleanup(self):
        kept = default_storage.save("products/kept.png", ContentFile(b"kept"))
        default_storage.save("products/orphan.png", ContentFile(b"orphan"))
        product = Product.objects.create(name="Balm", slug="balm", price=Decimal("99.00"))
        ProductImage.objects.create(product=product, image_url=default_storage.url(kept), is_primary=True)
        ProductImage.objects.create(product=product, image_url="/media/products/gone.png", sort_order=1)
        ProductImage.objects.create(product=product, image_url="https://cdn.example.com/remote.png", sort_order=2)

        url = reverse("admin-cleanup-images")
        analysis = self.client.get(url).data["analysis"]
        self.assertEqual(analysis["totalFiles"], 2)
        self.assertEqual(analysis["unusedFiles"], 1)
        self.assertEqual(analysis["unusedFilesDetails"][0]["filename"], "orphan.png")
        self.assertEqual(analysis["missingFiles"], ["gone.png"])

        r = self.client.post(url, {"mode": "dry-run"}, format="json")
        self.assertEqual(r.data["results"]["deletedFiles"], ["orphan.png"])
        self.assertTrue(default_storage.exists("products/orphan.png"))

        r = self.client.post(url, {}, format="json")
        self.assertEqual(r.data["results"]["mode"], "execute")
        self.assertFalse(default_storage.exists("products/orphan.png"))
        self.assertTrue(default_storage.exists("products/kept.png"))


class AdminProfileTest(AdminApiTestCase):

    def setUp(self):
        super().setUp()
        self.url = reverse("admin-profile")
        self.password_url = reverse("admin-profile-change-password")

    def test_get_and_update(self):
        r = self.client.get(self.url)
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data["data"]["email"], "admin@example.com")
        self.assertEqual(r.data["data"]["role"], User.Role.ADMIN)

        r = self.client.put(
            self.url,
            {"first_name": "Nisha", "mobile": "9876500000", "date_of_birth": "1990-04-02", "gender": "female"},
            format="json",
        )
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data["message"], "Profile updated successfully")
        self.assertEqual(r.data["data"]["mobile"], "9876500000")
        self.admin.refresh_from_db()
        self.assertEqual(self.admin.first_name, "Nisha")
        self.assertEqual(str(self.admin.date_of_birth), "1990-04-02")

        r = self.client.put(self.url, {"mobile": ""}, format="json")
        self.admin.refresh_from_db()
        self.assertIsNone(self.admin.phone)

    def test_mobile_taken_by_another_user(self):
        self.customer.phone = "9876511111"
        self.customer.save()
        r = self.client.put(self.url, {"mobile": "9876511111"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data["error"], "Mobile number is already in use")

    def test_customer_is_forbidden(self):
        self.client.force_authenticate(self.customer)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_403_FORBIDDEN)
        r = self.client.post(
            self.password_url,
            {"current_password": "secret123", "new_password": "newpass1", "confirm_password": "newpass1"},
            format="json",
        )
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

    def test_change_password(self):
        def change(current, new, confirm):
            return self.client.post(
                self.password_url,
                {"current_password": current, "new_password": new, "confirm_password": confirm},
                format="json",
            )

        r = change("secret123", "newpass1", "newpass2")
        self.assertEqual(r.data["error"], "New passwords do not match")
        r = change("secret123", "short", "short")
        self.assertEqual(r.data["error"], "New password must be at least 6 characters")
        r = change("wrong", "newpass1", "newpass1")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data["error"], "Current password is incorrect")

        r = change("secret123", "newpass1", "newpass1")
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data["message"], "Password changed successfully")
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.check_password("newpass1"))
