from datetime import timedelta
from unittest import mock

from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from users.models import Address
from users.services import notifications

User = get_user_model()

SIGNUP = {
    "first_name": "Asha",
    "last_name": "Rao",
    "email": "asha@example.com",
    "mobile": "9876543210",
    "password": "secret123",
}


class NotificationsTest(TestCase):

    def test_format_phone_number(self):
        self.assertEqual(notifications.format_phone_number("98765 43210"), "+919876543210")
        self.assertEqual(notifications.format_phone_number("09876543210"), "+919876543210")
        self.assertEqual(notifications.format_phone_number("+91 98765-43210"), "+919876543210")
        self.assertEqual(notifications.format_phone_number("+1 415 555 0100"), "+14155550100")

    def test_whatsapp_without_credentials_fails_quietly(self):
        with mock.patch("users.services.notifications.requests.post") as post:
            result = notifications.send_whatsapp_message("9876543210", "hi")
        self.assertFalse(result["success"])
        post.assert_not_called()


class AuthApiTest(APITestCase):

    def test_signup_creates_verified_account(self):
        r = self.client.post(reverse("auth:signup"), SIGNUP, format="json")
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        user = User.objects.get(email="asha@example.com")
        self.assertTrue(user.email_verified)
        self.assertEqual(user.phone, "9876543210")

        r = self.client.post(reverse("auth:signup"), {**SIGNUP, "email": "other@example.com"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)

    def test_register_sends_email_otp(self):
        r = self.client.post(reverse("auth:register"), SIGNUP, format="json")
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertTrue(r.data["otp_sent"])

        user = User.objects.get(email="asha@example.com")
        self.assertFalse(user.is_active)
        self.assertEqual(len(user.otp_code), 6)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(user.otp_code, mail.outbox[0].body)

    def test_verify_otp_activates_and_returns_tokens(self):
        self.client.post(reverse("auth:register"), SIGNUP, format="json")
        user = User.objects.get(email="asha@example.com")

        r = self.client.post(reverse("auth:verify-otp"), {"email": user.email, "otp": "000000"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

        r = self.client.post(reverse("auth:verify-otp"), {"email": user.email, "otp": user.otp_code}, format="json")
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertIn("token", r.data)
        self.assertEqual(r.data["user"]["email"], "asha@example.com")

        user.refresh_from_db()
        self.assertTrue(user.is_active)
        self.assertTrue(user.email_verified)
        self.assertEqual(user.otp_code, "")

    def test_expired_otp(self):
        self.client.post(reverse("auth:register"), SIGNUP, format="json")
        user = User.objects.get(email="asha@example.com")
        User.objects.filter(pk=user.pk).update(otp_expires_at=timezone.now() - timedelta(minutes=1))

        r = self.client.post(reverse("auth:verify-otp"), {"email": user.email, "otp": user.otp_code}, format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("expired", r.data["error"])

    def test_resend_otp(self):
        r = self.client.post(reverse("auth:resend-otp"), {"email": "ghost@example.com"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

        self.client.post(reverse("auth:register"), SIGNUP, format="json")
        r = self.client.post(reverse("auth:resend-otp"), {"email": "asha@example.com"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 2)
        self.assertIn(User.objects.get(email="asha@example.com").otp_code, mail.outbox[1].body)

    def test_whatsapp_otp_reports_delivery_failure(self):
        r = self.client.post(reverse("auth:register"), {**SIGNUP, "otp_method": "whatsapp"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertFalse(r.data["otp_sent"])

    def test_signin(self):
        self.client.post(reverse("auth:signup"), SIGNUP, format="json")
        url = reverse("auth:signin")

        r = self.client.post(url, {"email": "asha@example.com", "password": "wrong"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)

        r = self.client.post(url, {"email": "ASHA@example.com", "password": "secret123"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data["user"]["role"], "customer")

        self.client.credentials(HTTP_AUTHORIZATION="Bearer " + r.data["token"])
        me = self.client.get(reverse("auth:me"))
        self.assertEqual(me.data["mobile"], "9876543210")

    def test_unverified_and_guest_cannot_sign_in(self):
        User.objects.create_user(
            username="u@example.com", email="u@example.com", password="secret123", email_verified=False
        )
        guest = User(username="g@example.com", email="g@example.com", is_guest=True, email_verified=True)
        guest.set_password("secret123")
        guest.save()

        url = reverse("auth:signin")
        r = self.client.post(url, {"email": "u@example.com", "password": "secret123"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn("verify", r.data["error"])

        r = self.client.post(url, {"email": "g@example.com", "password": "secret123"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)


class AddressApiTest(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(username="a@example.com", email="a@example.com", password="secret123")
        self.client.force_authenticate(self.user)
        self.url = reverse("addresses:list")

    def payload(self, **extra):
        return {
            "type": "shipping",
            "first_name": "Asha",
            "last_name": "Rao",
            "address_line_1": "12 MG Road",
            "city": "Pune",
            "state": "Maharashtra",
            "postal_code": "411001",
            "country": "India",
            **extra,
        }

    def test_create_and_list_default_first(self):
        r = self.client.post(self.url, self.payload(city="Mumbai"), format="json")
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(r.data["message"], "Address created successfully")
        self.client.post(self.url, self.payload(is_default=True), format="json")
        self.client.post(self.url, self.payload(city="Nashik"), format="json")

        r = self.client.get(self.url)
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual([a["city"] for a in r.data["addresses"]], ["Pune", "Nashik", "Mumbai"])
        self.assertTrue(r.data["addresses"][0]["is_default"])

    def test_new_default_replaces_default_of_same_type_only(self):
        first = self.client.post(self.url, self.payload(is_default=True), format="json").data["address_id"]
        billing = self.client.post(self.url, self.payload(type="billing", is_default=True), format="json").data["address_id"]
        second = self.client.post(self.url, self.payload(city="Goa", is_default=True), format="json").data["address_id"]

        self.assertFalse(Address.objects.get(pk=first).is_default)
        self.assertTrue(Address.objects.get(pk=second).is_default)
        self.assertTrue(Address.objects.get(pk=billing).is_default)

    def test_missing_fields(self):
        payload = self.payload()
        del payload["postal_code"]
        del payload["type"]
        r = self.client.post(self.url, payload, format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("postal_code", r.data)
        self.assertIn("type", r.data)
        self.assertFalse(Address.objects.exists())

    def test_addresses_are_per_user(self):
        self.client.post(self.url, self.payload(), format="json")
        other = User.objects.create_user(username="b@example.com", email="b@example.com", password="secret123")
        self.client.force_authenticate(other)
        self.assertEqual(self.client.get(self.url).data["addresses"], [])

        self.client.force_authenticate(None)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_401_UNAUTHORIZED)
