"""Unauthenticated checkout that is confirmed over WhatsApp."""
import logging
import re
from dataclasses import dataclass
from urllib.parse import quote

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction

from orders.models import Order, make_guest_order_number
from orders.services.checkout_service import CheckoutService

logger = logging.getLogger(__name__)

User = get_user_model()

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MOBILE_RE = re.compile(r"^[6-9]\d{9}$")
POSTAL_CODE_RE = re.compile(r"^\d{6}$")


class GuestValidationError(ValueError):
    def __init__(self, errors):
        super().__init__("Validation failed")
        self.errors = errors


@dataclass
class GuestOrder:
    order: Order
    whatsapp_link: str
    message: str


def _blank(value) -> bool:
    return not str(value or "").strip()


def validate_customer(customer: dict) -> list:
    errors = []
    if _blank(customer.get("first_name")):
        errors.append("First name is required")
    if _blank(customer.get("last_name")):
        errors.append("Last name is required")

    email = str(customer.get("email") or "").strip()
    if not email or not EMAIL_RE.match(email):
        errors.append("Valid email is required")

    phone = str(customer.get("phone") or "")
    if _blank(phone) or not MOBILE_RE.match(re.sub(r"\D", "", phone)):
        errors.append("Valid 10-digit phone number is required")

    if _blank(customer.get("address_line_1")):
        errors.append("Address is required")
    if _blank(customer.get("city")):
        errors.append("City is required")
    if _blank(customer.get("state")):
        errors.append("State is required")

    postal_code = str(customer.get("postal_code") or "")
    if _blank(postal_code) or not POSTAL_CODE_RE.match(re.sub(r"\s", "", postal_code)):
        errors.append("Valid 6-digit postal code is required")

    return errors


def address_of(customer: dict) -> dict:
    return {
        "first_name": customer["first_name"].strip(),
        "last_name": customer["last_name"].strip(),
        "phone": customer["phone"].strip(),
        "address_line_1": customer["address_line_1"].strip(),
        "address_line_2": (customer.get("address_line_2") or "").strip(),
        "city": customer["city"].strip(),
        "state": customer["state"].strip(),
        "postal_code": re.sub(r"\s", "", customer["postal_code"]),
        "country": (customer.get("country") or "India").strip(),
    }


def whatsapp_message(customer: dict, order: Order) -> str:
    items = "\n".join(
        f"• {i.product_name} x{i.quantity} - ₹{i.total_price:.2f}" for i in order.items.all()
    )
    addr = order.shipping_address
    address = ", ".join(
        part for part in (
            addr["address_line_1"],
            addr["address_line_2"],
            f'{addr["city"]}, {addr["state"]} {addr["postal_code"]}',
            addr["country"],
        ) if part
    )
    return (
        "*Order from AynBeauty* 🎀\n\n"
        "*Customer Details:*\n"
        f'Name: {customer["first_name"]} {customer["last_name"]}\n'
        f'Email: {customer["email"]}\n'
        f'Phone: {customer["phone"]}\n\n'
        "*Delivery Address:*\n"
        f"{address}\n\n"
        "*Order Items:*\n"
        f"{items}\n\n"
        "*Order Summary:*\n"
        f"Subtotal: ₹{order.subtotal:.2f}\n"
        f"Shipping: ₹{order.shipping_amount:.2f}\n"
        f"Total: ₹{order.total_amount:.2f}\n\n"
        f"Order ID: {order.order_number}\n\n"
        "Please confirm this order. Thank you! 🙏"
    )


def whatsapp_link(message: str) -> str:
    number = settings.AYNBEAUTY["WHATSAPP_ORDER_NUMBER"]
    return f"https://wa.me/{number}?text={quote(message, safe='')}"


class GuestCheckoutService:

    @staticmethod
    def guest_user_for(customer: dict):
        email = customer["email"].strip()
        user = User.objects.filter(email__iexact=email).first()
        if user is not None:
            return user

        phone = re.sub(r"\D", "", customer["phone"])
        user = User(
            username=email[:150],
            email=email,
            first_name=customer["first_name"].strip(),
            last_name=customer["last_name"].strip(),
            # phone is unique; leave it empty when another account already owns it
            phone=None if User.objects.filter(phone=phone).exists() else phone,
            is_guest=True,
        )
        user.set_unusable_password()
        user.save()
        return user

    @staticmethod
    @transaction.atomic
    def checkout(*, customer: dict, items) -> GuestOrder:
        errors = validate_customer(customer)
        if errors:
            raise GuestValidationError(errors)

        user = GuestCheckoutService.guest_user_for(customer)
        order = CheckoutService.place_order(
            user,
            items=items,
            payment_method=Order.PAYMENT_METHOD_WHATSAPP,
            shipping_address=address_of(customer),
            notes=f'Guest order - {customer["first_name"].strip()} {customer["last_name"].strip()}',
            order_number=make_guest_order_number(),
        )

        message = whatsapp_message(customer, order)
        logger.info("Guest order %s placed for %s", order.order_number, user.email)
        return GuestOrder(order=order, whatsapp_link=whatsapp_link(message), message=message)
