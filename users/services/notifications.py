import logging
import re

import requests
from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


def format_phone_number(phone: str) -> str:
    """Normalise a phone number to international format.

    Numbers are assumed to be Indian when no country code is present:
    a leading 0 or a bare 10-digit number gets the 91 prefix.
    """
    cleaned = re.sub(r"\D", "", phone or "")

    if cleaned.startswith("0"):
        cleaned = "91" + cleaned[1:]

    if not cleaned.startswith("91") and len(cleaned) == 10:
        cleaned = "91" + cleaned

    return "+" + cleaned


def otp_whatsapp_text(otp: str, user_name: str) -> str:
    ttl = settings.AYNBEAUTY["OTP_TTL_MINUTES"]
    return (
        "*AynBeauty Verification*\n\n"
        f"Hi {user_name}!\n\n"
        f"Your verification code is: *{otp}*\n\n"
        f"This code will expire in {ttl} minutes.\n"
        "Don't share this code with anyone.\n\n"
        "If you didn't request this code, please ignore this message."
    )


def welcome_whatsapp_text(user_name: str) -> str:
    return (
        "*Welcome to AynBeauty!*\n\n"
        f"Hi {user_name}!\n\n"
        "Your account has been successfully verified.\n\n"
        f"Start shopping: {settings.AYNBEAUTY['APP_URL']}"
    )


def send_whatsapp_message(to: str, body: str) -> dict:
    """Send a WhatsApp message through the Twilio REST API.

    Never raises: delivery problems are logged and reported in the result dict.
    """
    sid = settings.TWILIO_ACCOUNT_SID
    token = settings.TWILIO_AUTH_TOKEN
    sender = settings.TWILIO_WHATSAPP_FROM

    if not (sid and token and sender):
        logger.warning("Twilio credentials not configured, WhatsApp message to %s skipped", to)
        return {"success": False, "error": "Twilio client not configured"}

    phone = format_phone_number(to)
    try:
        resp = requests.post(
            TWILIO_MESSAGES_URL.format(sid=sid),
            data={"From": sender, "To": f"whatsapp:{phone}", "Body": body},
            auth=(sid, token),
            timeout=10,
        )
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.error("WhatsApp sending to %s failed: %s", phone, e)
        return {"success": False, "error": str(e)}

    payload = resp.json()
    logger.info("WhatsApp sent to %s: %s", phone, payload.get("sid"))
    return {"success": True, "messageId": payload.get("sid"), "status": payload.get("status")}


def send_otp_email(email: str, otp: str, first_name: str) -> bool:
    ttl = settings.AYNBEAUTY["OTP_TTL_MINUTES"]
    sent = send_mail(
        subject="Your AynBeauty verification code",
        message=(
            f"Hi {first_name},\n\n"
            f"Your verification code is {otp}. It expires in {ttl} minutes.\n\n"
            "If you didn't request this code, please ignore this email."
        ),
        from_email=None,
        recipient_list=[email],
        fail_silently=True,
    )
    if not sent:
        logger.error("OTP email to %s was not sent", email)
    return bool(sent)


def send_otp_whatsapp(phone: str, otp: str, first_name: str) -> bool:
    return send_whatsapp_message(phone, otp_whatsapp_text(otp, first_name))["success"]


def send_welcome_whatsapp(phone: str, first_name: str) -> bool:
    return send_whatsapp_message(phone, welcome_whatsapp_text(first_name))["success"]
