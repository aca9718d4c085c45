import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework_simplejwt.tokens import RefreshToken

from users.services import notifications

logger = logging.getLogger(__name__)

User = get_user_model()

OTP_METHOD_EMAIL = "email"
OTP_METHOD_WHATSAPP = "whatsapp"
OTP_METHODS = (OTP_METHOD_EMAIL, OTP_METHOD_WHATSAPP)


class AccountExists(ValueError):
    pass


class SignInFailed(ValueError):
    pass


def generate_otp() -> str:
    return str(100000 + secrets.randbelow(900000))


class AuthService:
    """Password and OTP based account flows. Views only translate results to HTTP."""

    @staticmethod
    def tokens_for(user) -> dict:
        refresh = RefreshToken.for_user(user)
        refresh["email"] = user.email
        refresh["role"] = user.role
        return {"token": str(refresh.access_token), "refresh": str(refresh)}

    @staticmethod
    @transaction.atomic
    def create_account(*, first_name, last_name, email, mobile, password, verified: bool):
        if User.objects.filter(Q(email__iexact=email) | Q(phone=mobile)).exists():
            raise AccountExists("User with this email or mobile number already exists")

        user = User(
            username=email[:150],
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone=mobile,
            is_active=verified,
            email_verified=verified,
        )
        user.set_password(password)
        user.save()
        return user

    @staticmethod
    def issue_otp(user, method: str = OTP_METHOD_EMAIL) -> bool:
        """Store a fresh OTP on the user and deliver it. Returns whether delivery succeeded."""
        ttl = settings.AYNBEAUTY["OTP_TTL_MINUTES"]
        user.otp_code = generate_otp()
        user.otp_expires_at = timezone.now() + timedelta(minutes=ttl)
        user.save(update_fields=["otp_code", "otp_expires_at", "updated_at"])

        if method == OTP_METHOD_WHATSAPP:
            if not user.phone:
                logger.warning("User %s has no phone for WhatsApp OTP", user.pk)
                return False
            return notifications.send_otp_whatsapp(user.phone, user.otp_code, user.first_name)
        return notifications.send_otp_email(user.email, user.otp_code, user.first_name)

    @staticmethod
    def verify_otp(*, email: str, otp: str):
        user = User.objects.filter(email__iexact=email, otp_code=otp).exclude(otp_code="").first()
        if user is None:
            raise ValueError("Invalid OTP")

        if not user.otp_is_valid(otp):
            raise ValueError("OTP has expired. Please request a new one.")

        user.is_active = True
        user.email_verified = True
        user.otp_code = ""
        user.otp_expires_at = None
        user.save(update_fields=["is_active", "email_verified", "otp_code", "otp_expires_at", "updated_at"])

        if user.phone:
            notifications.send_welcome_whatsapp(user.phone, user.first_name)
        return user

    @staticmethod
    def sign_in(*, email: str, password: str):
        user = User.objects.filter(email__iexact=email, is_guest=False).first()
        if user is None:
            raise SignInFailed("Invalid email or password")

        if not user.is_active:
            raise SignInFailed("Account is deactivated")

        if not user.email_verified:
            raise SignInFailed("Please verify your email before signing in")

        if not user.check_password(password):
            raise SignInFailed("Invalid email or password")

        user.last_login = timezone.now()
        user.save(update_fields=["last_login"])
        return user
