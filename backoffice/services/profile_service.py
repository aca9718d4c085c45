import logging

from django.contrib.auth import get_user_model
from django.db import transaction

logger = logging.getLogger(__name__)

User = get_user_model()

MIN_PASSWORD_LENGTH = 6


class AdminProfileService:

    @staticmethod
    @transaction.atomic
    def update(user, data: dict):
        for field in ("first_name", "last_name", "gender", "date_of_birth"):
            if field in data:
                setattr(user, field, data[field])

        if "phone" in data:
            phone = (data["phone"] or "").strip() or None
            if phone and User.objects.filter(phone=phone).exclude(pk=user.pk).exists():
                raise ValueError("Mobile number is already in use")
            user.phone = phone

        user.save()
        logger.info("Admin %s updated their profile", user.pk)
        return user

    @staticmethod
    def change_password(user, current_password: str, new_password: str, confirm_password: str):
        if new_password != confirm_password:
            raise ValueError("New passwords do not match")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters")
        if not user.check_password(current_password):
            raise ValueError("Current password is incorrect")

        user.set_password(new_password)
        user.save(update_fields=["password"])
        logger.info("Admin %s changed their password", user.pk)
