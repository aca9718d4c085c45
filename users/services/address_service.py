import logging

from django.contrib.auth import get_user_model
from django.db import transaction

from users.models import Address

logger = logging.getLogger(__name__)

User = get_user_model()


class AddressService:

    @staticmethod
    def addresses_for(user):
        return Address.objects.filter(user=user).order_by("-is_default", "-created_at", "-id")

    @staticmethod
    @transaction.atomic
    def create_address(user, data: dict) -> Address:
        """Save a new address. A new default replaces the user's previous default of the same type."""
        # serialise default changes per user
        User.objects.select_for_update().filter(pk=user.pk).first()

        if data.get("is_default"):
            Address.objects.filter(user=user, type=data["type"], is_default=True).update(is_default=False)

        address = Address.objects.create(user=user, **data)
        logger.info("Address %s (%s) added for user %s", address.pk, address.type, user.pk)
        return address
