import logging

from django.conf import settings
from django.test import SimpleTestCase

LOGGING_MODULES = (
    "aynbeauty.exceptions",
    "users.services.auth_service",
    "catalog.api.views",
    "cart.services.cart_service",
    "wishlist.services.wishlist_service",
    "orders.services.checkout_service",
    "backoffice.services.image_service",
)


class LoggingConfigTest(SimpleTestCase):

    def test_every_app_logger_follows_log_level(self):
        level = logging.getLevelName(settings.LOG_LEVEL)
        for module in LOGGING_MODULES:
            app = module.split(".")[0]
            with self.subTest(module=module):
                self.assertEqual(logging.getLogger(app).level, level)
                self.assertEqual(logging.getLogger(module).getEffectiveLevel(), level)
