import os

os.environ.setdefault(
    "DJANGO_SETTINGS_MODULE",
    os.getenv("DJANGO_SETTINGS_MODULE", "aynbeauty.settings.prod"),
)

from django.core.asgi import get_asgi_application

application = get_asgi_application()
