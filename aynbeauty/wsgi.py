import os

os.environ.setdefault(
    "DJANGO_SETTINGS_MODULE",
    os.getenv("DJANGO_SETTINGS_MODULE", "aynbeauty.settings.prod"),
)

from django.core.wsgi import get_wsgi_application

application = get_wsgi_application()
