"""Settings used by the test-suite (pytest-django).

Provides the values ``settings.py`` refuses to default, an in-process
cache in place of Redis, eager Celery and an isolated label directory.
"""

import os
import tempfile
from pathlib import Path

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

from config.settings import *  # noqa: E402,F401,F403

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "storefront-shipping-tests",
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

GSS_API_URL = "https://carrier.test/api"
GSS_API_KEY = "test-access-key"
GSS_SENDER_NAME = "Test Warehouse"
GSS_SENDER_ADDRESS = "1 Depot Road"
GSS_SENDER_SUBURB = "Penrose"
GSS_SENDER_CITY = "Auckland"
GSS_SENDER_POSTCODE = "1061"
GSS_SENDER_COUNTRY = "NZ"

SHIPPING_ADMIN_EMAIL = "shipping-admin@example.com"
SHIPPING_LABEL_DIR = Path(tempfile.mkdtemp(prefix="gss-labels-"))
SHIPPING_LABEL_URL = "/media/gss-labels/"

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    "DEFAULT_THROTTLE_CLASSES": [],
}
