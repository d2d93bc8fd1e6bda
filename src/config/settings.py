import re
from pathlib import Path

import structlog
from decouple import Csv, config
from dj_database_url import parse as db_url

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Security - Fail Fast: no default forces explicit configuration
SECRET_KEY = config("SECRET_KEY")

DEBUG = config("DEBUG", default=False, cast=bool)

ALLOWED_HOSTS = config("ALLOWED_HOSTS", default="127.0.0.1,localhost", cast=Csv())

# Application definition
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third-party
    "rest_framework",
    "corsheaders",
    "drf_spectacular",
    # Local Apps (Modules)
    "modules.core",
    "modules.products",
    "modules.cart",
    "modules.orders",
    # Subscribes to cart and order events, so it loads after both
    "modules.shipping",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "modules.core.middleware.CorrelationIdMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

DATABASES = {
    "default": config(
        "DATABASE_URL", default=f'sqlite:///{BASE_DIR / "db.sqlite3"}', cast=db_url
    )
}

# Cache - Redis (also backs the shopper's shipping session store)
REDIS_URL = config("REDIS_URL", default="redis://localhost:6379/0")

CACHES = {
    "default": {
        "BACKEND": "django_redis.cache.RedisCache",
        "LOCATION": REDIS_URL,
        "OPTIONS": {
            "CLIENT_CLASS": "django_redis.client.DefaultClient",
        },
    }
}

SESSION_COOKIE_AGE = config("SESSION_COOKIE_AGE", default=60 * 60 * 48, cast=int)

# Internationalization
LANGUAGE_CODE = "en-nz"
TIME_ZONE = "Pacific/Auckland"
USE_I18N = True
USE_TZ = True

# ---------------------------------------------------------------------------
# Celery (deferred label generation via Redis)
# ---------------------------------------------------------------------------
CELERY_BROKER_URL = config("CELERY_BROKER_URL", default="redis://localhost:6379/0")
CELERY_RESULT_BACKEND = config(
    "CELERY_RESULT_BACKEND", default="redis://localhost:6379/0"
)
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE

# Static / media files
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
MEDIA_URL = config("MEDIA_URL", default="/media/")
MEDIA_ROOT = Path(config("MEDIA_ROOT", default=str(BASE_DIR / "media")))

# Default primary key field type
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# DRF Configuration: storefront endpoints are anonymous and the session cookie
# identifies the shopper.
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "DEFAULT_THROTTLE_CLASSES": [
        "rest_framework.throttling.AnonRateThrottle",
        "rest_framework.throttling.ScopedRateThrottle",
    ],
    "DEFAULT_THROTTLE_RATES": {
        "anon": "1000/hour",
        "shipping_rates": "30/minute",
        "checkout": "10/minute",
    },
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

if DEBUG:
    REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"].append(
        "rest_framework.renderers.BrowsableAPIRenderer"
    )

# CORS
CORS_ALLOWED_ORIGINS = config(
    "CORS_ALLOWED_ORIGINS", default="http://localhost:3000", cast=Csv()
)
CORS_ALLOW_CREDENTIALS = True

# CSRF
CSRF_TRUSTED_ORIGINS = config(
    "CSRF_TRUSTED_ORIGINS", default="http://localhost:3000", cast=Csv()
)

# ---------------------------------------------------------------------------
# drf-spectacular (OpenAPI / Swagger)
# ---------------------------------------------------------------------------
SPECTACULAR_SETTINGS = {
    "TITLE": "Storefront Shipping API",
    "DESCRIPTION": "Live carrier rates, checkout shipping selection and label generation.",
    "VERSION": "1.1.0",
    "SERVE_INCLUDE_SCHEMA": False,
}

# ---------------------------------------------------------------------------
# Email (label and freight notifications)
# ---------------------------------------------------------------------------
EMAIL_BACKEND = config(
    "EMAIL_BACKEND", default="django.core.mail.backends.smtp.EmailBackend"
)
DEFAULT_FROM_EMAIL = config("DEFAULT_FROM_EMAIL", default="shop@localhost")

# ---------------------------------------------------------------------------
# Carrier API (GoSweetSpot)
# ---------------------------------------------------------------------------
GSS_API_URL = config("GSS_API_URL", default="https://api.gosweetspot.com/api")
GSS_API_KEY = config("GSS_API_KEY", default="")
GSS_API_TIMEOUT = config("GSS_API_TIMEOUT", default=30.0, cast=float)
GSS_API_MAX_RETRIES = config("GSS_API_MAX_RETRIES", default=0, cast=int)
GSS_API_BACKOFF = config("GSS_API_BACKOFF", default=0.5, cast=float)

# Sender (origin) address used for quotes and shipments
GSS_SENDER_NAME = config("GSS_SENDER_NAME", default="")
GSS_SENDER_ADDRESS = config("GSS_SENDER_ADDRESS", default="")
GSS_SENDER_SUBURB = config("GSS_SENDER_SUBURB", default="")
GSS_SENDER_CITY = config("GSS_SENDER_CITY", default="")
GSS_SENDER_POSTCODE = config("GSS_SENDER_POSTCODE", default="")
GSS_SENDER_COUNTRY = config("GSS_SENDER_COUNTRY", default="NZ")

# ---------------------------------------------------------------------------
# Shipping rules
# ---------------------------------------------------------------------------
STORE_WEIGHT_UNIT = config("STORE_WEIGHT_UNIT", default="kg")
STORE_DIMENSION_UNIT = config("STORE_DIMENSION_UNIT", default="cm")
SHIPPING_DEFAULT_COUNTRY = config("SHIPPING_DEFAULT_COUNTRY", default="NZ")
FREIGHT_WEIGHT_THRESHOLD = config("FREIGHT_WEIGHT_THRESHOLD", default=25.0, cast=float)
LABEL_JOB_DELAY_SECONDS = config("LABEL_JOB_DELAY_SECONDS", default=10, cast=int)
SHIPPING_LABEL_FORMAT = config("SHIPPING_LABEL_FORMAT", default="LABEL_PDF_100X175")
SHIPPING_LABEL_DIR = Path(
    config("SHIPPING_LABEL_DIR", default=str(MEDIA_ROOT / "gss-labels"))
)
SHIPPING_LABEL_URL = config("SHIPPING_LABEL_URL", default=f"{MEDIA_URL}gss-labels/")
SHIPPING_ADMIN_EMAIL = config("SHIPPING_ADMIN_EMAIL", default="admin@localhost")
SHIPPING_SESSION_TTL = config("SHIPPING_SESSION_TTL", default=SESSION_COOKIE_AGE, cast=int)
# Reject cached selections whose package/destination fingerprint no longer
# matches the cart when computing checkout totals.
SHIPPING_ENFORCE_FINGERPRINT = config(
    "SHIPPING_ENFORCE_FINGERPRINT", default=False, cast=bool
)

# ---------------------------------------------------------------------------
# Structured Logging (structlog + Django LOGGING)
# ---------------------------------------------------------------------------
SENSITIVE_PATTERN = re.compile(
    r"(password|passwd|secret|token|authorization|access_key|api_key)"
    r"""(["']?\s*[=:]\s*["']?)([^\s,}"']+)""",
    re.IGNORECASE,
)

SENSITIVE_KEYS = {"access_key", "api_key", "password", "token", "secret"}


def mask_sensitive_data(_, __, event_dict):
    """Processor that masks passwords, tokens and carrier API keys in log values."""
    for key, value in list(event_dict.items()):
        if key.lower() in SENSITIVE_KEYS and value:
            event_dict[key] = "***MASKED***"
        elif isinstance(value, str):
            event_dict[key] = SENSITIVE_PATTERN.sub(r"\1\2***MASKED***", value)
    return event_dict


# Shared processors used by both structlog and stdlib logging
_shared_processors = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    mask_sensitive_data,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]

structlog.configure(
    processors=[
        *_shared_processors,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ],
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": structlog.stdlib.ProcessorFormatter,
            "processors": [
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.JSONRenderer(),
            ],
            "foreign_pre_chain": _shared_processors,
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "INFO",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "django.server": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}
