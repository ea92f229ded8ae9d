import re
from datetime import timedelta
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
    "django_filters",
    "drf_spectacular",
    "drf_standardized_errors",
    # Local Apps (Modules)
    "modules.core",
    "modules.products",
    "modules.coupons",
    "modules.orders",
    "modules.payments",
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

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": config(
        "DATABASE_URL", default=f'sqlite:///{BASE_DIR / "db.sqlite3"}', cast=db_url
    )
}

# Cache - Redis (also holds the carrier bearer token)
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

# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"
    },
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

# Internationalization
LANGUAGE_CODE = "en-in"
TIME_ZONE = "Asia/Kolkata"
USE_I18N = True
USE_TZ = True

# ---------------------------------------------------------------------------
# Celery (async tasks via Redis)
# ---------------------------------------------------------------------------
CELERY_BROKER_URL = config("CELERY_BROKER_URL", default="redis://localhost:6379/0")
CELERY_RESULT_BACKEND = config(
    "CELERY_RESULT_BACKEND", default="redis://localhost:6379/0"
)
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE
CELERY_BEAT_SCHEDULE = {
    "publish-outbox-events": {
        "task": "core.publish_outbox_events",
        "schedule": 30.0,
    },
    "reconcile-verified-payments": {
        "task": "payments.reconcile_verified_payments",
        "schedule": 300.0,
    },
}

# Static files (CSS, JavaScript, Images)
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# Default primary key field type
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# DRF: fail closed, every endpoint requires auth unless it opts out
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "modules.core.authentication.IdentityTokenAuthentication",
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_THROTTLE_CLASSES": [
        "rest_framework.throttling.AnonRateThrottle",
        "rest_framework.throttling.UserRateThrottle",
        "rest_framework.throttling.ScopedRateThrottle",
    ],
    "DEFAULT_THROTTLE_RATES": {
        "anon": "100/day",
        "user": "1000/hour",
        "order_creation": "5/minute",
        "order_listing": "100/minute",
        "guest_checkout": "60/hour",
        "payment_verification": "20/minute",
        "coupon_validation": "30/minute",
        "serviceability": "30/minute",
    },
    "DEFAULT_PAGINATION_CLASS": "modules.core.pagination.StandardResultsSetPagination",
    "PAGE_SIZE": config("DEFAULT_PAGE_SIZE", default=20, cast=int),
    "DEFAULT_FILTER_BACKENDS": ["django_filters.rest_framework.DjangoFilterBackend"],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_SCHEMA_CLASS": "drf_standardized_errors.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "drf_standardized_errors.handler.exception_handler",
}

if DEBUG:
    REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"].append(
        "rest_framework.renderers.BrowsableAPIRenderer"
    )

# ---------------------------------------------------------------------------
# SimpleJWT (staff / admin panel tokens)
# ---------------------------------------------------------------------------
SIMPLE_JWT = {
    "ALGORITHM": "HS256",
    "SIGNING_KEY": SECRET_KEY,
    "AUTH_HEADER_TYPES": ("Bearer",),
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=15),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=1),
}

# ---------------------------------------------------------------------------
# Storefront identity provider (customer ID tokens, RS256 via JWKS)
# ---------------------------------------------------------------------------
IDENTITY_JWKS_URL = config("IDENTITY_JWKS_URL", default="")
IDENTITY_AUDIENCE = config("IDENTITY_AUDIENCE", default="")
IDENTITY_ISSUER = config("IDENTITY_ISSUER", default="")
IDENTITY_ALGORITHM = config("IDENTITY_ALGORITHM", default="RS256")

# CORS
CORS_ALLOWED_ORIGINS = config(
    "CORS_ALLOWED_ORIGINS", default="http://localhost:3000", cast=Csv()
)

# CSRF
CSRF_TRUSTED_ORIGINS = config(
    "CSRF_TRUSTED_ORIGINS", default="http://localhost:3000", cast=Csv()
)

# ---------------------------------------------------------------------------
# drf-spectacular (OpenAPI / Swagger)
# ---------------------------------------------------------------------------
SPECTACULAR_SETTINGS = {
    "TITLE": "Storefront Fulfillment API",
    "DESCRIPTION": "Checkout, payment verification and order fulfillment.",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    "SECURITY": [{"BearerAuth": []}],
    "APPEND_COMPONENTS": {
        "securitySchemes": {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
            }
        }
    },
}

# ---------------------------------------------------------------------------
# Orders, pricing and coupons
# ---------------------------------------------------------------------------
ORDER_NUMBER_PREFIX = config("ORDER_NUMBER_PREFIX", default="SF")
SHIPPING_FREE_THRESHOLD = config("SHIPPING_FREE_THRESHOLD", default="999")
SHIPPING_FLAT_RATE = config("SHIPPING_FLAT_RATE", default="49")

# Only the digest of the promotion code is configured; see modules.coupons.rules
COUPON_CODE_SHA256 = config("COUPON_CODE_SHA256", default="")
COUPON_KIND = config("COUPON_KIND", default="fixed")
COUPON_VALUE = config("COUPON_VALUE", default="150")

# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
PAYMENT_GATEWAY = config("PAYMENT_GATEWAY", default="razorpay")
PAYMENT_CURRENCY = config("PAYMENT_CURRENCY", default="INR")
RAZORPAY_BASE_URL = config("RAZORPAY_BASE_URL", default="https://api.razorpay.com/v1")
RAZORPAY_KEY_ID = config("RAZORPAY_KEY_ID", default="")
RAZORPAY_KEY_SECRET = config("RAZORPAY_KEY_SECRET", default="")

RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"
RECAPTCHA_SECRET_KEY = config("RECAPTCHA_SECRET_KEY", default="")
RECAPTCHA_MIN_SCORE = config("RECAPTCHA_MIN_SCORE", default=0.5, cast=float)
RECAPTCHA_ALLOW_LOCAL_BYPASS = config(
    "RECAPTCHA_ALLOW_LOCAL_BYPASS", default=False, cast=bool
)

# Base URL of this API as seen by the checkout client (coupon + payment calls)
CHECKOUT_API_BASE_URL = config(
    "CHECKOUT_API_BASE_URL", default="http://localhost:8000/api/v1"
)

# ---------------------------------------------------------------------------
# Shipping carrier
# ---------------------------------------------------------------------------
CARRIER_ADAPTER = config("CARRIER_ADAPTER", default="shiprocket")
SHIPROCKET_BASE_URL = config(
    "SHIPROCKET_BASE_URL", default="https://apiv2.shiprocket.in/v1/external"
)
SHIPROCKET_EMAIL = config("SHIPROCKET_EMAIL", default="")
SHIPROCKET_PASSWORD = config("SHIPROCKET_PASSWORD", default="")
SHIPROCKET_PICKUP_LOCATION = config("SHIPROCKET_PICKUP_LOCATION", default="Primary")
SHIPROCKET_PICKUP_POSTCODE = config("SHIPROCKET_PICKUP_POSTCODE", default="")
SHIPROCKET_DEFAULT_WEIGHT_KG = config("SHIPROCKET_DEFAULT_WEIGHT_KG", default=0.5, cast=float)
SHIPROCKET_DEFAULT_LENGTH_CM = config("SHIPROCKET_DEFAULT_LENGTH_CM", default=20, cast=float)
SHIPROCKET_DEFAULT_BREADTH_CM = config("SHIPROCKET_DEFAULT_BREADTH_CM", default=20, cast=float)
SHIPROCKET_DEFAULT_HEIGHT_CM = config("SHIPROCKET_DEFAULT_HEIGHT_CM", default=10, cast=float)
# Compared with the x-api-key header of tracking webhooks; empty disables the check
SHIPROCKET_WEBHOOK_SECRET = config("SHIPROCKET_WEBHOOK_SECRET", default="")
# Book every new order with the carrier (and request its pickup) after commit
CARRIER_AUTO_CREATE_SHIPMENTS = config(
    "CARRIER_AUTO_CREATE_SHIPMENTS", default=True, cast=bool
)

HTTP_TIMEOUT_SECONDS = config("HTTP_TIMEOUT_SECONDS", default=10, cast=int)

# ---------------------------------------------------------------------------
# Structured Logging (structlog + Django LOGGING)
# ---------------------------------------------------------------------------
SENSITIVE_PATTERN = re.compile(
    r"(\b\d{4}[ -]?\d{4}[ -]?\d{4}[ -]?\d{4}\b)"  # card number
    r"|(password|passwd|secret|token|signature|authorization)"
    r"""([=:]\s*["']?)([^\s,}"']+)""",
    re.IGNORECASE,
)


def mask_sensitive_data(_, __, event_dict):
    """Processor that masks card numbers, passwords, signatures and tokens in log values."""
    for key, value in list(event_dict.items()):
        if isinstance(value, str):
            event_dict[key] = SENSITIVE_PATTERN.sub("***MASKED***", value)
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
