"""Django settings for the marketsync project.

Every value can be overridden through environment variables so the same
module serves local development, CI and production deployments.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> list[str]:
    raw = os.environ.get(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "django-insecure-marketsync-dev-key")
DEBUG = _env_bool("DJANGO_DEBUG", default=False)
ALLOWED_HOSTS = _env_list("DJANGO_ALLOWED_HOSTS") or ["*"]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "django_filters",
    "marketsync",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "marketsync.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

if os.environ.get("POSTGRES_DB"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ["POSTGRES_DB"],
            "USER": os.environ.get("POSTGRES_USER", "postgres"),
            "PASSWORD": os.environ.get("POSTGRES_PASSWORD", ""),
            "HOST": os.environ.get("POSTGRES_HOST", "localhost"),
            "PORT": os.environ.get("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "es-cl"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

SECURE_SSL_REDIRECT = _env_bool("DJANGO_SECURE_SSL_REDIRECT", default=not DEBUG)
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

# --- REST framework ---
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "marketsync.api.authentication.api_key_authentication.ApiKeyAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
        "marketsync.api.permissions.ip_whitelist_permission.IPWhitelistPermission",
    ],
    "DEFAULT_FILTER_BACKENDS": ["django_filters.rest_framework.DjangoFilterBackend"],
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": 50,
}

API_KEY = os.environ.get("API_KEY", "")
API_ALLOWED_IPS = _env_list("API_ALLOWED_IPS")
API_TRUST_FORWARDED_FOR = _env_bool("API_TRUST_FORWARDED_FOR", default=False)
FALABELLA_WEBHOOK_TOKEN = os.environ.get("FALABELLA_WEBHOOK_TOKEN", "")

# --- Celery ---
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TIMEZONE = "America/Santiago"
CELERY_BEAT_SCHEDULE = {
    "sync-ml-orders-today": {
        "task": "marketsync.tasks.periodic.run_sync_ml_orders",
        "schedule": 60 * 30,
    },
    "sync-ml-status-changes": {
        "task": "marketsync.tasks.periodic.run_sync_ml_status_changes",
        "schedule": 60 * 60 * 6,
    },
}

# --- Mercado Libre ---
MERCADOLIBRE_CLIENT_ID = os.environ.get("MERCADOLIBRE_CLIENT_ID", "")
MERCADOLIBRE_CLIENT_SECRET = os.environ.get("MERCADOLIBRE_CLIENT_SECRET", "")
MERCADOLIBRE_BASE_URL = os.environ.get("MERCADOLIBRE_BASE_URL", "https://api.mercadolibre.com")
MERCADOLIBRE_SELLER_ID = os.environ.get("MERCADOLIBRE_SELLER_ID", "")
MERCADOLIBRE_AUTH_URL = os.environ.get("MERCADOLIBRE_AUTH_URL", "https://auth.mercadolibre.cl")
MERCADOLIBRE_REDIRECT_URI = os.environ.get("MERCADOLIBRE_REDIRECT_URI", "http://localhost:8000/mercadolibre/callback/")
# Mercado Libre reports and bills in a fixed UTC-4 offset regardless of DST.
MERCADOLIBRE_TIMEZONE_OFFSET_HOURS = int(os.environ.get("MERCADOLIBRE_TIMEZONE_OFFSET_HOURS", "-4"))
LOCAL_TIMEZONE = os.environ.get("LOCAL_TIMEZONE", "America/Santiago")

# --- Order sync ---
ORDER_SYNC_PAGE_SIZE = int(os.environ.get("ORDER_SYNC_PAGE_SIZE", "50"))
ORDER_SYNC_BATCH_SIZE = int(os.environ.get("ORDER_SYNC_BATCH_SIZE", "10"))
ORDER_SYNC_MAX_WORKERS = int(os.environ.get("ORDER_SYNC_MAX_WORKERS", "5"))
ORDER_SYNC_DAYS_PER_BATCH = int(os.environ.get("ORDER_SYNC_DAYS_PER_BATCH", "3"))
ORDER_SYNC_BATCH_PAUSE_SECONDS = float(os.environ.get("ORDER_SYNC_BATCH_PAUSE_SECONDS", "2"))
ORDER_SYNC_MAX_RANGE_DAYS = int(os.environ.get("ORDER_SYNC_MAX_RANGE_DAYS", "62"))

# --- Finance ---
VAT_PERCENTAGE = os.environ.get("VAT_PERCENTAGE", "19")
# Reconciliation alerts and pending sales dated before this day are hidden.
TRACKING_ACTIVATION_DATE = os.environ.get("TRACKING_ACTIVATION_DATE", "2025-01-01")

# --- Logging ---
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": os.environ.get("DJANGO_LOG_LEVEL", "WARNING"),
            "propagate": False,
        },
        "marketsync": {
            "level": LOG_LEVEL,
        },
    },
}
