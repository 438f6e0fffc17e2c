"""
Shared settings for every environment.
Environment specific modules (local, production, test) import * from here.
"""

from decimal import Decimal
from pathlib import Path

import environ

BASE_DIR = Path(__file__).resolve().parent.parent.parent

env = environ.Env()

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "rest_framework",
    "core",
    "catalog",
    "loyalty",
    "promotions",
    "sales",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

REST_FRAMEWORK = {
    # Authentication is terminated at the gateway in front of the POS API.
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "UNAUTHENTICATED_USER": None,
    "EXCEPTION_HANDLER": "core.exceptions.pos_exception_handler",
    "COERCE_DECIMAL_TO_STRING": True,
}

# --- POINT OF SALE POLICY ---
# Tax applied to (subtotal - discount).
SALES_TAX_RATE = Decimal(env.str("SALES_TAX_RATE", default="0.00"))

# Points credited per currency unit of the sale total (floored).
LOYALTY_EARN_RATE = Decimal(env.str("LOYALTY_EARN_RATE", default="1"))

# Points credited when a customer enrols in the programme. 0 disables the bonus.
LOYALTY_SIGNUP_BONUS = env.int("LOYALTY_SIGNUP_BONUS", default=0)

# Credits older than this many full calendar years are expired by the yearly task.
LOYALTY_POINTS_RETENTION_YEARS = env.int("LOYALTY_POINTS_RETENTION_YEARS", default=2)

# Single source of truth for tier computation.
# A customer reaches a tier when total_spent >= total_spent OR visit_count >= visit_count.
# BRONZE is the implicit floor and has no entry.
LOYALTY_TIER_THRESHOLDS = {
    "SILVER": {"total_spent": Decimal("100.00"), "visit_count": 10},
    "GOLD": {"total_spent": Decimal("500.00"), "visit_count": 25},
    "PLATINUM": {"total_spent": Decimal("1500.00"), "visit_count": None},
}

# Seconds the list of running campaign ids stays cached (signals also invalidate it).
RUNNING_CAMPAIGNS_CACHE_TIMEOUT = env.int("RUNNING_CAMPAIGNS_CACHE_TIMEOUT", default=300)

# --- CELERY SETTINGS ---
CELERY_ACCEPT_CONTENT = ["application/json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {message}",
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
        "level": "INFO",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "catalog": {"level": "INFO", "propagate": True},
        "loyalty": {"level": "INFO", "propagate": True},
        "promotions": {"level": "INFO", "propagate": True},
        "sales": {"level": "INFO", "propagate": True},
    },
}
