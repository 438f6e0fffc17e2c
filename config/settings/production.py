from celery.schedules import crontab

from .base import *

SECRET_KEY = env("SECRET_KEY")

DEBUG = env.bool("DEBUG", default=False)

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS")


DATABASES = {
    "default": env.db(),
}
# Sale commits hold row locks briefly; fail fast instead of queueing behind a stuck transaction.
DATABASES["default"].setdefault("OPTIONS", {})
DATABASES["default"]["OPTIONS"].setdefault("options", "-c lock_timeout=5000")

CACHES = {
    "default": {
        "BACKEND": "django_redis.cache.RedisCache",
        "LOCATION": env("REDIS_URL", default="redis://redis:6379/0"),
        "OPTIONS": {
            "CLIENT_CLASS": "django_redis.client.DefaultClient",
        },
    }
}


CELERY_BROKER_URL = env("REDIS_URL", default="redis://redis:6379/0")
CELERY_RESULT_BACKEND = env("REDIS_URL", default="redis://redis:6379/0")

CELERY_BEAT_SCHEDULE = {
    "deactivate_spent_discount_codes": {
        "task": "promotions.tasks.deactivate_spent_discount_codes",
        "schedule": crontab(minute=0),
    },
    "sync_campaign_statuses": {
        "task": "promotions.tasks.sync_campaign_statuses",
        "schedule": crontab(minute="*/5"),
    },
    "expire_old_points_yearly": {
        "task": "loyalty.tasks.process_yearly_points_expiration",
        "schedule": crontab(minute=30, hour=0, day_of_month=1, month_of_year=1),
    },
}


# --- SECURITY & PROXY HEADERS ---
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
