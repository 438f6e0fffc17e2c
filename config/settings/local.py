from celery.schedules import crontab

from .base import *  # Import defaults from base.py

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env("SECRET_KEY", default="django-insecure-dev-key")

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = True

ALLOWED_HOSTS = ["*"]

# Database
# 'env.db()' automatically parses the 'DATABASE_URL' from docker-compose.yml
# e.g., postgres://postgres:postgres@db:5432/cafe_pos
DATABASES = {
    "default": env.db(default="sqlite:///" + str(BASE_DIR / "db.sqlite3")),
}

# Redis Cache
CACHES = {
    "default": {
        "BACKEND": "django_redis.cache.RedisCache",
        "LOCATION": env("REDIS_URL", default="redis://redis:6379/0"),
        "OPTIONS": {
            "CLIENT_CLASS": "django_redis.client.DefaultClient",
        },
    }
}

# --- CELERY SETTINGS ---
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
        # Run at 00:30 on January 1st
        "schedule": crontab(minute=30, hour=0, day_of_month=1, month_of_year=1),
    },
}
