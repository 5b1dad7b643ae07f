import os

from .base import *  # noqa: F401,F403

DEBUG = True
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key")

# SQLite for CI speed/simplicity if DATABASE_URL absent
if not os.environ.get("DATABASE_URL"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "test.db",  # noqa: F405
        }
    }

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}

STRIPE_SECRET_KEY = "sk_test_gorentals"
STRIPE_WEBHOOK_SECRET = "whsec_test"
MERCADOPAGO_ACCESS_TOKEN = "TEST-mp-token"
MERCADOPAGO_WEBHOOK_SECRET = ""
FRONTEND_ORIGIN = "http://testserver"
BACKEND_ORIGIN = "http://testserver"
