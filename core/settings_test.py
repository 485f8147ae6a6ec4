import tempfile

from .settings import *  # noqa: F401,F403

DEBUG = False
SECRET_KEY = "test-secret-key"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

PAYSTACK_SECRET_KEY = "sk_test_webhook_secret"
PAYSTACK_BASE_URL = "https://api.paystack.test"
FRONTEND_URL = "https://shop.example.com"
BACKEND_URL = "https://api.example.com"

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

STORAGES = {
    **STORAGES,  # noqa: F405
    "invoices": {
        "BACKEND": "django.core.files.storage.FileSystemStorage",
        "OPTIONS": {
            "location": tempfile.mkdtemp(prefix="invoices-"),
            "base_url": "/media/invoices/",
        },
    },
}
