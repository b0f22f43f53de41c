# config/settings/test.py
from .base import *  # noqa

# File-backed SQLite so threaded tests share one database; IMMEDIATE makes
# every transaction take the write lock up front (serializes writers).
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "clinic.sqlite3",
        "OPTIONS": {
            "transaction_mode": "IMMEDIATE",
            "timeout": 20,
        },
        "TEST": {
            "NAME": BASE_DIR / "clinic_test.sqlite3",
        },
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

TIME_ZONE = "Africa/Johannesburg"

LOGGING["loggers"]["clinic_core"]["level"] = "WARNING"
