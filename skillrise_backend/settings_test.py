import os

os.environ.setdefault("USE_SQLITE_FOR_TESTS", "1")

from .settings import *  # noqa: F401,F403


PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

ALLOWED_HOSTS = [*ALLOWED_HOSTS, "testserver"]

LOGGING["loggers"]["core"]["level"] = "CRITICAL"
