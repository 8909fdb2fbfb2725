"""
Django settings for core project.

Конфигурация через переменные окружения; без POSTGRES_DB работаем на SQLite
(row-lock select_for_update там no-op, для продакшна нужен PostgreSQL).
"""
import os
from pathlib import Path

from core.logging import build_logging_config, configure_structlog


def env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-insecure-secret-key")
DEBUG = env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "config.orgs",
    "config.dictionaries",
    "apps.orders",
    "apps.payments",
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

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# Payments
PAYMENT_GATEWAY = {
    "CLIENT": os.environ.get("PAYMENT_GATEWAY_CLIENT", "apps.payments.gateway.sandbox.SandboxGatewayClient"),
    "TIMEOUT_S": int(os.environ.get("PAYMENT_GATEWAY_TIMEOUT_S", "10")),
}

# False: reconciler логирует и глотает ошибки (batch), True: пробрасывает
PENDING_AUTHORIZATION_THROW_EXCEPTIONS = env_bool("PENDING_AUTHORIZATION_THROW_EXCEPTIONS", False)

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOGGING = build_logging_config(level=LOG_LEVEL, debug=DEBUG)
configure_structlog()
