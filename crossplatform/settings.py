"""
Django settings for the crossplatform project.

Everything deployment specific is read from the environment; a local
``.env.dev`` file is loaded first when present.
"""

import os
import sys
from pathlib import Path
from urllib.parse import unquote, urlparse

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env.dev")


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_list(name, default=""):
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


TESTING = "test" in sys.argv or "pytest" in sys.modules

SECRET_KEY = os.environ.get(
    "SECRET_KEY", "django-insecure-crossplatform-development-key"
)

DEBUG = env_bool("DEBUG", default=False)

ALLOWED_HOSTS = env_list("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")


INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "corsheaders",
    "rest_framework",
    "contact",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "crossplatform.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {"context_processors": []},
    },
]

WSGI_APPLICATION = "crossplatform.wsgi.application"
ASGI_APPLICATION = "crossplatform.asgi.application"


# Database
#
# DB_ENGINE picks the backend: "postgresql" (psycopg2), "mssql" (mssql-django)
# or "sqlite" for local development and tests.

DB_CONNECT_TIMEOUT = int(os.environ.get("DB_CONNECT_TIMEOUT", 5))
DB_STATEMENT_TIMEOUT_MS = int(os.environ.get("DB_STATEMENT_TIMEOUT_MS", 5000))
DB_CONN_MAX_AGE = int(os.environ.get("DB_CONN_MAX_AGE", 60))

DATABASE_URL = os.environ.get("DATABASE_URL")
DB_ENGINE = os.environ.get("DB_ENGINE", "postgresql" if DATABASE_URL else "sqlite")


def database_settings(engine, url=None):
    if engine == "sqlite":
        return {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.environ.get("DB_NAME", BASE_DIR / "db.sqlite3"),
            "OPTIONS": {"timeout": DB_CONNECT_TIMEOUT},
        }

    config = {
        "NAME": os.environ.get("DB_NAME", "crossplatformdb"),
        "USER": os.environ.get("DB_USER", ""),
        "PASSWORD": os.environ.get("DB_PASSWORD", ""),
        "HOST": os.environ.get("DB_HOST", "localhost"),
        "PORT": os.environ.get("DB_PORT", ""),
        "CONN_MAX_AGE": DB_CONN_MAX_AGE,
        "CONN_HEALTH_CHECKS": True,
    }
    if url:
        parsed = urlparse(url)
        config.update(
            {
                "NAME": parsed.path.lstrip("/") or config["NAME"],
                "USER": unquote(parsed.username or ""),
                "PASSWORD": unquote(parsed.password or ""),
                "HOST": parsed.hostname or config["HOST"],
                "PORT": str(parsed.port or ""),
            }
        )

    if engine == "postgresql":
        config["ENGINE"] = "django.db.backends.postgresql"
        config["OPTIONS"] = {
            "connect_timeout": DB_CONNECT_TIMEOUT,
            "options": f"-c statement_timeout={DB_STATEMENT_TIMEOUT_MS}",
        }
        if env_bool("DB_SSL", default=bool(url)):
            config["OPTIONS"]["sslmode"] = "require"
    elif engine == "mssql":
        config["ENGINE"] = "mssql"
        config["OPTIONS"] = {
            "driver": os.environ.get("DB_DRIVER", "ODBC Driver 18 for SQL Server"),
            "connection_timeout": DB_CONNECT_TIMEOUT,
            "query_timeout": max(1, DB_STATEMENT_TIMEOUT_MS // 1000),
            "extra_params": "TrustServerCertificate=yes",
        }
    else:
        raise ValueError(f"Unsupported DB_ENGINE: {engine}")
    return config


DATABASES = {"default": database_settings(DB_ENGINE, DATABASE_URL)}

CONTACT_DATABASE_ALIAS = os.environ.get("CONTACT_DATABASE_ALIAS", "default")

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# Cache backs the create rate limit; it has to be shared between workers in
# production, so Redis is used whenever REDIS_URL is set.

REDIS_URL = os.environ.get("REDIS_URL")

if REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": REDIS_URL,
        }
    }
else:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        }
    }

CONTACT_RATE_LIMIT = os.environ.get("CONTACT_RATE_LIMIT", "5/m")


REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "UNAUTHENTICATED_USER": None,
    "EXCEPTION_HANDLER": "contact.exceptions.api_exception_handler",
    "TEST_REQUEST_DEFAULT_FORMAT": "json",
}


CORS_ALLOW_ALL_ORIGINS = env_bool("CORS_ALLOW_ALL_ORIGINS", default=DEBUG)
CORS_ALLOWED_ORIGINS = env_list("CORS_ALLOWED_ORIGINS")


LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


# Logging

LOGS_DIR = BASE_DIR / "logs"
os.makedirs(LOGS_DIR, exist_ok=True)

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
        "error_file": {
            "level": "ERROR",
            "class": "logging.FileHandler",
            "filename": LOGS_DIR / "django_errors.log",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console", "error_file"],
            "level": os.environ.get("DJANGO_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
        "contact": {
            "handlers": ["console", "error_file"],
            "level": os.environ.get("CONTACT_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
