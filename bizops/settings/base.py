"""Base settings shared by every environment.

Environment-specific modules (development.py, test.py) set defaults for the
required environment variables and then import everything from here.
"""
import os
from pathlib import Path

import dj_database_url
from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def require_env(name):
    """Return an environment variable or fail loudly at startup."""
    value = os.environ.get(name)
    if not value:
        raise ImproperlyConfigured(f"Required environment variable {name} is not set.")
    return value


SECRET_KEY = require_env("SECRET_KEY")
DEBUG = False
ALLOWED_HOSTS = [h.strip() for h in os.environ.get("ALLOWED_HOSTS", "").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "apps.audit",
    "apps.fields",
    "apps.customers",
    "apps.records",
    "apps.checklists",
    "apps.prerequisites",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "bizops.middleware.actor.ActorMiddleware",
]

ROOT_URLCONF = "bizops.urls"
WSGI_APPLICATION = "bizops.wsgi.application"

# Two databases: the main application database and an append-only audit
# database. The audit DB role should have INSERT/SELECT only.
DATABASES = {
    "default": dj_database_url.parse(require_env("DATABASE_URL"), conn_max_age=600),
    "audit": dj_database_url.parse(require_env("AUDIT_DATABASE_URL"), conn_max_age=600),
}
DATABASE_ROUTERS = ["bizops.db_router.AuditRouter"]

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# PII encryption key(s). Comma-separated for rotation; first key encrypts.
FIELD_ENCRYPTION_KEY = require_env("FIELD_ENCRYPTION_KEY")

# ── Compliance gate ───────────────────────────────────────────────────

# Customers ACTIVE with no activity for longer than this are proposed as
# DORMANT candidates by the dormancy scan.
DORMANCY_THRESHOLD_DAYS = int(os.environ.get("DORMANCY_THRESHOLD_DAYS", "90"))

# Per-context override of the prerequisite failure policy, e.g.
# {"PROPOSAL_SEND": "fail_closed"}. Contexts not listed use the defaults
# in apps/prerequisites/policy.py.
PREREQUISITE_FAILURE_POLICY = {}

# Org roles allowed to change lifecycle status and run the deletion workflow.
LIFECYCLE_ADMIN_ROLES = ("admin", "owner")

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
        "level": os.environ.get("LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "django.db.backends": {
            "level": "WARNING",
        },
    },
}
