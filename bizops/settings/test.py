"""Test settings — SQLite for fast tests without PostgreSQL.

Local dev: uses in-memory SQLite by default (fast, no cleanup needed).
CI: set DATABASE_URL and AUDIT_DATABASE_URL env vars to file-based SQLite
    (e.g. sqlite:///ci-test.db) so xdist workers and TransactionTestCase
    sqlflush calls work correctly across process boundaries.
"""
import os

import dj_database_url

# Provide test defaults BEFORE importing base (which calls require_env).
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://:memory:")
os.environ.setdefault("AUDIT_DATABASE_URL", "sqlite://:memory:")
# Test-only key — never use in development or production
os.environ.setdefault("FIELD_ENCRYPTION_KEY", "TUVSTlZ6a09VRWlMU0FzZjhOWlNhTFZfVFIxaURFbXM=")

from .base import *  # noqa: F401, F403

DEBUG = True
ALLOWED_HOSTS = ["*"]

DATABASES = {
    "default": dj_database_url.parse(
        os.environ["DATABASE_URL"],
        conn_max_age=0,
    ),
    "audit": dj_database_url.parse(
        os.environ["AUDIT_DATABASE_URL"],
        conn_max_age=0,
    ),
}

# Keep a fixed threshold in tests regardless of the shell environment
DORMANCY_THRESHOLD_DAYS = 90
