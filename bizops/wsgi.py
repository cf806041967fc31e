"""WSGI entry point for the bizops compliance service."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "bizops.settings.development")

application = get_wsgi_application()
