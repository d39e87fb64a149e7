"""WSGI entry point for the carrent project."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "carrent.settings")

application = get_wsgi_application()
