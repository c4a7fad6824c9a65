"""
WSGI entry point for the payments API.

Exposes the WSGI callable as a module-level variable named `application`.
Celery workers and beat do not go through this module.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
