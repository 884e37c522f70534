"""
WSGI config for crossplatform project.

It exposes the WSGI callable as a module-level variable named ``application``.
"""

import os

from django.apps import apps
from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "crossplatform.settings")

application = get_wsgi_application()

apps.get_app_config("contact").log_connection_status()
