"""
ASGI config for the bakery back-office project.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'bakery.config.settings')

application = get_asgi_application()
