"""
WSGI config for the bakery back-office project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'bakery.config.settings')

application = get_wsgi_application()
