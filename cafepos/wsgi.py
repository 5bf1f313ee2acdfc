"""
WSGI config for the cafepos project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'cafepos.settings')

application = get_wsgi_application()
