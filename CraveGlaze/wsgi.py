"""
WSGI config for CraveGlaze project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'CraveGlaze.settings')

application = get_wsgi_application()
