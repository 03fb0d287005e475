"""
WSGI config for the portfolio backend.

Started from inside backend/ (``cd backend && gunicorn core.wsgi``), so the
settings module is addressed without a package prefix.
"""

import os

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'core.settings')

from django.core.wsgi import get_wsgi_application

application = get_wsgi_application()
