"""
WSGI config for the shippingaid project.

Served by gunicorn, see gunicorn.conf.py:

    gunicorn shippingaid.wsgi:application -c gunicorn.conf.py
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'shippingaid.settings')

application = get_wsgi_application()
