"""
WSGI config for the centerdesk project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'centerdesk.settings')

application = get_wsgi_application()
