"""
WSGI entry point for production, e.g.

    gunicorn pto_tracker.wsgi:application --workers 1

Keep a single worker process: end-of-PTO alerts are scheduled in memory.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'pto_tracker.settings')

application = get_wsgi_application()

from pto.startup import boot  # noqa: E402

boot()
