"""
Celery application for background work.

Run a worker with ``celery -A medbook worker -l info`` and the periodic
scheduler with ``celery -A medbook beat -l info``.  Configuration is
taken from the Django settings using the ``CELERY_`` prefix.
"""
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "medbook.settings")

app = Celery("medbook")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
