"""Django project package for the medbook backend."""
from .celery import app as celery_app

__all__ = ("celery_app",)
