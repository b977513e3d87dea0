"""
Celery tasks for background processing.
"""

from .celery_app import app as celery_app

__all__ = ["celery_app"]
