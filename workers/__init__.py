# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# This package contains the Celery configuration and task definitions for
# background maintenance of the image store.
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions (orphaned image sweep)
# - config.py: Worker-specific settings and beat schedule
#
# Usage:
#   celery -A workers.celery_app worker --beat --loglevel=info
#
#   # Trigger a sweep manually
#   from workers.tasks import sweep_orphaned_images
#   sweep_orphaned_images.delay()
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
