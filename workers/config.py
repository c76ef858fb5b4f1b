# =============================================================================
# workers/config.py - Celery Worker Configuration
# =============================================================================
# Broker, serialization and the beat schedule for image store maintenance.
# =============================================================================

from app.config import settings


class CeleryConfig:
    """
    Applied to the Celery app via app.config_from_object().

    The only periodic job is the orphaned image sweep; it runs on its own
    queue so a long sweep never delays ad-hoc tasks on `default`.
    """

    # -------------------------------------------------------------------------
    # Redis
    # -------------------------------------------------------------------------

    broker_url = settings.REDIS_URL
    result_backend = settings.REDIS_URL
    result_expires = 24 * 3600

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    # Redeliver a sweep whose worker died mid-run; sweeping twice is harmless
    task_acks_late = True
    task_reject_on_worker_lost = True
    worker_prefetch_multiplier = 1

    # Listing a large bucket is paged; allow a generous window
    task_time_limit = 900
    task_soft_time_limit = 840

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]

    # -------------------------------------------------------------------------
    # Queues
    # -------------------------------------------------------------------------

    task_default_queue = "default"
    task_queues = {
        "default": {"exchange": "default", "routing_key": "default"},
        "maintenance": {"exchange": "maintenance", "routing_key": "maintenance"},
    }
    task_routes = {
        "workers.tasks.sweep_orphaned_images": {"queue": "maintenance"},
    }

    # -------------------------------------------------------------------------
    # Beat Schedule
    # -------------------------------------------------------------------------

    beat_schedule = {
        "sweep-orphaned-location-images": {
            "task": "workers.tasks.sweep_orphaned_images",
            "schedule": float(settings.ORPHAN_SWEEP_INTERVAL_SECONDS),
            # A sweep that waited longer than one interval is superseded
            "options": {"expires": float(settings.ORPHAN_SWEEP_INTERVAL_SECONDS)},
        },
    }

    timezone = "UTC"
    enable_utc = True
