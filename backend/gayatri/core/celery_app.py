from celery import Celery
from celery.schedules import crontab

from .config import get_settings
from .logging import configure_logging

settings = get_settings()
configure_logging()

celery_app = Celery(
    "gayatri",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_routes={
        "gayatri.services.platform_sync.*": {"queue": "integrations"},
    },
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    imports=("gayatri.services.jobs", "gayatri.services.platform_sync"),
    beat_schedule={
        # Campaigns past their end date -> COMPLETED, MOUs past expiry -> EXPIRED
        "expire-campaigns": {
            "task": "gayatri.services.jobs.expire_campaigns",
            "schedule": crontab(hour=0, minute=0),
        },
        "capture-active-campaign-snapshots": {
            "task": "gayatri.services.jobs.capture_active_campaign_snapshots",
            "schedule": crontab(hour=1, minute=0),
        },
        "refresh-stale-tiktok-connections": {
            "task": "gayatri.services.platform_sync.refresh_stale_tiktok_connections",
            "schedule": crontab(minute=0),
        },
    },
)
