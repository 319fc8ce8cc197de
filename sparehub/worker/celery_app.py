from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging as celery_setup_logging

from sparehub.core.config import settings
from sparehub.core.logging_config import setup_logging

celery_app = Celery(
    "sparehub_worker",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["sparehub.worker.jobs"],
)

celery_app.conf.update(
    task_track_started=True,
    timezone="UTC",
    enable_utc=True,
    worker_hijack_root_logger=False,
    beat_schedule={
        # раз в час помечаем просроченные заявки
        "sweep-expired-requests": {
            "task": "requests.sweep_expired",
            "schedule": crontab(minute=settings.sweep_cron_minute),
        },
    },
)


@celery_setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    setup_logging(settings.log_level)
