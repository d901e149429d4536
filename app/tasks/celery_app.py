from celery import Celery
from celery.signals import setup_logging

from app.core.config import get_settings
from app.core.logging import configure_logging

settings = get_settings()

celery = Celery(
    "prompt_arena",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.tasks.tasks"],
)
celery.conf.update(
    timezone="UTC",
    task_track_started=True,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    beat_schedule={
        "dispatch-outbox": {
            "task": "app.tasks.tasks.dispatch_outbox",
            "schedule": 30,
        }
    },
)


@setup_logging.connect
def _configure_worker_logging(**_) -> None:
    configure_logging()
