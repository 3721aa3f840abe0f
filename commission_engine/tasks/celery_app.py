"""Celery configuration."""
from celery import Celery
from celery.signals import setup_logging

from commission_engine.core.config import settings
from commission_engine.core.logging import configure_logging


celery_app = Celery(
    "commission_engine",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["commission_engine.tasks.commission_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
)


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    configure_logging()
