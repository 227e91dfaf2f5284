from celery import Celery

from app.config import settings

celery_app = Celery(
    "olumba",
    broker=settings.celery_broker_url,
    include=["app.tasks.email"],
)
celery_app.conf.update(
    task_always_eager=settings.celery_task_always_eager,
    task_ignore_result=True,
    task_serializer="json",
    accept_content=["json"],
    timezone="UTC",
)
