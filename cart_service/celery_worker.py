# cart_service/celery_worker.py
from celery import Celery

from cart_service.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CELERY_TASK_ALWAYS_EAGER,
)

celery_app = Celery(
    "cart",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# tasks are registered by importing their modules
celery_app.conf.imports = (
    "cart_service.services.notification_service",
)

celery_app.conf.timezone = "UTC"
# run tasks in-process, for tests and local development without a broker
celery_app.conf.task_always_eager = CELERY_TASK_ALWAYS_EAGER
