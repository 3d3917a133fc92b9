# sharedcart/celery_worker.py
from celery import Celery

from sharedcart.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    EXPIRY_SWEEP_INTERVAL_SECONDS,
)

celery_app = Celery(
    "sharedcart",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# WAŻNE: Explicite importuj taski, żeby Celery je zarejestrował
celery_app.conf.imports = (
    "sharedcart.tasks.expire",
    "sharedcart.services.notification_service",
)

# Konfiguracja beat schedule
celery_app.conf.beat_schedule = {
    "expire-shared-carts": {
        "task": "sharedcart.tasks.expire.expire_shared_carts_task",
        "schedule": float(EXPIRY_SWEEP_INTERVAL_SECONDS),
    },
}

celery_app.conf.timezone = "UTC"
