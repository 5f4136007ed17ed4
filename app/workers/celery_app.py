from celery import Celery
from celery.schedules import crontab
import os
from app.core.config import settings

# Create Celery app
celery_app = Celery(
    "hospital_ipd",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["app.workers.tasks"]
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Beat crontabs are read in hospital local time
    timezone=settings.HOSPITAL_TIMEZONE,
    enable_utc=True,
    
    # Worker settings
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    worker_max_tasks_per_child=1000,
    
    # Task routing
    task_routes={
        "app.workers.tasks.*": {"queue": "billing"},
    },
    
    # Queue definitions; workers started without -Q consume billing
    task_queues={
        "billing": {
            "exchange": "billing",
            "routing_key": "billing",
        },
    },
    task_default_queue="billing",
    
    # Beat schedule (periodic tasks)
    beat_schedule={
        "daily-bed-charges": {
            "task": "app.workers.tasks.post_daily_bed_charges",
            "schedule": crontab(
                hour=settings.BED_CHARGE_CRON_HOUR,
                minute=settings.BED_CHARGE_CRON_MINUTE
            ),
        },
    },
    
    # Result backend settings
    result_expires=3600,  # 1 hour
    
    # Error handling
    task_reject_on_worker_lost=True,
    
    broker_connection_retry_on_startup=True,
)

if os.getenv("ENVIRONMENT") == "production":
    celery_app.conf.update(
        worker_log_format="[%(asctime)s: %(levelname)s/%(processName)s] %(message)s",
        worker_task_log_format="[%(asctime)s: %(levelname)s/%(processName)s][%(task_name)s(%(task_id)s)] %(message)s",
        worker_log_color=False,
        worker_concurrency=2,
    )


if __name__ == "__main__":
    celery_app.start()
