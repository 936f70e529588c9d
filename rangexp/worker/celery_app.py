"""
Celery 应用配置

异步任务处理：
- 成就回溯处理
"""

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from rangexp.core.config import settings
from rangexp.core.logging import setup_logging

celery_app = Celery(
    "rangexp_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "rangexp.worker.tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=3600,  # 1 小时
    task_soft_time_limit=3000,  # 50 分钟
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)

celery_app.conf.beat_schedule = {
    "process-pending-achievements": {
        "task": "achievements.process_all_pending",
        "schedule": 86400.0,  # 每天
    },
}


@celery_setup_logging.connect
def configure_logging(**kwargs):
    """由 structlog 接管 worker 日志"""
    setup_logging()
