from celery import Celery
from celery.schedules import crontab
from kombu import Exchange, Queue
from chat_history import models  # noqa: F401 - registra os modelos no Base
from chat_history.core.constants import CeleryConstants
from chat_history.core.settings import settings

# Filas explícitas: rollups/retenção na 'maintenance', falhas na 'dead_letter'
default_exchange = Exchange('default', type='direct')
task_queues = (
    Queue('default', default_exchange, routing_key='default'),
    Queue('maintenance', default_exchange, routing_key='maintenance'),
    Queue('dead_letter', default_exchange, routing_key='dead_letter'),
)

task_routes = {
    'rollup_previous_hour_task': {'queue': 'maintenance', 'routing_key': 'maintenance'},
    'rollup_day_task': {'queue': 'maintenance', 'routing_key': 'maintenance'},
    'run_retention_task': {'queue': 'maintenance', 'routing_key': 'maintenance'},
    'daily_maintenance_task': {'queue': 'maintenance', 'routing_key': 'maintenance'},
}

# Agenda (celery beat). A retenção diária roda depois dos rollups do dia anterior,
# na mesma tarefa, para não apagar mensagens ainda não agregadas.
beat_schedule = {
    'hourly-analytics-rollup': {
        'task': 'rollup_previous_hour_task',
        'schedule': crontab(minute=CeleryConstants.HOURLY_ROLLUP_MINUTE),
    },
    'daily-maintenance': {
        'task': 'daily_maintenance_task',
        'schedule': crontab(minute=0, hour=CeleryConstants.DAILY_MAINTENANCE_HOUR),
    },
}

celery_app = Celery("chat_history")

celery_app.conf.update(
    broker_url=settings.CELERY_BROKER_URL,
    result_backend=settings.CELERY_RESULT_BACKEND,
    include=["chat_history.analytics.tasks", "chat_history.retention.tasks"],

    task_queues=task_queues,
    task_routes=task_routes,
    task_default_queue='default',
    beat_schedule=beat_schedule,
    timezone='UTC',
    enable_utc=True,

    task_publish_retry=True,
    task_publish_retry_policy={
        'max_retries': 3,
        'interval_start': 0,
        'interval_step': 0.2,
        'interval_max': 0.2,
    },
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)
