"""
PharmaStock — Celery Application

Workers discover tasks in every installed app. The nightly ledger check
and the forecast refresh are registered here; django_celery_beat's
DatabaseScheduler picks them up and lets admins reschedule them.

@file config/celery.py
"""

import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

app = Celery('pharmastock')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

app.conf.beat_schedule = {
    'verify-stock-ledger': {
        'task': 'stock.verify_ledger',
        'schedule': crontab(hour=2, minute=0),
    },
    'refresh-forecasts': {
        'task': 'analytics.refresh_forecasts',
        'schedule': crontab(minute=5),
    },
}
