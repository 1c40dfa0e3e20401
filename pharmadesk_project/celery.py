import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'pharmadesk_project.settings')

app = Celery('pharmadesk')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
