import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "library_service.settings")

# Worker and beat share one app; every option lives in settings as CELERY_*.
app = Celery("library_service")
app.config_from_object("django.conf:settings", namespace="CELERY")

# notifications.tasks holds the overdue sweep, the report and the alerts.
app.autodiscover_tasks()
