import os

from celery import Celery

# Set the default Django settings module to 'marketsync.settings'
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "marketsync.settings")

app = Celery("marketsync")

# Load config from Django settings, namespace='CELERY' means keys must start with CELERY_
app.config_from_object("django.conf:settings", namespace="CELERY")

# The project is a single app whose tasks live in the marketsync.tasks package.
app.autodiscover_tasks(["marketsync"], related_name="tasks")
