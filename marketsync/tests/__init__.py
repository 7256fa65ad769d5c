"""marketsync test suite."""

from marketsync.config.celery import app as celery_app

# Run Celery tasks synchronously so task logic is exercised without a worker.
celery_app.conf.update(task_always_eager=True)
