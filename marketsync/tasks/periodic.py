"""Periodic tasks for Celery Beat."""

from celery import shared_task
from django.core.management import call_command


@shared_task
def run_sync_ml_orders():
    """Run the sync_ml_orders management command for today."""
    call_command("sync_ml_orders")


@shared_task
def run_sync_ml_status_changes():
    """Run the sync_ml_orders management command in status-change mode."""
    call_command("sync_ml_orders", "--status-changes")
