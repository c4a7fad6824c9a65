"""
Celery configuration for the Django application.

Celery runs the periodic payment jobs:
- Authorizing holds for confirmed reservations inside the lead-time window
- Capturing holds whose capture date has arrived
- Reconciling holds whose local status may lag the gateway

This configuration uses Redis as both the message broker and result backend.
Tasks are auto-discovered from all installed Django apps; schedules live in
the database (django-celery-beat) and are seeded by payments migrations.

Usage:
    # Run the worker and the beat scheduler:
    celery -A config worker -l info
    celery -A config beat -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Create Celery application instance
# The name should match the Django project name
app = Celery("config")

# Load configuration from Django settings
# All Celery settings should be prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks from all registered Django apps
# Celery will look for a tasks.py module in each installed app
# (payments.tasks re-exports the tasks defined in payments.workers)
app.autodiscover_tasks()
