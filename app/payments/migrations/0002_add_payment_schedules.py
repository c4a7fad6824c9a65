"""
Add celery-beat schedules for the deferred-payment workers.

- Authorize pending reservations: every minute
- Capture due holds: every minute
- Reconcile stale holds: every 15 minutes
"""

from django.db import migrations

PERIODIC_TASKS = [
    {
        "name": "Authorize Pending Reservations",
        "task": "payments.workers.authorization_worker.authorize_pending_reservations",
        "every": 1,
        "description": (
            "Creates manual-capture authorizations for confirmed reservations "
            "starting within the authorization window."
        ),
    },
    {
        "name": "Capture Due Holds",
        "task": "payments.workers.capture_worker.capture_due_holds",
        "every": 1,
        "description": "Captures holds whose capture date has arrived.",
    },
    {
        "name": "Reconcile Stale Holds",
        "task": "payments.workers.reconciliation_worker.reconcile_stale_holds",
        "every": 15,
        "description": (
            "Re-reads holds stuck awaiting capture from Stripe and heals "
            "their local status."
        ),
    },
]


def create_periodic_tasks(apps, schema_editor):
    """Create the interval schedules and periodic tasks."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for entry in PERIODIC_TASKS:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=entry["every"],
            period="minutes",
        )
        PeriodicTask.objects.get_or_create(
            name=entry["name"],
            defaults={
                "task": entry["task"],
                "interval": schedule,
                "enabled": True,
                "description": entry["description"],
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[entry["name"] for entry in PERIODIC_TASKS],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
