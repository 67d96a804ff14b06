"""
Management command to advance the lease clock.

Moves every countersigned application whose lease start date has passed
to ``occupied``. Meant to run periodically (e.g. from cron).

Usage:
    python manage.py tick_lease_clock
    python manage.py tick_lease_clock --dry-run
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.applications.services import advance_lease_clock, due_for_occupancy


class Command(BaseCommand):
    help = 'Move countersigned applications whose lease has started to occupied'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the applications that would move without changing them',
        )

    def handle(self, *args, **options):
        now = timezone.now()

        if options['dry_run']:
            due = due_for_occupancy(now)
            if not due:
                self.stdout.write(self.style.SUCCESS('No leases have started. Nothing to do.'))
                return

            self.stdout.write(f'\n{len(due)} application(s) would move to occupied:\n')
            for application in due:
                start = (application.terms or {}).get('start_date')
                self.stdout.write(f'  - {application.id} | {application.property_label or "-"} | starts {start}')
            self.stdout.write(self.style.WARNING('\n--dry-run mode: No changes made.'))
            return

        occupied = advance_lease_clock(now)
        self.stdout.write(
            self.style.SUCCESS(f'Moved {len(occupied)} application(s) to occupied.')
        )
