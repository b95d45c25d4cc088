from datetime import datetime

from django.core.management.base import BaseCommand, CommandError
from frontdesk.lifecycle import expire_overdue_bookings


class Command(BaseCommand):
    help = 'Expire reserved/confirmed bookings whose check-in date has passed (run daily from cron)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            help='Treat this day (YYYY-MM-DD) as today instead of the current date',
        )

    def handle(self, *args, **options):
        today = None
        if options.get('date'):
            try:
                today = datetime.strptime(options['date'], '%Y-%m-%d').date()
            except ValueError:
                raise CommandError('Invalid --date. Use YYYY-MM-DD')

        expired = expire_overdue_bookings(today=today)
        for booking_id in expired:
            self.stdout.write(f'Expired booking {booking_id}')
        self.stdout.write(self.style.SUCCESS(f'{len(expired)} booking(s) expired'))
