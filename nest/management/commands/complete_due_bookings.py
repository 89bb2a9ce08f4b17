from datetime import date

from django.core.management.base import BaseCommand, CommandError

from ...services.bookings import BookingStateMachine


class Command(BaseCommand):
    help = "Complete confirmed bookings whose check-out date has been reached."

    def add_arguments(self, parser):
        parser.add_argument("--date", dest="today", help="Treat this ISO date (YYYY-MM-DD) as today.")

    def handle(self, *args, **options):
        today = None
        if options.get("today"):
            try:
                today = date.fromisoformat(options["today"])
            except ValueError as exc:
                raise CommandError(f"Invalid --date value: {options['today']}") from exc
        completed = BookingStateMachine().complete_due_bookings(today=today)
        self.stdout.write(self.style.SUCCESS(f"Completed {len(completed)} booking(s)."))
