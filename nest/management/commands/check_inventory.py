from django.core.management.base import BaseCommand

from ...models import Property
from ...services.inventory import RoomInventoryTracker


class Command(BaseCommand):
    help = "Compare each property's occupancy totals with its room types and optionally repair them."

    def add_arguments(self, parser):
        parser.add_argument("--fix", action="store_true", help="Rewrite drifted totals from the room types.")

    def handle(self, *args, **options):
        tracker = RoomInventoryTracker()
        drifted = 0
        for listing in Property.objects.order_by("id"):
            problems = tracker.check_consistency(listing)
            if not problems:
                continue
            drifted += 1
            for problem in problems:
                self.stdout.write(self.style.WARNING(f"Property {listing.pk}: {problem}"))
            if options["fix"]:
                tracker.recompute_totals(listing)
        self.stdout.write(f"{drifted} propert{'y' if drifted == 1 else 'ies'} with inconsistent inventory.")
