from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, Sum

from ..exceptions import CapacityExceeded, InvalidRelease
from ..models import Property, RoomType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoomAvailability:
    room_type: str
    label: str
    capacity: int
    occupied: int
    available: int
    price_per_bed: Decimal


@dataclass(frozen=True)
class InventorySnapshot:
    total_capacity: int
    current_occupancy: int
    available_beds: int
    rooms: tuple[RoomAvailability, ...]


class RoomInventoryTracker:
    """Tracks free beds per room type and keeps the property totals in step.

    ``reserve`` and ``release`` are conditional UPDATE statements, so the
    capacity check and the increment happen as one step in the database and
    concurrent callers on the same room type cannot oversell it.
    """

    def get_room_type(self, listing: Property, room_type: str) -> RoomType:
        try:
            return RoomType.objects.get(listing=listing, type=room_type)
        except RoomType.DoesNotExist:
            raise ValidationError(
                f"This property has no {room_type!r} rooms.",
                code="unknown_room_type",
            ) from None

    def available_beds(self, listing: Property, room_type: str) -> int:
        return self.get_room_type(listing, room_type).available_beds

    def reserve(self, listing: Property, room_type: str, count: int) -> RoomType:
        self._validate_count(count)
        with transaction.atomic():
            updated = RoomType.objects.filter(
                listing=listing,
                type=room_type,
                occupied__lte=F("capacity") - count,
            ).update(occupied=F("occupied") + count)
            if not updated:
                room = self.get_room_type(listing, room_type)
                raise CapacityExceeded(room.get_type_display(), count, room.available_beds)
            self._shift_occupancy(listing, count)
        logger.info("Reserved %s bed(s) in %s rooms of property %s", count, room_type, listing.pk)
        return self.get_room_type(listing, room_type)

    def release(self, listing: Property, room_type: str, count: int) -> RoomType:
        self._validate_count(count)
        with transaction.atomic():
            updated = RoomType.objects.filter(
                listing=listing,
                type=room_type,
                occupied__gte=count,
            ).update(occupied=F("occupied") - count)
            if not updated:
                room = self.get_room_type(listing, room_type)
                logger.critical(
                    "Inventory out of sync: releasing %s bed(s) from %s rooms of property %s "
                    "with only %s occupied",
                    count,
                    room_type,
                    listing.pk,
                    room.occupied,
                )
                raise InvalidRelease(
                    f"Cannot release {count} bed(s) from {room.get_type_display()} rooms; "
                    f"only {room.occupied} occupied."
                )
            self._shift_occupancy(listing, -count)
        logger.info("Released %s bed(s) in %s rooms of property %s", count, room_type, listing.pk)
        return self.get_room_type(listing, room_type)

    def snapshot(self, listing: Property) -> InventorySnapshot:
        rooms = tuple(
            RoomAvailability(
                room_type=room.type,
                label=room.get_type_display(),
                capacity=room.capacity,
                occupied=room.occupied,
                available=room.available_beds,
                price_per_bed=room.price_per_bed,
            )
            for room in RoomType.objects.filter(listing=listing).order_by("id")
        )
        total_capacity = sum(room.capacity for room in rooms)
        current_occupancy = sum(room.occupied for room in rooms)
        return InventorySnapshot(
            total_capacity=total_capacity,
            current_occupancy=current_occupancy,
            available_beds=total_capacity - current_occupancy,
            rooms=rooms,
        )

    def recompute_totals(self, listing: Property) -> Property:
        """Rewrite the property totals from its room type rows."""

        totals = RoomType.objects.filter(listing=listing).aggregate(
            capacity=Sum("capacity"),
            occupied=Sum("occupied"),
        )
        listing.total_capacity = totals["capacity"] or 0
        listing.current_occupancy = totals["occupied"] or 0
        Property.objects.filter(pk=listing.pk).update(
            total_capacity=listing.total_capacity,
            current_occupancy=listing.current_occupancy,
        )
        return listing

    def check_consistency(self, listing: Property) -> list[str]:
        """Return human readable discrepancies between the totals and the rows."""

        stored = Property.objects.values("total_capacity", "current_occupancy").get(pk=listing.pk)
        snapshot = self.snapshot(listing)
        problems: list[str] = []
        if stored["total_capacity"] != snapshot.total_capacity:
            problems.append(
                f"total_capacity is {stored['total_capacity']} but room types add up to {snapshot.total_capacity}"
            )
        if stored["current_occupancy"] != snapshot.current_occupancy:
            problems.append(
                f"current_occupancy is {stored['current_occupancy']} "
                f"but room types add up to {snapshot.current_occupancy}"
            )
        for room in snapshot.rooms:
            if not 0 <= room.occupied <= room.capacity:
                problems.append(f"{room.label} rooms have {room.occupied} occupied of {room.capacity}")
        return problems

    def _shift_occupancy(self, listing: Property, delta: int) -> None:
        updated = Property.objects.filter(
            pk=listing.pk,
            current_occupancy__gte=max(-delta, 0),
        ).update(current_occupancy=F("current_occupancy") + delta)
        if not updated:
            logger.error("Occupancy total of property %s drifted; recomputing from room types", listing.pk)
            self.recompute_totals(listing)
            return
        listing.current_occupancy = Property.objects.values_list("current_occupancy", flat=True).get(pk=listing.pk)

    @staticmethod
    def _validate_count(count: int) -> None:
        if not isinstance(count, int) or count < 1:
            raise ValidationError("Bed count must be a positive whole number.", code="invalid_count")
