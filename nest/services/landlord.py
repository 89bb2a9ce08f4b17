from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction

from ..forms import PropertyForm, PropertyImageForm, RoomTypeForm
from ..models import Booking, Property, PropertyImage, RoomType, User
from .inventory import RoomInventoryTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocationDetails:
    """Reverse-geocoding result for a map point. Every field is optional."""

    latitude: Any = None
    longitude: Any = None
    city: str = ""
    state: str = ""
    pincode: str = ""


@dataclass(frozen=True)
class LandlordDashboardStats:
    total_properties: int
    total_beds: int
    occupied_beds: int
    occupancy_rate: float
    pending_bookings: int


class PropertyAuthoringService:
    """Creates listings and applies landlord edits to their room types."""

    def __init__(self, landlord: User, tracker: RoomInventoryTracker | None = None):
        self.landlord = landlord
        self.tracker = tracker or RoomInventoryTracker()

    def create(self, data: Mapping[str, Any]) -> Property:
        form = PropertyForm(data, landlord=self.landlord)
        errors: dict[str, Any] = {}
        if not form.is_valid():
            errors.update(form.errors.get_json_data())

        room_rows = list(data.get("room_types") or [])
        room_forms = [RoomTypeForm(row) for row in room_rows]
        if not room_rows:
            errors["room_types"] = [{"message": "At least one room type is required.", "code": "required"}]
        else:
            self._collect_row_errors(errors, "room_types", room_forms)
            types = [f.cleaned_data.get("type") for f in room_forms if f.is_valid()]
            if len(types) != len(set(types)):
                errors["room_types"] = [{"message": "Each room type can only be listed once.", "code": "duplicate"}]

        image_rows = list(data.get("images") or [])
        image_forms = [PropertyImageForm(row) for row in image_rows]
        if not image_rows:
            errors["images"] = [{"message": "At least one image is required.", "code": "required"}]
        else:
            self._collect_row_errors(errors, "images", image_forms)
            main_count = sum(1 for f in image_forms if f.is_valid() and f.cleaned_data.get("is_main"))
            if main_count > 1:
                errors["images"] = [{"message": "Only one image can be the main image.", "code": "multiple_main"}]

        if errors:
            raise ValidationError(self._flatten(errors))

        with transaction.atomic():
            listing = form.save()
            contact_number = form.cleaned_data.get("contact_number")
            if contact_number and contact_number != self.landlord.contact_number:
                self.landlord.contact_number = contact_number
                self.landlord.save(update_fields=["contact_number"])
            for room_form in room_forms:
                room = room_form.save(commit=False)
                room.listing = listing
                room.save()
            images = []
            for image_form in image_forms:
                image = image_form.save(commit=False)
                image.listing = listing
                images.append(image)
            if not any(image.is_main for image in images):
                images[0].is_main = True
            PropertyImage.objects.bulk_create(images)
            self.tracker.recompute_totals(listing)
        logger.info("Landlord %s published property %s", self.landlord.pk, listing.pk)
        return listing

    def update_room_types(self, listing: Property, rows: Iterable[Mapping[str, Any]]) -> Property:
        """Replace the room type list of a published property.

        Occupancy is owned by bookings: ``occupied`` in ``rows`` is ignored,
        capacity cannot drop below the beds already taken, and a room type
        with occupants or open bookings cannot be removed.
        """

        self._require_owner(listing)
        rows = [{key: value for key, value in dict(row).items() if key != "occupied"} for row in rows]
        if not rows:
            raise ValidationError({"room_types": "At least one room type is required."})
        forms = [RoomTypeForm(row) for row in rows]
        errors: dict[str, Any] = {}
        self._collect_row_errors(errors, "room_types", forms)
        if errors:
            raise ValidationError(self._flatten(errors))
        wanted = {}
        for form in forms:
            room_type = form.cleaned_data["type"]
            if room_type in wanted:
                raise ValidationError({"room_types": "Each room type can only be listed once."})
            wanted[room_type] = form.cleaned_data

        with transaction.atomic():
            Property.objects.select_for_update().get(pk=listing.pk)
            existing = {room.type: room for room in RoomType.objects.select_for_update().filter(listing=listing)}

            for room_type, room in existing.items():
                if room_type in wanted:
                    continue
                open_bookings = Booking.objects.filter(
                    listing=listing,
                    room_type=room_type,
                    status__in=[Booking.PENDING, Booking.CONFIRMED],
                ).exists()
                if room.occupied or open_bookings:
                    raise ValidationError(
                        {"room_types": f"{room.get_type_display()} rooms still have occupants or open bookings."}
                    )
                room.delete()

            for room_type, values in wanted.items():
                room = existing.get(room_type)
                if room is None:
                    RoomType.objects.create(
                        listing=listing,
                        type=room_type,
                        capacity=values["capacity"],
                        price_per_bed=values["price_per_bed"],
                    )
                    continue
                updated = RoomType.objects.filter(pk=room.pk, occupied__lte=values["capacity"]).update(
                    capacity=values["capacity"],
                    price_per_bed=values["price_per_bed"],
                )
                if not updated:
                    raise ValidationError(
                        {
                            "room_types": (
                                f"{room.get_type_display()} capacity cannot be lower than the "
                                f"{room.occupied} bed(s) already occupied."
                            )
                        }
                    )
            self.tracker.recompute_totals(listing)
        logger.info("Landlord %s updated room types of property %s", self.landlord.pk, listing.pk)
        return listing

    def apply_location(self, listing: Property, details: LocationDetails) -> Property:
        """Fill location fields from a geocoding result without erasing known values."""

        self._require_owner(listing)
        fields: list[str] = []
        for name in ("city", "state"):
            value = (getattr(details, name) or "").strip()
            if value:
                setattr(listing, name, value)
                fields.append(name)
        pincode = (details.pincode or "").strip()
        if pincode.isdigit() and len(pincode) == 6:
            listing.pincode = pincode
            fields.append("pincode")
        elif pincode:
            logger.warning("Ignoring geocoded pincode %r for property %s", pincode, listing.pk)

        coordinates = self._coordinates(details)
        if coordinates is not None:
            listing.latitude, listing.longitude = coordinates
            fields.extend(["latitude", "longitude"])
        elif details.latitude is not None or details.longitude is not None:
            logger.warning("Ignoring invalid geocoded coordinates for property %s", listing.pk)

        if fields:
            listing.save(update_fields=fields + ["updated_at"])
        return listing

    def _require_owner(self, listing: Property) -> None:
        if listing.landlord_id != self.landlord.pk:
            raise PermissionDenied("You can only manage your own properties.")

    @staticmethod
    def _coordinates(details: LocationDetails) -> tuple[Decimal, Decimal] | None:
        try:
            latitude = Decimal(str(details.latitude))
            longitude = Decimal(str(details.longitude))
        except (InvalidOperation, TypeError, ValueError):
            return None
        if not (latitude.is_finite() and longitude.is_finite()):
            return None
        if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
            return None
        step = Decimal("0.000001")
        return latitude.quantize(step), longitude.quantize(step)

    @staticmethod
    def _collect_row_errors(errors: dict[str, Any], key: str, forms) -> None:
        row_errors = {}
        for index, form in enumerate(forms):
            if not form.is_valid():
                row_errors[index] = form.errors.get_json_data()
        if row_errors:
            errors[key] = [
                {"message": f"Row {index + 1}: {field}: {details[0]['message']}", "code": "invalid"}
                for index, fields in row_errors.items()
                for field, details in fields.items()
            ]

    @staticmethod
    def _flatten(errors: dict[str, Any]) -> dict[str, list[str]]:
        return {field: [item["message"] for item in items] for field, items in errors.items()}


class LandlordDashboardService:
    """Aggregate data required for the landlord dashboard."""

    def __init__(self, landlord: User):
        self.landlord = landlord

    def properties(self):
        return Property.objects.filter(landlord=self.landlord).prefetch_related("room_types").order_by("-created_at")

    def bookings(self, status: str | None = None):
        queryset = Booking.objects.filter(landlord=self.landlord).select_related("listing", "student")
        if status:
            queryset = queryset.filter(status=status)
        return queryset.order_by("-created_at", "-id")

    def stats(self, properties: Iterable[Property] | None = None) -> LandlordDashboardStats:
        listings = list(properties if properties is not None else self.properties())
        total_beds = sum(listing.total_capacity for listing in listings)
        occupied_beds = sum(listing.current_occupancy for listing in listings)
        occupancy_rate = round((occupied_beds / total_beds) * 100, 2) if total_beds else 0.0
        return LandlordDashboardStats(
            total_properties=len(listings),
            total_beds=total_beds,
            occupied_beds=occupied_beds,
            occupancy_rate=occupancy_rate,
            pending_bookings=self.bookings(Booking.PENDING).count(),
        )
