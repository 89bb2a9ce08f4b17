"""Builders shared by the test modules."""

from datetime import date
from decimal import Decimal

from .models import Property, RoomType, User
from .services.bookings import BookingRequest, BookingStateMachine
from .services.inventory import RoomInventoryTracker

DEFAULT_CHECK_IN = date(2026, 7, 1)


def make_user(username, user_type=User.STUDENT, **extra):
    extra.setdefault("email", f"{username}@example.com")
    return User.objects.create_user(username=username, password="pass12345", user_type=user_type, **extra)


def make_landlord(username="landlord", **extra):
    return make_user(username, user_type=User.LANDLORD, **extra)


def make_property(landlord, rooms=((RoomType.SINGLE, 2, 0, "5000.00"),), **overrides):
    """Create a listing with ``rooms`` given as (type, capacity, occupied, price_per_bed)."""

    fields = {
        "title": "Sunrise Student Residency",
        "description": "Bright rooms ten minutes from campus with meals, WiFi and a quiet study hall.",
        "property_type": "pg",
        "price": Decimal("6000.00"),
        "address": "12 MG Road, Near City College",
        "city": "Bengaluru",
        "state": "Karnataka",
        "pincode": "560001",
        "security_deposit": Decimal("10000.00"),
    }
    fields.update(overrides)
    listing = Property.objects.create(landlord=landlord, **fields)
    for room_type, capacity, occupied, price in rooms:
        RoomType.objects.create(
            listing=listing,
            type=room_type,
            capacity=capacity,
            occupied=occupied,
            price_per_bed=Decimal(price),
        )
    RoomInventoryTracker().recompute_totals(listing)
    listing.refresh_from_db()
    return listing


def make_booking(student, listing, room_type=RoomType.SINGLE, occupants=1, duration=3, machine=None, **extra):
    machine = machine or BookingStateMachine()
    request = BookingRequest(
        listing=listing,
        room_type=room_type,
        check_in_date=extra.pop("check_in_date", DEFAULT_CHECK_IN),
        duration=duration,
        number_of_occupants=occupants,
        **extra,
    )
    return machine.create(student, request)
