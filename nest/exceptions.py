"""Errors raised by the inventory and booking services."""


class BookingError(Exception):
    """Base class for booking and inventory failures."""


class CapacityExceeded(BookingError):
    """Not enough free beds in the requested room type."""

    def __init__(self, room_type: str, requested: int, available: int):
        self.room_type = room_type
        self.requested = requested
        self.available = available
        super().__init__(
            f"Only {available} bed{'s' if available != 1 else ''} left in {room_type} rooms; "
            f"{requested} requested."
        )


class InvalidTransition(BookingError):
    """The requested event is not allowed from the booking's current state."""

    def __init__(self, current: str, event: str):
        self.current = current
        self.event = event
        super().__init__(f"Cannot {event} a booking that is {current}.")


class InvalidRelease(BookingError):
    """Releasing beds would push occupancy below zero.

    This signals corrupted bookkeeping rather than a user mistake.
    """
