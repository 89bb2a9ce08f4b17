"""Application data models exposed as a flat module-level API."""

from .booking import Booking
from .message import Message, conversation_id
from .property import Property, PropertyImage, RoomType
from .review import Review
from .user import User

__all__ = [
    "User",
    "Property",
    "RoomType",
    "PropertyImage",
    "Booking",
    "Message",
    "Review",
    "conversation_id",
]
