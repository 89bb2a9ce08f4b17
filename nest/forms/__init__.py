from .booking import BookingRequestForm, PaymentUpdateForm
from .landlord import MEAL_CHOICES, PropertyForm, PropertyImageForm, RoomTypeForm
from .review import ReviewForm

__all__ = [
    "BookingRequestForm",
    "PaymentUpdateForm",
    "PropertyForm",
    "RoomTypeForm",
    "PropertyImageForm",
    "MEAL_CHOICES",
    "ReviewForm",
]
