from django import forms

from ..models import Booking, RoomType
from ..services.bookings import BookingRequest


class BookingRequestForm(forms.Form):
    room_type = forms.ChoiceField(choices=RoomType.TYPE_CHOICES)
    check_in_date = forms.DateField()
    check_out_date = forms.DateField(required=False)
    duration = forms.IntegerField(min_value=1)
    number_of_occupants = forms.IntegerField(min_value=1, required=False)
    student_phone = forms.CharField(max_length=20, required=False)
    special_requests = forms.CharField(max_length=1000, required=False)

    def clean(self):
        cleaned_data = super().clean()
        check_in = cleaned_data.get("check_in_date")
        check_out = cleaned_data.get("check_out_date")
        if check_in and check_out and check_out < check_in:
            self.add_error("check_out_date", "Check-out date cannot be before check-in date.")
        return cleaned_data

    def to_request(self, listing) -> BookingRequest:
        data = self.cleaned_data
        return BookingRequest(
            listing=listing,
            room_type=data["room_type"],
            check_in_date=data["check_in_date"],
            check_out_date=data.get("check_out_date"),
            duration=data["duration"],
            number_of_occupants=data.get("number_of_occupants") or 1,
            student_phone=data.get("student_phone", ""),
            special_requests=data.get("special_requests", ""),
        )


class PaymentUpdateForm(forms.Form):
    payment_status = forms.ChoiceField(choices=Booking.PAYMENT_STATUS_CHOICES)
    payment_method = forms.ChoiceField(
        choices=[("", "Unchanged")] + list(Booking.PAYMENT_METHOD_CHOICES),
        required=False,
    )
