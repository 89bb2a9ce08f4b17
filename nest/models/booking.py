from calendar import monthrange

from django.core.validators import MinValueValidator
from django.db import models

from .property import Property, RoomType
from .user import User


class Booking(models.Model):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    STATUS_CHOICES = (
        (PENDING, "Pending Landlord Approval"),
        (CONFIRMED, "Confirmed"),
        (REJECTED, "Rejected"),
        (CANCELLED, "Cancelled"),
        (COMPLETED, "Completed"),
    )
    TERMINAL_STATUSES = frozenset({REJECTED, CANCELLED, COMPLETED})

    # Maps each non-pending status to the timestamp field it stamps.
    STATUS_TIMESTAMP_FIELDS = {
        CONFIRMED: "confirmed_at",
        REJECTED: "rejected_at",
        CANCELLED: "cancelled_at",
        COMPLETED: "completed_at",
    }

    PAYMENT_PENDING = "pending"
    PAYMENT_PARTIAL = "partial"
    PAYMENT_PAID = "paid"
    PAYMENT_REFUNDED = "refunded"

    PAYMENT_STATUS_CHOICES = (
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_PARTIAL, "Partial"),
        (PAYMENT_PAID, "Paid"),
        (PAYMENT_REFUNDED, "Refunded"),
    )
    PAYMENT_METHOD_CHOICES = (
        ("cash", "Cash"),
        ("online", "Online"),
        ("bank_transfer", "Bank Transfer"),
        ("upi", "UPI"),
        ("not_specified", "Not Specified"),
    )

    listing = models.ForeignKey(Property, on_delete=models.CASCADE, related_name="bookings")
    student = models.ForeignKey(User, on_delete=models.CASCADE, related_name="bookings")
    landlord = models.ForeignKey(User, on_delete=models.CASCADE, related_name="received_bookings")
    room_type = models.CharField(max_length=20, choices=RoomType.TYPE_CHOICES)

    check_in_date = models.DateField()
    check_out_date = models.DateField(null=True, blank=True)
    duration = models.PositiveIntegerField(validators=[MinValueValidator(1)], help_text="Duration in months")
    number_of_occupants = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])

    monthly_rent = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    security_deposit = models.DecimalField(max_digits=10, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=PENDING)
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default="not_specified")

    student_name = models.CharField(max_length=255)
    student_email = models.EmailField()
    student_phone = models.CharField(max_length=20)
    special_requests = models.TextField(blank=True)

    confirmed_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    cancellation_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["listing", "status"], name="booking_listing_status_idx"),
            models.Index(fields=["student", "status"], name="booking_student_status_idx"),
            models.Index(fields=["landlord", "status"], name="booking_landlord_status_idx"),
            models.Index(fields=["check_in_date", "check_out_date"], name="booking_dates_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - simple display helper
        return f"Booking #{self.pk} for {self.listing} by {self.student_name}"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    @property
    def holds_beds(self) -> bool:
        return self.status == self.CONFIRMED

    def stamp(self, status: str, when) -> list[str]:
        """Set ``status`` and its timestamp, clearing the other transition stamps.

        Returns the list of fields touched so callers can pass it to ``save``.
        """

        self.status = status
        touched = ["status", "updated_at"]
        for field_status, field_name in self.STATUS_TIMESTAMP_FIELDS.items():
            setattr(self, field_name, when if field_status == status else None)
            touched.append(field_name)
        return touched


def add_months(start_date, months: int):
    """Return a date shifted forward by ``months`` preserving day when possible."""

    if months <= 0:
        return start_date
    month_index = start_date.month - 1 + months
    year = start_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start_date.day, monthrange(year, month)[1])
    return start_date.replace(year=year, month=month, day=day)
