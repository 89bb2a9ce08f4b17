from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .. import conf
from ..exceptions import BookingError, InvalidTransition
from ..models import Booking, Property, RoomType, User
from ..models.booking import add_months
from .inventory import RoomInventoryTracker
from .notifications import BookingNotifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingQuote:
    monthly_rent: Decimal
    security_deposit: Decimal
    total_amount: Decimal
    deposit_applicable: bool


@dataclass
class BookingRequest:
    listing: Property
    room_type: str
    check_in_date: date | None
    duration: int
    number_of_occupants: int = 1
    check_out_date: date | None = None
    student_phone: str = ""
    special_requests: str = ""


class BookingStateMachine:
    """Drives a booking through its lifecycle and applies the inventory effects.

    Pending -> Confirmed | Rejected, Confirmed -> Cancelled | Completed.
    Every transition locks the booking row and runs in the same database
    transaction as its reserve/release call, so a failed inventory update
    leaves the booking untouched.
    """

    CONFIRM = "confirm"
    REJECT = "reject"
    CANCEL = "cancel"
    COMPLETE = "complete"

    TRANSITIONS = {
        (Booking.PENDING, CONFIRM): Booking.CONFIRMED,
        (Booking.PENDING, REJECT): Booking.REJECTED,
        (Booking.CONFIRMED, CANCEL): Booking.CANCELLED,
        (Booking.CONFIRMED, COMPLETE): Booking.COMPLETED,
    }

    PAYMENT_TRANSITIONS = {
        Booking.PAYMENT_PENDING: {Booking.PAYMENT_PARTIAL, Booking.PAYMENT_PAID},
        Booking.PAYMENT_PARTIAL: {Booking.PAYMENT_PAID, Booking.PAYMENT_REFUNDED},
        Booking.PAYMENT_PAID: {Booking.PAYMENT_REFUNDED},
    }
    # Booking statuses under which each payment status may be recorded.
    PAYMENT_ALLOWED_STATUSES = {
        Booking.PAYMENT_PARTIAL: {Booking.CONFIRMED, Booking.COMPLETED},
        Booking.PAYMENT_PAID: {Booking.CONFIRMED, Booking.COMPLETED},
        Booking.PAYMENT_REFUNDED: {Booking.CONFIRMED, Booking.CANCELLED, Booking.COMPLETED},
    }

    def __init__(
        self,
        tracker: RoomInventoryTracker | None = None,
        notifier: BookingNotifier | None = None,
    ) -> None:
        self.tracker = tracker or RoomInventoryTracker()
        self.notifier = notifier or BookingNotifier()

    # Quotes -------------------------------------------------------------
    def quote(self, listing: Property, room: RoomType, occupants: int, duration: int) -> BookingQuote:
        monthly_rent = (room.price_per_bed or Decimal("0")) * occupants
        raw_deposit = listing.security_deposit
        deposit_applicable = raw_deposit is not None
        security_deposit = raw_deposit if deposit_applicable else Decimal("0")
        return BookingQuote(
            monthly_rent=monthly_rent,
            security_deposit=security_deposit,
            total_amount=monthly_rent * duration + security_deposit,
            deposit_applicable=deposit_applicable,
        )

    # Creation -----------------------------------------------------------
    def create(self, student: User, request: BookingRequest) -> Booking:
        if not student.is_student:
            raise PermissionDenied("Only student accounts can request bookings.")

        listing = request.listing
        errors: dict[str, list[str]] = {}
        if not request.check_in_date:
            errors["check_in_date"] = ["A check-in date is required."]
        if not isinstance(request.duration, int) or request.duration < 1:
            errors["duration"] = ["Duration must be at least one month."]
        if not isinstance(request.number_of_occupants, int) or request.number_of_occupants < 1:
            errors["number_of_occupants"] = ["At least one occupant is required."]
        if (
            request.check_in_date
            and request.check_out_date
            and request.check_out_date < request.check_in_date
        ):
            errors["check_out_date"] = ["Check-out date cannot be before check-in date."]
        if not listing.is_available:
            errors.setdefault("listing", []).append("This property is not accepting bookings.")
        if listing.landlord_id == student.pk:
            errors.setdefault("listing", []).append("You cannot book your own property.")
        room = RoomType.objects.filter(listing=listing, type=request.room_type).first()
        if room is None:
            errors["room_type"] = ["This property has no rooms of that type."]
        if errors:
            raise ValidationError(errors)

        quote = self.quote(listing, room, request.number_of_occupants, request.duration)
        check_out_date = request.check_out_date or add_months(request.check_in_date, request.duration)
        with transaction.atomic():
            booking = Booking.objects.create(
                listing=listing,
                student=student,
                landlord_id=listing.landlord_id,
                room_type=room.type,
                check_in_date=request.check_in_date,
                check_out_date=check_out_date,
                duration=request.duration,
                number_of_occupants=request.number_of_occupants,
                monthly_rent=quote.monthly_rent,
                security_deposit=quote.security_deposit,
                total_amount=quote.total_amount,
                student_name=student.display_name,
                student_email=student.email,
                student_phone=request.student_phone or student.contact_number,
                special_requests=request.special_requests,
            )
            Property.objects.filter(pk=listing.pk).update(inquiries=F("inquiries") + 1)
            transaction.on_commit(lambda: self.notifier.booking_requested(booking))
        logger.info("Booking %s requested for property %s by user %s", booking.pk, listing.pk, student.pk)
        return booking

    # Transitions --------------------------------------------------------
    def confirm(self, booking: Booking, actor: User) -> Booking:
        self._require_landlord(booking, actor)

        def effect(locked: Booking) -> None:
            self.tracker.reserve(locked.listing, locked.room_type, locked.number_of_occupants)
            Property.objects.filter(pk=locked.listing_id).update(bookings_count=F("bookings_count") + 1)

        return self._transition(booking, self.CONFIRM, effect)

    def reject(self, booking: Booking, actor: User, reason: str) -> Booking:
        self._require_landlord(booking, actor)
        reason = self._require_reason(reason, "rejection_reason", "A reason is required to reject a booking.")

        def effect(locked: Booking) -> None:
            locked.rejection_reason = reason

        return self._transition(booking, self.REJECT, effect, extra_fields=["rejection_reason"])

    def cancel(self, booking: Booking, actor: User, reason: str) -> Booking:
        if actor.pk not in {booking.student_id, booking.landlord_id}:
            raise PermissionDenied("Only the student or the landlord can cancel this booking.")
        reason = self._require_reason(reason, "cancellation_reason", "A reason is required to cancel a booking.")

        def effect(locked: Booking) -> None:
            self.tracker.release(locked.listing, locked.room_type, locked.number_of_occupants)
            locked.cancellation_reason = reason

        return self._transition(booking, self.CANCEL, effect, extra_fields=["cancellation_reason"])

    def complete(self, booking: Booking, actor: User | None = None, today: date | None = None) -> Booking:
        """Complete a confirmed stay.

        The landlord may complete at any time; without an actor (scheduled
        completion) the check-out date must have been reached.
        """

        if actor is not None:
            self._require_landlord(booking, actor)
        today = today or timezone.localdate()
        policy = conf.completion_policy()

        def effect(locked: Booking) -> None:
            if actor is None and (locked.check_out_date is None or locked.check_out_date > today):
                raise ValidationError(
                    {"check_out_date": "The stay cannot be completed before its check-out date."}
                )
            if policy == conf.RELEASE_ON_COMPLETE:
                self.tracker.release(locked.listing, locked.room_type, locked.number_of_occupants)

        return self._transition(booking, self.COMPLETE, effect)

    def complete_due_bookings(self, today: date | None = None) -> list[Booking]:
        today = today or timezone.localdate()
        completed: list[Booking] = []
        due = Booking.objects.filter(status=Booking.CONFIRMED, check_out_date__lte=today).order_by("check_out_date", "id")
        for booking in due:
            try:
                completed.append(self.complete(booking, today=today))
            except (BookingError, ValidationError):
                logger.exception("Could not complete booking %s", booking.pk)
        return completed

    # Payments -----------------------------------------------------------
    def record_payment(
        self,
        booking: Booking,
        actor: User,
        payment_status: str,
        payment_method: str | None = None,
    ) -> Booking:
        self._require_landlord(booking, actor)
        valid_methods = {value for value, _ in Booking.PAYMENT_METHOD_CHOICES}
        if payment_method and payment_method not in valid_methods:
            raise ValidationError({"payment_method": "Unknown payment method."})

        with transaction.atomic():
            locked = Booking.objects.select_for_update().get(pk=booking.pk)
            allowed = self.PAYMENT_TRANSITIONS.get(locked.payment_status, set())
            allowed_statuses = self.PAYMENT_ALLOWED_STATUSES.get(payment_status, set())
            if payment_status not in allowed or locked.status not in allowed_statuses:
                raise InvalidTransition(
                    f"{locked.status} with payment {locked.payment_status}",
                    f"mark payment as {payment_status}",
                )
            locked.payment_status = payment_status
            fields = ["payment_status", "updated_at"]
            if payment_method:
                locked.payment_method = payment_method
                fields.append("payment_method")
            locked.save(update_fields=fields)
        logger.info("Booking %s payment marked %s", booking.pk, payment_status)
        booking.refresh_from_db()
        return booking

    # Helpers ------------------------------------------------------------
    def _transition(
        self,
        booking: Booking,
        event: str,
        effect: Callable[[Booking], None],
        extra_fields: list[str] | None = None,
    ) -> Booking:
        with transaction.atomic():
            locked = Booking.objects.select_for_update().select_related("listing").get(pk=booking.pk)
            target = self.TRANSITIONS.get((locked.status, event))
            if target is None:
                raise InvalidTransition(locked.status, event)
            effect(locked)
            fields = locked.stamp(target, timezone.now())
            locked.save(update_fields=fields + (extra_fields or []))
            transaction.on_commit(lambda: self.notifier.booking_status_changed(locked))
        logger.info("Booking %s moved to %s", booking.pk, target)
        booking.refresh_from_db()
        return booking

    @staticmethod
    def _require_landlord(booking: Booking, actor: User) -> None:
        if actor.pk != booking.landlord_id:
            raise PermissionDenied("Only the property's landlord can manage this booking.")

    @staticmethod
    def _require_reason(reason: str | None, field: str, message: str) -> str:
        cleaned = reason.strip() if isinstance(reason, str) else ""
        if not cleaned:
            raise ValidationError({field: message})
        return cleaned
