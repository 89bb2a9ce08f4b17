from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import send_mail

from ..models import Booking

logger = logging.getLogger(__name__)


class BookingNotifier:
    """Sends plain-text booking emails. Delivery is best effort.

    Callers register these methods with ``transaction.on_commit`` so a
    rolled-back transition never notifies anybody, and a delivery failure is
    logged without touching the committed booking.
    """

    SUBJECTS = {
        Booking.CONFIRMED: "Your booking at {title} is confirmed",
        Booking.REJECTED: "Your booking request for {title} was declined",
        Booking.CANCELLED: "Booking at {title} cancelled",
        Booking.COMPLETED: "Your stay at {title} is complete",
    }

    def booking_requested(self, booking: Booking) -> bool:
        landlord = booking.landlord
        body = (
            f"Hello {landlord.display_name},\n\n"
            f"{booking.student_name} requested {booking.number_of_occupants} bed(s) in "
            f"{booking.get_room_type_display()} rooms at {booking.listing.title}, "
            f"checking in on {booking.check_in_date:%d %b %Y} for {booking.duration} month(s).\n\n"
            "Review the request from your landlord dashboard."
        )
        return self._deliver(
            f"New booking request for {booking.listing.title}",
            body,
            landlord.email,
            booking,
        )

    def booking_status_changed(self, booking: Booking) -> bool:
        template = self.SUBJECTS.get(booking.status)
        if template is None:
            return False
        lines = [
            f"Hello {booking.student_name},",
            "",
            f"Your booking #{booking.pk} at {booking.listing.title} is now {booking.get_status_display().lower()}.",
        ]
        if booking.status == Booking.REJECTED and booking.rejection_reason:
            lines.append(f"Reason: {booking.rejection_reason}")
        if booking.status == Booking.CANCELLED and booking.cancellation_reason:
            lines.append(f"Reason: {booking.cancellation_reason}")
        if booking.status == Booking.CONFIRMED:
            lines.append(
                f"Check-in: {booking.check_in_date:%d %b %Y}. Monthly rent: {booking.monthly_rent}. "
                f"Security deposit: {booking.security_deposit}."
            )
        return self._deliver(
            template.format(title=booking.listing.title),
            "\n".join(lines),
            booking.student_email,
            booking,
        )

    def _deliver(self, subject: str, body: str, recipient: str, booking: Booking) -> bool:
        if not recipient:
            logger.warning("Booking %s: no email address to notify", booking.pk)
            return False
        try:
            send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [recipient])
        except Exception:
            logger.exception("Booking %s: failed to send %r to %s", booking.pk, subject, recipient)
            return False
        logger.info("Booking %s: sent %r to %s", booking.pk, subject, recipient)
        return True
