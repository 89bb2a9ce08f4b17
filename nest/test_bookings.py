from datetime import date
from decimal import Decimal
from io import StringIO
from smtplib import SMTPException
from unittest import mock

from django.core import mail
from django.core.exceptions import ImproperlyConfigured, PermissionDenied, ValidationError
from django.core.management import CommandError, call_command
from django.test import TestCase, override_settings

from .exceptions import CapacityExceeded, InvalidTransition
from .models import Booking, Property, RoomType
from .services.bookings import BookingStateMachine
from .services.inventory import RoomInventoryTracker
from .testing import make_booking, make_landlord, make_property, make_user


class BookingTestCase(TestCase):
    def setUp(self):
        self.machine = BookingStateMachine()
        self.tracker = RoomInventoryTracker()
        self.landlord = make_landlord()
        self.student = make_user("asha", first_name="Asha", last_name="Rao")
        self.listing = make_property(self.landlord)

    def room(self, room_type=RoomType.SINGLE):
        return RoomType.objects.get(listing=self.listing, type=room_type)

    def assert_inventory_consistent(self):
        self.assertEqual(self.tracker.check_consistency(self.listing), [])


class BookingCreationTests(BookingTestCase):
    def test_create_prices_the_request(self):
        booking = make_booking(self.student, self.listing, duration=3)

        self.assertEqual(booking.status, Booking.PENDING)
        self.assertEqual(booking.landlord, self.landlord)
        self.assertEqual(booking.monthly_rent, Decimal("5000.00"))
        self.assertEqual(booking.security_deposit, Decimal("10000.00"))
        self.assertEqual(booking.total_amount, Decimal("25000.00"))
        self.assertEqual(booking.check_out_date, date(2026, 10, 1))
        self.assertEqual(booking.student_name, "Asha Rao")
        self.assertEqual(booking.student_email, "asha@example.com")
        self.assertEqual(self.room().occupied, 0)
        self.assertEqual(Property.objects.get(pk=self.listing.pk).inquiries, 1)

    def test_quote_without_deposit(self):
        self.listing.security_deposit = None
        quote = self.machine.quote(self.listing, self.room(), occupants=2, duration=2)

        self.assertFalse(quote.deposit_applicable)
        self.assertEqual(quote.monthly_rent, Decimal("10000.00"))
        self.assertEqual(quote.total_amount, Decimal("20000.00"))

    def test_create_validates_the_request(self):
        with self.assertRaises(ValidationError) as ctx:
            make_booking(
                self.student,
                self.listing,
                room_type=RoomType.TRIPLE,
                duration=0,
                occupants=0,
                check_in_date=date(2026, 7, 10),
                check_out_date=date(2026, 7, 1),
            )

        errors = ctx.exception.message_dict
        for field in ("room_type", "duration", "number_of_occupants", "check_out_date"):
            self.assertIn(field, errors)
        self.assertFalse(Booking.objects.exists())

    def test_check_in_is_required(self):
        with self.assertRaises(ValidationError) as ctx:
            make_booking(self.student, self.listing, check_in_date=None)
        self.assertIn("check_in_date", ctx.exception.message_dict)

    def test_unavailable_property_cannot_be_booked(self):
        self.listing.is_available = False
        self.listing.save()

        with self.assertRaises(ValidationError) as ctx:
            make_booking(self.student, self.listing)
        self.assertIn("listing", ctx.exception.message_dict)

    def test_every_listing_problem_is_reported(self):
        own_listing = make_property(self.student, is_available=False, title="My Own Spare Room")

        with self.assertRaises(ValidationError) as ctx:
            make_booking(self.student, own_listing)

        self.assertEqual(
            ctx.exception.message_dict["listing"],
            ["This property is not accepting bookings.", "You cannot book your own property."],
        )

    def test_only_students_can_book(self):
        other_landlord = make_landlord("other")
        with self.assertRaises(PermissionDenied):
            make_booking(other_landlord, self.listing)

    def test_request_notifies_landlord_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            make_booking(self.student, self.listing)

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["landlord@example.com"])
        self.assertIn("New booking request", mail.outbox[0].subject)


class BookingTransitionTests(BookingTestCase):
    def test_confirm_reserves_beds(self):
        booking = make_booking(self.student, self.listing)
        booking = self.machine.confirm(booking, self.landlord)

        self.assertEqual(booking.status, Booking.CONFIRMED)
        self.assertIsNotNone(booking.confirmed_at)
        self.assertEqual(self.room().occupied, 1)
        self.assertEqual(Property.objects.get(pk=self.listing.pk).bookings_count, 1)
        self.assert_inventory_consistent()

    def test_second_booking_over_capacity_is_refused(self):
        first = make_booking(self.student, self.listing, occupants=1)
        self.machine.confirm(first, self.landlord)
        second = make_booking(make_user("ben"), self.listing, occupants=2)

        with self.assertRaises(CapacityExceeded):
            self.machine.confirm(second, self.landlord)

        second.refresh_from_db()
        self.assertEqual(second.status, Booking.PENDING)
        self.assertIsNone(second.confirmed_at)
        self.assertEqual(self.room().occupied, 1)
        self.assert_inventory_consistent()

    def test_confirmations_never_exceed_capacity(self):
        listing = make_property(self.landlord, rooms=[(RoomType.TRIPLE, 3, 0, "3000.00")], title="Lakeside Shared Flats")
        bookings = [
            make_booking(make_user(f"student{index}"), listing, room_type=RoomType.TRIPLE) for index in range(5)
        ]

        confirmed = 0
        for booking in bookings:
            try:
                self.machine.confirm(booking, self.landlord)
            except CapacityExceeded:
                continue
            confirmed += 1

        self.assertEqual(confirmed, 3)
        self.assertEqual(RoomType.objects.get(listing=listing).occupied, 3)
        self.assertEqual(Booking.objects.filter(listing=listing, status=Booking.CONFIRMED).count(), 3)
        self.assertEqual(self.tracker.check_consistency(listing), [])

    def test_reject_requires_reason(self):
        booking = make_booking(self.student, self.listing)

        for reason in ("", "   ", None):
            with self.subTest(reason=reason), self.assertRaises(ValidationError):
                self.machine.reject(booking, self.landlord, reason)

        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.PENDING)

    def test_reject(self):
        booking = make_booking(self.student, self.listing)
        booking = self.machine.reject(booking, self.landlord, "  Rooms under renovation ")

        self.assertEqual(booking.status, Booking.REJECTED)
        self.assertEqual(booking.rejection_reason, "Rooms under renovation")
        self.assertIsNotNone(booking.rejected_at)
        self.assertEqual(self.room().occupied, 0)

    def test_cancel_releases_beds(self):
        booking = self.machine.confirm(make_booking(self.student, self.listing), self.landlord)
        booking = self.machine.cancel(booking, self.student, "relocated")

        self.assertEqual(booking.status, Booking.CANCELLED)
        self.assertEqual(booking.cancellation_reason, "relocated")
        self.assertIsNotNone(booking.cancelled_at)
        self.assertIsNone(booking.confirmed_at)
        self.assertEqual(self.room().occupied, 0)
        self.assert_inventory_consistent()

    def test_cancel_requires_reason(self):
        booking = self.machine.confirm(make_booking(self.student, self.listing), self.landlord)
        with self.assertRaises(ValidationError):
            self.machine.cancel(booking, self.landlord, "")
        self.assertEqual(self.room().occupied, 1)

    def test_pending_booking_cannot_be_cancelled_or_completed(self):
        booking = make_booking(self.student, self.listing)

        with self.assertRaises(InvalidTransition):
            self.machine.cancel(booking, self.student, "changed plans")
        with self.assertRaises(InvalidTransition):
            self.machine.complete(booking, self.landlord)

    def test_terminal_states_accept_no_events(self):
        booking = self.machine.reject(make_booking(self.student, self.listing), self.landlord, "Full")

        with self.assertRaises(InvalidTransition):
            self.machine.confirm(booking, self.landlord)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.REJECTED)

    def test_complete_twice_fails(self):
        booking = self.machine.confirm(make_booking(self.student, self.listing), self.landlord)
        booking = self.machine.complete(booking, self.landlord)

        self.assertEqual(booking.status, Booking.COMPLETED)
        self.assertIsNotNone(booking.completed_at)
        self.assertIsNone(booking.confirmed_at)
        with self.assertRaises(InvalidTransition):
            self.machine.complete(booking, self.landlord)
        self.assertEqual(self.room().occupied, 0)

    def test_exactly_one_transition_timestamp_is_set(self):
        booking = self.machine.confirm(make_booking(self.student, self.listing), self.landlord)
        booking = self.machine.cancel(booking, self.landlord, "Maintenance")

        stamps = [booking.confirmed_at, booking.rejected_at, booking.cancelled_at, booking.completed_at]
        self.assertEqual(sum(stamp is not None for stamp in stamps), 1)

    def test_only_the_landlord_manages_bookings(self):
        booking = make_booking(self.student, self.listing)
        stranger = make_landlord("stranger")

        with self.assertRaises(PermissionDenied):
            self.machine.confirm(booking, self.student)
        with self.assertRaises(PermissionDenied):
            self.machine.reject(booking, stranger, "No")
        with self.assertRaises(PermissionDenied):
            self.machine.cancel(booking, stranger, "No")

    def test_status_change_emails_student(self):
        booking = make_booking(self.student, self.listing)
        with self.captureOnCommitCallbacks(execute=True):
            self.machine.reject(booking, self.landlord, "Fully booked for the term")

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["asha@example.com"])
        self.assertIn("declined", mail.outbox[0].subject)
        self.assertIn("Fully booked for the term", mail.outbox[0].body)

    def test_failed_transition_sends_nothing(self):
        make_booking(self.student, self.listing, occupants=2, machine=self.machine)
        booking = Booking.objects.get()
        RoomType.objects.filter(pk=self.room().pk).update(occupied=1)
        self.tracker.recompute_totals(self.listing)

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(CapacityExceeded):
                self.machine.confirm(booking, self.landlord)

        self.assertEqual(callbacks, [])
        self.assertEqual(mail.outbox, [])

    def test_notification_failure_does_not_undo_the_transition(self):
        booking = make_booking(self.student, self.listing)

        with mock.patch("nest.services.notifications.send_mail", side_effect=SMTPException("down")):
            with self.assertLogs("nest.services.notifications", level="ERROR"):
                with self.captureOnCommitCallbacks(execute=True):
                    booking = self.machine.confirm(booking, self.landlord)

        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.CONFIRMED)
        self.assertEqual(self.room().occupied, 1)


class CompletionPolicyTests(BookingTestCase):
    def setUp(self):
        super().setUp()
        self.booking = self.machine.confirm(make_booking(self.student, self.listing), self.landlord)

    def test_release_on_complete_is_the_default(self):
        self.machine.complete(self.booking, self.landlord)
        self.assertEqual(self.room().occupied, 0)
        self.assert_inventory_consistent()

    @override_settings(NEST_COMPLETION_POLICY="no-auto-release")
    def test_no_auto_release_keeps_beds(self):
        self.machine.complete(self.booking, self.landlord)
        self.assertEqual(self.room().occupied, 1)
        self.assert_inventory_consistent()

    @override_settings(NEST_COMPLETION_POLICY="sometimes")
    def test_unknown_policy_is_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            self.machine.complete(self.booking, self.landlord)

    def test_scheduled_completion_waits_for_check_out(self):
        with self.assertRaises(ValidationError):
            self.machine.complete(self.booking, today=date(2026, 9, 30))
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.CONFIRMED)

        booking = self.machine.complete(self.booking, today=date(2026, 10, 1))
        self.assertEqual(booking.status, Booking.COMPLETED)

    def test_complete_due_bookings(self):
        later = self.machine.confirm(
            make_booking(make_user("ben"), self.listing, duration=6),
            self.landlord,
        )

        completed = self.machine.complete_due_bookings(today=date(2026, 11, 15))

        self.assertEqual([booking.pk for booking in completed], [self.booking.pk])
        later.refresh_from_db()
        self.assertEqual(later.status, Booking.CONFIRMED)
        self.assertEqual(self.room().occupied, 1)

    def test_complete_due_bookings_command(self):
        out = StringIO()
        call_command("complete_due_bookings", "--date", "2026-12-01", stdout=out)

        self.assertIn("Completed 1 booking(s).", out.getvalue())
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.COMPLETED)

    def test_complete_due_bookings_command_rejects_bad_date(self):
        with self.assertRaises(CommandError):
            call_command("complete_due_bookings", "--date", "tomorrow", stdout=StringIO())


class PaymentTests(BookingTestCase):
    def test_payment_flow(self):
        booking = self.machine.confirm(make_booking(self.student, self.listing), self.landlord)

        booking = self.machine.record_payment(booking, self.landlord, Booking.PAYMENT_PARTIAL, "upi")
        self.assertEqual(booking.payment_status, Booking.PAYMENT_PARTIAL)
        self.assertEqual(booking.payment_method, "upi")

        booking = self.machine.record_payment(booking, self.landlord, Booking.PAYMENT_PAID)
        self.assertEqual(booking.payment_status, Booking.PAYMENT_PAID)
        self.assertEqual(booking.payment_method, "upi")

        booking = self.machine.cancel(booking, self.student, "relocated")
        booking = self.machine.record_payment(booking, self.landlord, Booking.PAYMENT_REFUNDED)
        self.assertEqual(booking.payment_status, Booking.PAYMENT_REFUNDED)

    def test_pending_booking_cannot_be_paid(self):
        booking = make_booking(self.student, self.listing)
        with self.assertRaises(InvalidTransition):
            self.machine.record_payment(booking, self.landlord, Booking.PAYMENT_PAID)

    def test_refund_requires_a_payment(self):
        booking = self.machine.confirm(make_booking(self.student, self.listing), self.landlord)
        with self.assertRaises(InvalidTransition):
            self.machine.record_payment(booking, self.landlord, Booking.PAYMENT_REFUNDED)

    def test_unknown_method_and_wrong_actor(self):
        booking = self.machine.confirm(make_booking(self.student, self.listing), self.landlord)

        with self.assertRaises(ValidationError):
            self.machine.record_payment(booking, self.landlord, Booking.PAYMENT_PAID, "cheque")
        with self.assertRaises(PermissionDenied):
            self.machine.record_payment(booking, self.student, Booking.PAYMENT_PAID)


class InventoryCommandTests(BookingTestCase):
    def test_check_inventory_reports_and_fixes_drift(self):
        Property.objects.filter(pk=self.listing.pk).update(total_capacity=9)

        out = StringIO()
        call_command("check_inventory", stdout=out)
        self.assertIn(f"Property {self.listing.pk}: total_capacity is 9", out.getvalue())
        self.assertIn("1 property with inconsistent inventory.", out.getvalue())

        call_command("check_inventory", "--fix", stdout=StringIO())
        self.assertEqual(Property.objects.get(pk=self.listing.pk).total_capacity, 2)
