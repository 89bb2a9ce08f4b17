from django.core.exceptions import ValidationError
from django.test import TestCase

from .models import Message, Property, conversation_id
from .services.bookings import BookingStateMachine
from .services.messaging import MessagingService
from .testing import make_booking, make_landlord, make_property, make_user


class ConversationIdTests(TestCase):
    def test_is_symmetric(self):
        self.assertEqual(conversation_id(7, 12), "12_7")
        self.assertEqual(conversation_id(12, 7), conversation_id(7, 12))


class MessagingServiceTests(TestCase):
    def setUp(self):
        self.landlord = make_landlord()
        self.student = make_user("asha")
        self.listing = make_property(self.landlord)
        self.student_inbox = MessagingService(self.student)
        self.landlord_inbox = MessagingService(self.landlord)

    def test_send_and_read_thread(self):
        first = self.student_inbox.send(self.landlord, "  Is the single room free from July? ", listing=self.listing)
        reply = self.landlord_inbox.send(self.student, "Yes, one bed is free.")

        self.assertEqual(first.body, "Is the single room free from July?")
        self.assertEqual(first.conversation_id, reply.conversation_id)
        self.assertEqual(list(self.student_inbox.thread(self.landlord)), [first, reply])
        self.assertEqual(Property.objects.get(pk=self.listing.pk).inquiries, 1)

    def test_rejects_invalid_messages(self):
        cases = {
            "self": (self.student, "hello"),
            "blank": (self.landlord, "   "),
            "too long": (self.landlord, "x" * (Message.MAX_LENGTH + 1)),
        }
        for label, (receiver, body) in cases.items():
            with self.subTest(label), self.assertRaises(ValidationError):
                self.student_inbox.send(receiver, body)
        self.assertFalse(Message.objects.exists())

    def test_booking_must_involve_sender(self):
        booking = make_booking(self.student, self.listing, machine=BookingStateMachine())
        outsider = make_user("ravi")

        with self.assertRaises(ValidationError):
            MessagingService(outsider).send(self.landlord, "About that booking", booking=booking)

        message = self.student_inbox.send(self.landlord, "About my booking", booking=booking)
        self.assertEqual(message.booking, booking)

    def test_unread_and_mark_read(self):
        self.student_inbox.send(self.landlord, "Hi")
        self.student_inbox.send(self.landlord, "Are pets allowed?")
        self.landlord_inbox.send(self.student, "No pets, sorry.")

        self.assertEqual(self.landlord_inbox.unread_count(), 2)
        self.assertEqual(self.landlord_inbox.mark_read(self.student), 2)
        self.assertEqual(self.landlord_inbox.unread_count(), 0)
        self.assertEqual(self.student_inbox.unread_count(), 1)
        self.assertTrue(Message.objects.filter(receiver=self.landlord, read_at__isnull=False).count() == 2)

    def test_conversations_lists_latest_message_first(self):
        other_landlord = make_landlord("meera")
        self.student_inbox.send(self.landlord, "First question")
        latest_with_landlord = self.landlord_inbox.send(self.student, "Answer")
        latest_with_other = self.student_inbox.send(other_landlord, "Hello Meera")

        self.assertEqual(self.student_inbox.conversations(), [latest_with_other, latest_with_landlord])
