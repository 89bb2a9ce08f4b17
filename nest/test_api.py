"""Tests for the REST API endpoints."""

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from .models import Booking, Message, Property, RoomType
from .services.bookings import BookingStateMachine
from .test_landlord import listing_payload
from .testing import make_booking, make_landlord, make_property, make_user


class PropertyAPITests(APITestCase):
    def setUp(self):
        self.landlord = make_landlord()
        self.student = make_user("asha")
        self.listing = make_property(self.landlord)

    def test_anyone_can_search(self):
        make_property(self.landlord, title="Hidden Townhouse Rooms", is_available=False)

        response = self.client.get(reverse("property_list"), {"city": "bengaluru"})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["sort"], "newest")
        self.assertEqual(response.data["page_size"], 12)
        self.assertEqual(response.data["results"][0]["available_beds"], 2)

    def test_detail_counts_views_and_shows_inventory(self):
        url = reverse("property_detail", args=[self.listing.pk])

        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["views"], 1)
        self.assertEqual(response.data["inventory"]["available_beds"], 2)
        self.assertEqual(response.data["room_types"][0]["label"], "Single")
        self.assertEqual(self.client.get(reverse("property_detail", args=[9999])).status_code, 404)

    def test_landlord_publishes_property(self):
        self.client.force_authenticate(self.landlord)

        response = self.client.post(reverse("property_list"), listing_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["total_capacity"], 6)
        self.assertEqual(len(response.data["images"]), 2)

    def test_invalid_property_is_a_bad_request(self):
        self.client.force_authenticate(self.landlord)

        response = self.client.post(reverse("property_list"), listing_payload(images=[]), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("images", response.data)

    def test_students_cannot_publish(self):
        self.client.force_authenticate(self.student)
        response = self.client.post(reverse("property_list"), listing_payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_room_type_update(self):
        self.client.force_authenticate(self.landlord)
        url = reverse("property_room_types", args=[self.listing.pk])

        response = self.client.put(
            url,
            {"room_types": [{"type": "single", "capacity": 3, "price_per_bed": "5500.00"}]},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total_capacity"], 3)

        other = make_landlord("meera")
        self.client.force_authenticate(other)
        response = self.client.put(url, [{"type": "single", "capacity": 1, "price_per_bed": "1.00"}], format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_reviews(self):
        url = reverse("property_reviews", args=[self.listing.pk])
        self.client.force_authenticate(self.student)

        response = self.client.post(url, {"rating": 4, "title": "Good", "comment": "Quiet and clean."}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(url, {"rating": 9, "title": "Bad", "comment": "?"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.client.force_authenticate(self.landlord)
        response = self.client.post(url, {"rating": 5, "title": "Mine", "comment": "Great."}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(None)
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_landlord_dashboard(self):
        make_booking(self.student, self.listing)
        self.client.force_authenticate(self.landlord)

        response = self.client.get(reverse("landlord_dashboard"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["stats"]["total_beds"], 2)
        self.assertEqual(len(response.data["pending_bookings"]), 1)

        self.client.force_authenticate(self.student)
        self.assertEqual(self.client.get(reverse("landlord_dashboard")).status_code, 403)

    def test_current_user(self):
        self.client.force_authenticate(self.student)
        response = self.client.get(reverse("auth_me"))
        self.assertEqual(response.data["user_type"], "student")


class BookingAPITests(APITestCase):
    def setUp(self):
        self.landlord = make_landlord()
        self.student = make_user("asha")
        self.listing = make_property(self.landlord)

    def action_url(self, booking, action):
        return reverse("booking_action", args=[booking.pk, action])

    def test_student_requests_booking(self):
        self.client.force_authenticate(self.student)

        response = self.client.post(
            reverse("booking_list"),
            {"listing": self.listing.pk, "room_type": "single", "check_in_date": "2026-07-01", "duration": 2},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], Booking.PENDING)
        self.assertEqual(response.data["total_amount"], "20000.00")

        response = self.client.get(reverse("booking_list"))
        self.assertEqual(len(response.data), 1)

    def test_booking_request_validation(self):
        self.client.force_authenticate(self.student)
        url = reverse("booking_list")

        response = self.client.post(url, {"listing": "abc", "room_type": "single"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(
            url,
            {"listing": self.listing.pk, "room_type": "triple", "check_in_date": "2026-07-01", "duration": 1},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("room_type", response.data)

    def test_landlords_cannot_request(self):
        self.client.force_authenticate(self.landlord)
        response = self.client.post(reverse("booking_list"), {"listing": self.listing.pk}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_lifecycle(self):
        booking = make_booking(self.student, self.listing)
        self.client.force_authenticate(self.landlord)

        response = self.client.post(self.action_url(booking, "confirm"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], Booking.CONFIRMED)
        self.assertTrue(response.data["holds_beds"])

        response = self.client.post(self.action_url(booking, "payment"), {"payment_status": "paid"}, format="json")
        self.assertEqual(response.data["payment_status"], "paid")

        self.client.force_authenticate(self.student)
        response = self.client.post(self.action_url(booking, "cancel"), {"reason": "relocated"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["cancellation_reason"], "relocated")
        self.assertTrue(response.data["is_terminal"])
        self.assertEqual(RoomType.objects.get(listing=self.listing).occupied, 0)

        response = self.client.post(self.action_url(booking, "cancel"), {"reason": "again"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "invalid_transition")

    def test_capacity_conflict(self):
        machine = BookingStateMachine()
        first = make_booking(self.student, self.listing, occupants=1, machine=machine)
        second = make_booking(make_user("ben"), self.listing, occupants=2, machine=machine)
        machine.confirm(first, self.landlord)
        self.client.force_authenticate(self.landlord)

        response = self.client.post(self.action_url(second, "confirm"))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "capacity_exceeded")
        self.assertEqual(response.data["available"], 1)

    def test_reject_without_reason(self):
        booking = make_booking(self.student, self.listing)
        self.client.force_authenticate(self.landlord)

        response = self.client.post(self.action_url(booking, "reject"), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("rejection_reason", response.data)

    def test_reason_must_be_text(self):
        booking = BookingStateMachine().confirm(make_booking(self.student, self.listing), self.landlord)
        self.client.force_authenticate(self.student)

        for reason in (42, ["relocated"]):
            with self.subTest(reason=reason):
                response = self.client.post(self.action_url(booking, "cancel"), {"reason": reason}, format="json")
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertIn("cancellation_reason", response.data)

        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.CONFIRMED)

    def test_student_cannot_confirm(self):
        booking = make_booking(self.student, self.listing)
        self.client.force_authenticate(self.student)

        response = self.client.post(self.action_url(booking, "confirm"))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_action_and_foreign_booking(self):
        booking = make_booking(self.student, self.listing)

        self.client.force_authenticate(self.landlord)
        self.assertEqual(self.client.post(self.action_url(booking, "archive")).status_code, 404)

        self.client.force_authenticate(make_user("ravi"))
        self.assertEqual(self.client.post(self.action_url(booking, "cancel")).status_code, 404)


class MessagingAPITests(APITestCase):
    def test_conversation(self):
        landlord = make_landlord()
        student = make_user("asha")
        listing = make_property(landlord)
        url = reverse("conversation_messages", args=[landlord.pk])
        self.client.force_authenticate(student)

        response = self.client.post(url, {"body": "Is parking available?", "listing": listing.pk}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(url, {"body": ""}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.client.force_authenticate(landlord)
        response = self.client.get(reverse("conversation_list"))
        self.assertEqual(response.data["unread"], 1)
        self.assertEqual(len(response.data["conversations"]), 1)

        response = self.client.get(reverse("conversation_messages", args=[student.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m["body"] for m in response.data], ["Is parking available?"])
        self.assertFalse(Message.objects.filter(is_read=False).exists())
        self.assertEqual(Property.objects.get(pk=listing.pk).inquiries, 1)

    def test_related_ids_must_be_numeric(self):
        landlord = make_landlord()
        self.client.force_authenticate(make_user("asha"))
        url = reverse("conversation_messages", args=[landlord.pk])

        for field in ("listing", "booking"):
            with self.subTest(field=field):
                response = self.client.post(url, {"body": "hi", field: "abc"}, format="json")
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertIn(field, response.data)

        response = self.client.post(url, {"body": "hi", "listing": 9999}, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(Message.objects.exists())
