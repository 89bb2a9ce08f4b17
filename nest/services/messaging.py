from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db.models import F, OuterRef, Q, Subquery
from django.utils import timezone

from ..models import Booking, Message, Property, User, conversation_id

logger = logging.getLogger(__name__)


class MessagingService:
    """Direct messages between a student and a landlord."""

    def __init__(self, user: User):
        self.user = user

    def send(
        self,
        receiver: User,
        body: str,
        *,
        listing: Property | None = None,
        booking: Booking | None = None,
        message_type: str = "text",
    ) -> Message:
        text = (body or "").strip()
        if receiver.pk == self.user.pk:
            raise ValidationError({"receiver": "You cannot message yourself."})
        if not text:
            raise ValidationError({"body": "Message cannot be empty."})
        if len(text) > Message.MAX_LENGTH:
            raise ValidationError({"body": f"Messages are limited to {Message.MAX_LENGTH} characters."})
        if booking is not None and self.user.pk not in {booking.student_id, booking.landlord_id}:
            raise ValidationError({"booking": "You are not part of this booking."})

        message = Message.objects.create(
            sender=self.user,
            receiver=receiver,
            listing=listing,
            booking=booking,
            body=text,
            message_type=message_type,
            conversation_id=conversation_id(self.user.pk, receiver.pk),
        )
        if listing is not None:
            Property.objects.filter(pk=listing.pk).update(inquiries=F("inquiries") + 1)
        logger.info("Message %s sent in conversation %s", message.pk, message.conversation_id)
        return message

    def thread(self, other: User):
        return (
            Message.objects.filter(conversation_id=conversation_id(self.user.pk, other.pk))
            .select_related("sender", "receiver")
            .order_by("created_at", "id")
        )

    def mark_read(self, other: User) -> int:
        return Message.objects.filter(
            conversation_id=conversation_id(self.user.pk, other.pk),
            receiver=self.user,
            is_read=False,
        ).update(is_read=True, read_at=timezone.now())

    def unread_count(self) -> int:
        return Message.objects.filter(receiver=self.user, is_read=False).count()

    def conversations(self) -> list[Message]:
        """Return the latest message of every conversation, newest first."""

        latest = (
            Message.objects.filter(conversation_id=OuterRef("conversation_id"))
            .order_by("-created_at", "-id")
            .values("id")[:1]
        )
        return list(
            Message.objects.filter(Q(sender=self.user) | Q(receiver=self.user), id=Subquery(latest))
            .select_related("sender", "receiver")
            .order_by("-created_at", "-id")
        )
