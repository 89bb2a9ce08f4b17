from django.db import models

from .booking import Booking
from .property import Property
from .user import User


def conversation_id(first_user_id, second_user_id) -> str:
    """Return the canonical key for the conversation between two users.

    The two identifiers are sorted so the key does not depend on who writes first.
    """

    low, high = sorted([str(first_user_id), str(second_user_id)])
    return f"{low}_{high}"


class Message(models.Model):
    MESSAGE_TYPE_CHOICES = (
        ("text", "Text"),
        ("image", "Image"),
        ("document", "Document"),
        ("system", "System"),
    )
    MAX_LENGTH = 2000

    sender = models.ForeignKey(User, on_delete=models.CASCADE, related_name="sent_messages")
    receiver = models.ForeignKey(User, on_delete=models.CASCADE, related_name="received_messages")
    listing = models.ForeignKey(
        Property,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="messages",
    )
    booking = models.ForeignKey(
        Booking,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="messages",
    )
    body = models.TextField(max_length=MAX_LENGTH)
    message_type = models.CharField(max_length=10, choices=MESSAGE_TYPE_CHOICES, default="text")
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    conversation_id = models.CharField(max_length=64, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["conversation_id", "created_at"], name="message_conversation_idx"),
            models.Index(fields=["receiver", "is_read"], name="message_unread_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - simple display helper
        return f"Message from {self.sender} to {self.receiver}"

    def save(self, *args, **kwargs):
        if not self.conversation_id:
            self.conversation_id = conversation_id(self.sender_id, self.receiver_id)
        super().save(*args, **kwargs)
