from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .booking import Booking
from .property import Property
from .user import User

RATING_VALIDATORS = [MinValueValidator(1), MaxValueValidator(5)]


class Review(models.Model):
    listing = models.ForeignKey(Property, on_delete=models.CASCADE, related_name="reviews")
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        limit_choices_to={"user_type": User.STUDENT},
        related_name="reviews",
    )
    booking = models.ForeignKey(Booking, on_delete=models.SET_NULL, null=True, blank=True, related_name="reviews")
    rating = models.IntegerField(validators=RATING_VALIDATORS)
    title = models.CharField(max_length=100)
    comment = models.TextField(max_length=1000)

    cleanliness = models.IntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    location = models.IntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    amenities = models.IntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    value_for_money = models.IntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    landlord_behavior = models.IntegerField(null=True, blank=True, validators=RATING_VALIDATORS)

    is_verified = models.BooleanField(default=False)
    is_approved = models.BooleanField(default=True)
    landlord_response = models.TextField(blank=True)
    landlord_response_date = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(fields=["listing", "user"], name="one_review_per_user_and_property"),
        ]

    def __str__(self) -> str:  # pragma: no cover - simple display helper
        return f"Review for {self.listing.title} by {self.user.username}"
