from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.db.models import Avg, Count
from django.utils import timezone

from ..forms import ReviewForm
from ..models.booking import Booking
from ..models.property import Property
from ..models.review import Review

if TYPE_CHECKING:  # pragma: no cover - used for static analysis only
    from ..models.user import User as UserType


@dataclass(frozen=True)
class ReviewEligibility:
    can_review: bool
    reason: str | None = None


class ReviewService:
    """Handle review creation and the rating totals stored on a property."""

    STAY_STATUSES = {Booking.CONFIRMED, Booking.COMPLETED}

    def __init__(self, user: "UserType"):
        self.user = user

    def user_review(self, listing: Property) -> Review | None:
        if not getattr(self.user, "is_authenticated", False):
            return None
        return Review.objects.filter(listing=listing, user=self.user).first()

    def eligibility(self, listing: Property) -> ReviewEligibility:
        if not getattr(self.user, "is_authenticated", False):
            return ReviewEligibility(False, "You must be logged in to review this property.")
        if not getattr(self.user, "is_student", False):
            return ReviewEligibility(False, "Only students can review properties.")
        return ReviewEligibility(True, None)

    def stay_booking(self, listing: Property) -> Booking | None:
        return (
            Booking.objects.filter(student=self.user, listing=listing, status__in=self.STAY_STATUSES)
            .order_by("-check_in_date")
            .first()
        )

    def form(self, listing: Property, data: dict[str, Any] | None = None) -> ReviewForm:
        return ReviewForm(data=data, instance=self.user_review(listing))

    def save(
        self,
        listing: Property,
        data: dict[str, Any],
    ) -> tuple[bool, ReviewForm, Review | None, ReviewEligibility]:
        eligibility = self.eligibility(listing)
        form = self.form(listing, data=data)
        if not eligibility.can_review:
            return False, form, None, eligibility
        if not form.is_valid():
            return False, form, None, eligibility
        with transaction.atomic():
            review = form.save(commit=False)
            review.listing = listing
            review.user = self.user
            review.booking = self.stay_booking(listing)
            review.is_verified = review.booking is not None
            review.save()
            refresh_rating(listing)
        return True, form, review, eligibility

    def delete(self, review: Review) -> None:
        if review.user_id != self.user.pk:
            raise PermissionDenied("You can only delete your own review.")
        listing = review.listing
        with transaction.atomic():
            review.delete()
            refresh_rating(listing)

    def respond(self, review: Review, response: str) -> Review:
        if review.listing.landlord_id != self.user.pk:
            raise PermissionDenied("Only the property's landlord can respond to its reviews.")
        review.landlord_response = response.strip()
        review.landlord_response_date = timezone.now()
        review.save(update_fields=["landlord_response", "landlord_response_date", "updated_at"])
        return review


def refresh_rating(listing: Property) -> Property:
    """Recompute ``average_rating`` and ``total_reviews`` from approved reviews."""

    stats = Review.objects.filter(listing=listing, is_approved=True).aggregate(
        average=Avg("rating"),
        total=Count("id"),
    )
    average = Decimal(str(stats["average"] or 0)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    listing.average_rating = average
    listing.total_reviews = stats["total"]
    Property.objects.filter(pk=listing.pk).update(average_rating=average, total_reviews=stats["total"])
    return listing
