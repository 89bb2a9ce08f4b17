from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q

from .user import User


class Property(models.Model):
    PROPERTY_TYPE_CHOICES = (
        ("shared_room", "Shared Room"),
        ("single_room", "Single Room"),
        ("apartment", "Apartment"),
        ("pg", "PG"),
        ("hostel", "Hostel"),
        ("flat", "Flat"),
    )
    GENDER_PREFERENCE_CHOICES = (
        ("male", "Male"),
        ("female", "Female"),
        ("any", "Any"),
    )
    FOOD_TYPE_CHOICES = (
        ("vegetarian", "Vegetarian"),
        ("non_vegetarian", "Non-Vegetarian"),
        ("both", "Both"),
        ("not_provided", "Not Provided"),
    )
    FURNISHING_CHOICES = (
        ("furnished", "Fully Furnished"),
        ("semi_furnished", "Semi Furnished"),
        ("unfurnished", "Unfurnished"),
    )
    PREFERRED_TENANT_CHOICES = (
        ("students", "Students"),
        ("working_professionals", "Working Professionals"),
        ("family", "Family"),
        ("any", "Any"),
    )

    landlord = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        limit_choices_to={"user_type": User.LANDLORD},
        related_name="properties",
    )
    title = models.CharField(max_length=100)
    description = models.TextField()
    property_type = models.CharField(max_length=20, choices=PROPERTY_TYPE_CHOICES)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    bedrooms = models.PositiveIntegerField(default=0)
    bathrooms = models.PositiveIntegerField(default=0)
    area_sqft = models.PositiveIntegerField(null=True, blank=True, help_text="Carpet area in square feet")

    # Write-through aggregates of the room type rows.
    total_capacity = models.PositiveIntegerField(default=0)
    current_occupancy = models.PositiveIntegerField(default=0)

    address = models.TextField()
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)
    pincode = models.CharField(max_length=6)
    nearby_college = models.CharField(max_length=255, blank=True)
    distance_from_college = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Distance in kilometers",
    )
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    amenities = models.JSONField(default=list, blank=True)
    house_rules = models.JSONField(default=list, blank=True)
    food_included = models.BooleanField(default=False)
    food_type = models.CharField(max_length=20, choices=FOOD_TYPE_CHOICES, default="not_provided")
    meals_provided = models.JSONField(default=list, blank=True)
    gender_preference = models.CharField(max_length=10, choices=GENDER_PREFERENCE_CHOICES, default="any")
    furnishing_status = models.CharField(max_length=20, choices=FURNISHING_CHOICES, default="unfurnished")
    preferred_tenants = models.CharField(max_length=30, choices=PREFERRED_TENANT_CHOICES, default="any")

    available_from = models.DateField(null=True, blank=True)
    available_to = models.DateField(null=True, blank=True)
    minimum_stay = models.PositiveIntegerField(default=1, help_text="Minimum stay in months")

    security_deposit = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    maintenance_charges = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    is_available = models.BooleanField(default=True)
    is_verified = models.BooleanField(default=False)

    views = models.PositiveIntegerField(default=0)
    inquiries = models.PositiveIntegerField(default=0)
    bookings_count = models.PositiveIntegerField(default=0)
    average_rating = models.DecimalField(
        max_digits=2,
        decimal_places=1,
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(5)],
    )
    total_reviews = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "properties"
        indexes = [
            models.Index(fields=["city", "property_type", "price"], name="property_search_idx"),
            models.Index(fields=["is_available", "is_verified"], name="property_status_idx"),
            models.Index(fields=["gender_preference"], name="property_gender_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - simple display helper
        return self.title

    @property
    def available_beds(self) -> int:
        return max(self.total_capacity - self.current_occupancy, 0)

    @property
    def main_image(self):
        images = list(self.images.all())
        for image in images:
            if image.is_main:
                return image
        return images[0] if images else None


class RoomType(models.Model):
    SINGLE = "single"
    DOUBLE = "double"
    TRIPLE = "triple"
    DORMITORY = "dormitory"

    TYPE_CHOICES = (
        (SINGLE, "Single"),
        (DOUBLE, "Double"),
        (TRIPLE, "Triple"),
        (DORMITORY, "Dormitory"),
    )
    MAX_CAPACITY = 20

    listing = models.ForeignKey(Property, on_delete=models.CASCADE, related_name="room_types")
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    capacity = models.PositiveIntegerField(validators=[MinValueValidator(1), MaxValueValidator(MAX_CAPACITY)])
    occupied = models.PositiveIntegerField(default=0)
    price_per_bed = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0)])

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["listing", "type"], name="unique_room_type_per_property"),
            models.CheckConstraint(condition=Q(capacity__gte=1), name="room_type_capacity_positive"),
            models.CheckConstraint(
                condition=Q(occupied__gte=0) & Q(occupied__lte=F("capacity")),
                name="room_type_occupied_within_capacity",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - simple display helper
        return f"{self.listing.title} - {self.get_type_display()}"

    @property
    def available_beds(self) -> int:
        return max(self.capacity - self.occupied, 0)


class PropertyImage(models.Model):
    listing = models.ForeignKey(Property, on_delete=models.CASCADE, related_name="images")
    url = models.URLField(max_length=500)
    caption = models.CharField(max_length=255, blank=True)
    is_main = models.BooleanField(default=False)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["uploaded_at", "id"]

    def __str__(self) -> str:  # pragma: no cover - simple display helper
        return f"Image for {self.listing.title} ({self.url})"
