from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    STUDENT = "student"
    LANDLORD = "landlord"

    USER_TYPE_CHOICES = (
        (STUDENT, "Student"),
        (LANDLORD, "Landlord"),
    )
    GENDER_CHOICES = (
        ("male", "Male"),
        ("female", "Female"),
        ("non_binary", "Non-binary"),
        ("prefer_not_to_say", "Prefer not to say"),
    )

    user_type = models.CharField(max_length=10, choices=USER_TYPE_CHOICES, default=STUDENT)
    gender = models.CharField(max_length=20, choices=GENDER_CHOICES, null=True, blank=True)
    contact_number = models.CharField(max_length=20, blank=True)
    college = models.CharField(max_length=255, blank=True)

    @property
    def is_student(self) -> bool:
        return self.user_type == self.STUDENT

    @property
    def is_landlord(self) -> bool:
        return self.user_type == self.LANDLORD

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username
