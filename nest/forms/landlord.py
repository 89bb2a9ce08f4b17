from decimal import Decimal

from django import forms
from django.core.validators import RegexValidator

from ..models import Property, PropertyImage, RoomType

MEAL_CHOICES = [
    ("breakfast", "Breakfast"),
    ("lunch", "Lunch"),
    ("dinner", "Dinner"),
]

pincode_validator = RegexValidator(r"^\d{6}$", "Pincode must be 6 digits.")
phone_validator = RegexValidator(r"^\+?[\d\s\-()]+$", "Invalid phone number.")


class StringListField(forms.Field):
    """Accepts a list of strings or a comma separated string."""

    def to_python(self, value):
        if value in self.empty_values:
            return []
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, (list, tuple)):
            raise forms.ValidationError("Enter a list of values.")
        return [str(item).strip() for item in value if str(item).strip()]


class PropertyForm(forms.ModelForm):
    # Fields the landlord may leave out; the model default applies.
    DEFAULTED_FIELDS = (
        "food_type",
        "gender_preference",
        "furnishing_status",
        "preferred_tenants",
        "minimum_stay",
    )

    title = forms.CharField(min_length=10, max_length=100)
    description = forms.CharField(min_length=50, max_length=2000)
    pincode = forms.CharField(max_length=6, validators=[pincode_validator])
    latitude = forms.DecimalField(min_value=-90, max_value=90, required=False)
    longitude = forms.DecimalField(min_value=-180, max_value=180, required=False)
    amenities = StringListField(required=False)
    house_rules = StringListField(required=False)
    meals_provided = forms.MultipleChoiceField(choices=MEAL_CHOICES, required=False)
    contact_number = forms.CharField(max_length=20, required=False, validators=[phone_validator])

    class Meta:
        model = Property
        fields = [
            "title",
            "description",
            "property_type",
            "price",
            "bedrooms",
            "bathrooms",
            "area_sqft",
            "address",
            "city",
            "state",
            "pincode",
            "nearby_college",
            "distance_from_college",
            "latitude",
            "longitude",
            "amenities",
            "house_rules",
            "food_included",
            "food_type",
            "meals_provided",
            "gender_preference",
            "furnishing_status",
            "preferred_tenants",
            "available_from",
            "available_to",
            "minimum_stay",
            "security_deposit",
            "maintenance_charges",
        ]

    def __init__(self, *args, landlord=None, **kwargs):
        self.landlord = landlord
        super().__init__(*args, **kwargs)
        for name in self.DEFAULTED_FIELDS:
            self.fields[name].required = False

    def clean_address(self):
        address = self.cleaned_data.get("address", "").strip()
        if len(address) < 10:
            raise forms.ValidationError("Address must be at least 10 characters.")
        return address

    def clean_latitude(self):
        return self._quantize_coordinate(self.cleaned_data.get("latitude"))

    def clean_longitude(self):
        return self._quantize_coordinate(self.cleaned_data.get("longitude"))

    def clean(self):
        cleaned_data = super().clean()
        for name in self.DEFAULTED_FIELDS:
            if cleaned_data.get(name) in (None, ""):
                cleaned_data[name] = Property._meta.get_field(name).get_default()
        available_from = cleaned_data.get("available_from")
        available_to = cleaned_data.get("available_to")
        if available_from and available_to and available_to < available_from:
            self.add_error("available_to", "Availability must end after it starts.")
        if (cleaned_data.get("latitude") is None) != (cleaned_data.get("longitude") is None):
            self.add_error("longitude", "Provide both latitude and longitude, or neither.")
        return cleaned_data

    def save(self, commit=True):
        listing = super().save(commit=False)
        if self.landlord is None:
            raise ValueError("PropertyForm.save() requires a landlord instance")
        listing.landlord = self.landlord
        if commit:
            listing.save()
        return listing

    @staticmethod
    def _quantize_coordinate(value):
        if value is None:
            return None
        return value.quantize(Decimal("0.000001"))


class RoomTypeForm(forms.ModelForm):
    class Meta:
        model = RoomType
        fields = ["type", "capacity", "occupied", "price_per_bed"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["occupied"].required = False

    def clean_occupied(self):
        occupied = self.cleaned_data.get("occupied")
        return occupied if occupied is not None else 0

    def clean(self):
        cleaned_data = super().clean()
        capacity = cleaned_data.get("capacity")
        occupied = cleaned_data.get("occupied") or 0
        if capacity is not None and occupied > capacity:
            self.add_error("occupied", "Occupied beds cannot exceed capacity.")
        return cleaned_data


class PropertyImageForm(forms.ModelForm):
    class Meta:
        model = PropertyImage
        fields = ["url", "caption", "is_main"]
