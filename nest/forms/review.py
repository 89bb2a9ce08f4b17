from django import forms

from ..models import Review


class ReviewForm(forms.ModelForm):
    rating = forms.IntegerField(min_value=1, max_value=5)

    class Meta:
        model = Review
        fields = [
            "rating",
            "title",
            "comment",
            "cleanliness",
            "location",
            "amenities",
            "value_for_money",
            "landlord_behavior",
        ]

    def clean_title(self):
        return self.cleaned_data.get("title", "").strip()
