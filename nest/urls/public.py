"""Public listing URL patterns."""

from django.urls import path

from ..api import views

urlpatterns = [
    path("api/properties/", views.PropertyListCreateView.as_view(), name="property_list"),
    path("api/properties/<int:pk>/", views.PropertyDetailView.as_view(), name="property_detail"),
    path("api/properties/<int:pk>/reviews/", views.PropertyReviewsView.as_view(), name="property_reviews"),
]
