"""Landlord-focused URL patterns."""

from django.urls import path

from ..api import views

urlpatterns = [
    path("api/landlord/dashboard/", views.LandlordDashboardView.as_view(), name="landlord_dashboard"),
    path(
        "api/properties/<int:pk>/room-types/",
        views.RoomTypeUpdateView.as_view(),
        name="property_room_types",
    ),
]
