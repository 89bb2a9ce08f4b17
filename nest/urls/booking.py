"""Booking lifecycle URL patterns."""

from django.urls import path

from ..api import views

urlpatterns = [
    path("api/bookings/", views.BookingListCreateView.as_view(), name="booking_list"),
    path(
        "api/bookings/<int:booking_id>/<slug:action>/",
        views.BookingActionView.as_view(),
        name="booking_action",
    ),
]
