"""Aggregate URL patterns for the marketplace application."""

from . import auth, booking, landlord, messaging, public

urlpatterns = [
    *public.urlpatterns,
    *booking.urlpatterns,
    *landlord.urlpatterns,
    *messaging.urlpatterns,
    *auth.urlpatterns,
]
