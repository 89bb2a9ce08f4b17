import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.serializers import as_serializer_error
from rest_framework.views import exception_handler

from ..exceptions import CapacityExceeded, InvalidRelease, InvalidTransition

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """Extend DRF's handler with the domain errors raised by the services."""

    if isinstance(exc, DjangoValidationError):
        exc = ValidationError(detail=as_serializer_error(exc))
    elif isinstance(exc, CapacityExceeded):
        return Response(
            {"detail": str(exc), "code": "capacity_exceeded", "available": exc.available},
            status=status.HTTP_409_CONFLICT,
        )
    elif isinstance(exc, InvalidTransition):
        return Response({"detail": str(exc), "code": "invalid_transition"}, status=status.HTTP_409_CONFLICT)
    elif isinstance(exc, InvalidRelease):
        view = context.get("view")
        logger.critical("Inventory release failed in %s: %s", type(view).__name__, exc)
        return Response(
            {"detail": "The booking could not be updated. Please contact support.", "code": "inventory_error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return exception_handler(exc, context)
