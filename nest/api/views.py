from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.generics import RetrieveAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from ..forms import BookingRequestForm, PaymentUpdateForm
from ..models import Booking, Property, Review, User
from ..permissions import IsLandlord, IsLandlordOrReadOnly, IsStudent, IsStudentOrReadOnly
from ..services.bookings import BookingStateMachine
from ..services.landlord import LandlordDashboardService, PropertyAuthoringService
from ..services.listings import ListingQueryService
from ..services.messaging import MessagingService
from ..services.reviews import ReviewService
from .serializers import (
    BookingSerializer,
    MessageSerializer,
    PropertyDetailSerializer,
    PropertyListSerializer,
    ReviewSerializer,
    UserSerializer,
)


def get_by_id_or_400(model, raw_id, field):
    """Look up ``model`` by a client supplied id, rejecting values that are not ids."""

    raw_id = str(raw_id if raw_id is not None else "").strip()
    if not raw_id.isdigit():
        raise ValidationError({field: ["A valid id is required."]})
    return get_object_or_404(model, pk=int(raw_id))


class CurrentUserView(RetrieveAPIView):
    """Return the authenticated user's profile information."""

    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        return self.request.user


class PropertyListCreateView(APIView):
    """Search available listings, or publish a new one as a landlord."""

    permission_classes = [IsLandlordOrReadOnly]
    service_class = ListingQueryService

    def get(self, request):
        filters, page = self.service_class().search(request.query_params)
        serializer = PropertyListSerializer(page.object_list, many=True, context={"request": request})
        return Response(
            {
                "count": page.paginator.count,
                "page": page.number,
                "num_pages": page.paginator.num_pages,
                "page_size": page.paginator.per_page,
                "sort": filters.sort,
                "results": serializer.data,
            }
        )

    def post(self, request):
        listing = PropertyAuthoringService(request.user).create(request.data)
        serializer = PropertyDetailSerializer(listing, context={"request": request})
        return Response(serializer.data, status=status.HTTP_201_CREATED)


class PropertyDetailView(RetrieveAPIView):
    serializer_class = PropertyDetailSerializer
    queryset = Property.objects.select_related("landlord").prefetch_related("room_types", "images")

    def retrieve(self, request, *args, **kwargs):
        listing = self.get_object()
        ListingQueryService().record_view(listing)
        return Response(self.get_serializer(listing).data)


class RoomTypeUpdateView(APIView):
    permission_classes = [IsLandlord]

    def put(self, request, pk):
        listing = get_object_or_404(Property, pk=pk)
        rows = request.data.get("room_types") if isinstance(request.data, dict) else request.data
        if not isinstance(rows, list):
            raise ValidationError({"room_types": ["Provide a list of room types."]})
        PropertyAuthoringService(request.user).update_room_types(listing, rows)
        listing = Property.objects.prefetch_related("room_types", "images").get(pk=listing.pk)
        return Response(PropertyDetailSerializer(listing, context={"request": request}).data)


class PropertyReviewsView(APIView):
    permission_classes = [IsStudentOrReadOnly]

    def get(self, request, pk):
        listing = get_object_or_404(Property, pk=pk)
        reviews = Review.objects.filter(listing=listing, is_approved=True).select_related("user")
        return Response(ReviewSerializer(reviews, many=True).data)

    def post(self, request, pk):
        listing = get_object_or_404(Property, pk=pk)
        success, form, review, eligibility = ReviewService(request.user).save(listing, request.data)
        if not eligibility.can_review:
            raise PermissionDenied(eligibility.reason)
        if not success:
            raise DjangoValidationError(form.errors.as_data())
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)


class LandlordDashboardView(APIView):
    permission_classes = [IsLandlord]
    service_class = LandlordDashboardService

    def get(self, request):
        service = self.service_class(request.user)
        properties = list(service.properties())
        stats = service.stats(properties)
        return Response(
            {
                "stats": {
                    "total_properties": stats.total_properties,
                    "total_beds": stats.total_beds,
                    "occupied_beds": stats.occupied_beds,
                    "occupancy_rate": stats.occupancy_rate,
                    "pending_bookings": stats.pending_bookings,
                },
                "properties": PropertyListSerializer(properties, many=True).data,
                "pending_bookings": BookingSerializer(service.bookings(Booking.PENDING), many=True).data,
            }
        )


class BookingListCreateView(APIView):
    """List the caller's bookings, or request a new booking as a student."""

    permission_classes = [IsAuthenticated]
    service_class = BookingStateMachine

    def get(self, request):
        user = request.user
        if user.is_landlord:
            bookings = Booking.objects.filter(landlord=user)
        else:
            bookings = Booking.objects.filter(student=user)
        status_filter = request.query_params.get("status")
        if status_filter:
            bookings = bookings.filter(status=status_filter)
        bookings = bookings.select_related("listing").order_by("-created_at", "-id")
        return Response(BookingSerializer(bookings, many=True).data)

    def post(self, request):
        if not IsStudent().has_permission(request, self):
            raise PermissionDenied(IsStudent.message)
        listing = get_by_id_or_400(Property, request.data.get("listing"), "listing")
        form = BookingRequestForm(request.data)
        if not form.is_valid():
            raise DjangoValidationError(form.errors.as_data())
        booking = self.service_class().create(request.user, form.to_request(listing))
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


class BookingActionView(APIView):
    """Apply a lifecycle event (confirm, reject, cancel, complete, payment) to a booking."""

    permission_classes = [IsAuthenticated]
    service_class = BookingStateMachine
    actions = ("confirm", "reject", "cancel", "complete", "payment")

    def post(self, request, booking_id, action):
        if action not in self.actions:
            raise NotFound("Unknown booking action.")
        booking = get_object_or_404(
            Booking.objects.filter(Q(student=request.user) | Q(landlord=request.user)),
            pk=booking_id,
        )
        service = self.service_class()
        if action == "confirm":
            booking = service.confirm(booking, request.user)
        elif action == "reject":
            booking = service.reject(booking, request.user, request.data.get("reason", ""))
        elif action == "cancel":
            booking = service.cancel(booking, request.user, request.data.get("reason", ""))
        elif action == "complete":
            booking = service.complete(booking, request.user)
        else:
            form = PaymentUpdateForm(request.data)
            if not form.is_valid():
                raise DjangoValidationError(form.errors.as_data())
            booking = service.record_payment(
                booking,
                request.user,
                form.cleaned_data["payment_status"],
                form.cleaned_data.get("payment_method") or None,
            )
        return Response(BookingSerializer(booking).data)


class ConversationMessagesView(APIView):
    """Read or extend the conversation between the caller and another user."""

    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        other = get_object_or_404(User, pk=user_id)
        service = MessagingService(request.user)
        messages = list(service.thread(other))
        service.mark_read(other)
        return Response(MessageSerializer(messages, many=True).data)

    def post(self, request, user_id):
        other = get_object_or_404(User, pk=user_id)
        listing = None
        booking = None
        if request.data.get("listing"):
            listing = get_by_id_or_400(Property, request.data["listing"], "listing")
        if request.data.get("booking"):
            booking = get_by_id_or_400(Booking, request.data["booking"], "booking")
        message = MessagingService(request.user).send(
            other,
            request.data.get("body", ""),
            listing=listing,
            booking=booking,
        )
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)


class ConversationListView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        service = MessagingService(request.user)
        return Response(
            {
                "unread": service.unread_count(),
                "conversations": MessageSerializer(service.conversations(), many=True).data,
            }
        )
