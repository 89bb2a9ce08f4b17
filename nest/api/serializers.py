from rest_framework import serializers

from ..models import Booking, Message, Property, PropertyImage, Review, RoomType, User
from ..services.inventory import RoomInventoryTracker


class UserSerializer(serializers.ModelSerializer):
    """Serializer exposing the current user's public profile information."""

    class Meta:
        model = User
        fields = (
            'id',
            'username',
            'email',
            'first_name',
            'last_name',
            'user_type',
            'contact_number',
            'college',
        )
        read_only_fields = fields


class RoomTypeSerializer(serializers.ModelSerializer):
    label = serializers.CharField(source='get_type_display', read_only=True)
    available_beds = serializers.IntegerField(read_only=True)

    class Meta:
        model = RoomType
        fields = ('type', 'label', 'capacity', 'occupied', 'available_beds', 'price_per_bed')
        read_only_fields = fields


class PropertyImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = PropertyImage
        fields = ('url', 'caption', 'is_main', 'uploaded_at')
        read_only_fields = fields


class PropertyListSerializer(serializers.ModelSerializer):
    main_image = serializers.SerializerMethodField()
    available_beds = serializers.IntegerField(read_only=True)

    class Meta:
        model = Property
        fields = (
            'id',
            'title',
            'property_type',
            'price',
            'city',
            'state',
            'gender_preference',
            'total_capacity',
            'current_occupancy',
            'available_beds',
            'average_rating',
            'total_reviews',
            'main_image',
            'created_at',
        )
        read_only_fields = fields

    def get_main_image(self, obj):
        image = obj.main_image
        return image.url if image else None


class PropertyDetailSerializer(PropertyListSerializer):
    room_types = RoomTypeSerializer(many=True, read_only=True)
    images = PropertyImageSerializer(many=True, read_only=True)
    landlord = UserSerializer(read_only=True)
    inventory = serializers.SerializerMethodField()

    class Meta(PropertyListSerializer.Meta):
        fields = PropertyListSerializer.Meta.fields + (
            'description',
            'bedrooms',
            'bathrooms',
            'area_sqft',
            'address',
            'pincode',
            'nearby_college',
            'distance_from_college',
            'latitude',
            'longitude',
            'amenities',
            'house_rules',
            'food_included',
            'food_type',
            'meals_provided',
            'furnishing_status',
            'preferred_tenants',
            'available_from',
            'available_to',
            'minimum_stay',
            'security_deposit',
            'maintenance_charges',
            'is_available',
            'is_verified',
            'views',
            'room_types',
            'images',
            'landlord',
            'inventory',
        )
        read_only_fields = fields

    def get_inventory(self, obj):
        snapshot = RoomInventoryTracker().snapshot(obj)
        return {
            'total_capacity': snapshot.total_capacity,
            'current_occupancy': snapshot.current_occupancy,
            'available_beds': snapshot.available_beds,
        }


class BookingSerializer(serializers.ModelSerializer):
    property_title = serializers.CharField(source='listing.title', read_only=True)
    status_label = serializers.CharField(source='get_status_display', read_only=True)
    is_terminal = serializers.BooleanField(read_only=True)
    holds_beds = serializers.BooleanField(read_only=True)

    class Meta:
        model = Booking
        fields = (
            'id',
            'listing',
            'property_title',
            'student',
            'landlord',
            'room_type',
            'check_in_date',
            'check_out_date',
            'duration',
            'number_of_occupants',
            'monthly_rent',
            'security_deposit',
            'total_amount',
            'status',
            'status_label',
            'is_terminal',
            'holds_beds',
            'payment_status',
            'payment_method',
            'student_name',
            'student_email',
            'student_phone',
            'special_requests',
            'confirmed_at',
            'rejected_at',
            'cancelled_at',
            'completed_at',
            'rejection_reason',
            'cancellation_reason',
            'created_at',
        )
        read_only_fields = fields


class MessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = Message
        fields = (
            'id',
            'sender',
            'receiver',
            'listing',
            'booking',
            'body',
            'message_type',
            'is_read',
            'read_at',
            'conversation_id',
            'created_at',
        )
        read_only_fields = fields


class ReviewSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.display_name', read_only=True)

    class Meta:
        model = Review
        fields = (
            'id',
            'listing',
            'user',
            'user_name',
            'rating',
            'title',
            'comment',
            'cleanliness',
            'location',
            'amenities',
            'value_for_money',
            'landlord_behavior',
            'is_verified',
            'landlord_response',
            'landlord_response_date',
            'created_at',
        )
        read_only_fields = fields
