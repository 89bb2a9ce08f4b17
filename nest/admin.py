from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Booking, Message, Property, PropertyImage, Review, RoomType, User


@admin.register(User)
class CustomUserAdmin(BaseUserAdmin):
	list_display = ('username', 'email', 'user_type', 'gender', 'is_staff')
	list_filter = BaseUserAdmin.list_filter + ('user_type', 'gender')
	fieldsets = BaseUserAdmin.fieldsets + (
		('Additional Information', {'fields': ('user_type', 'gender', 'contact_number', 'college')}),
	)
	add_fieldsets = BaseUserAdmin.add_fieldsets + (
		(
			'Additional Information',
			{
				'classes': ('wide',),
				'fields': ('user_type', 'gender', 'contact_number', 'college'),
			},
		),
	)


class RoomTypeInline(admin.TabularInline):
	model = RoomType
	extra = 0
	# Occupancy only moves through bookings.
	readonly_fields = ('occupied',)


class PropertyImageInline(admin.TabularInline):
	model = PropertyImage
	extra = 0


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
	list_display = ('title', 'landlord', 'property_type', 'city', 'price', 'total_capacity', 'current_occupancy', 'is_available')
	list_filter = ('property_type', 'city', 'gender_preference', 'is_available', 'is_verified')
	search_fields = ('title', 'city', 'landlord__username', 'landlord__email')
	readonly_fields = ('total_capacity', 'current_occupancy', 'average_rating', 'total_reviews', 'views', 'inquiries', 'bookings_count')
	inlines = [RoomTypeInline, PropertyImageInline]


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
	list_display = ('id', 'listing', 'student', 'room_type', 'status', 'payment_status', 'check_in_date')
	list_filter = ('status', 'payment_status', 'room_type')
	search_fields = ('student_name', 'student_email', 'listing__title')
	readonly_fields = ('status', 'confirmed_at', 'rejected_at', 'cancelled_at', 'completed_at')


admin.site.register(Message)
admin.site.register(Review)
