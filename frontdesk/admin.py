from django.contrib import admin

from .models import AuditLog, Booking, Guest, Payment, Room, RoomType


@admin.register(RoomType)
class RoomTypeAdmin(admin.ModelAdmin):
    list_display = ('name', 'base_price', 'max_occupancy')


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ('room_number', 'room_type', 'status')
    list_filter = ('status', 'room_type')


@admin.register(Guest)
class GuestAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'id_type', 'id_number', 'email', 'phone')
    search_fields = ('full_name', 'id_number', 'email')


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ('id', 'guest', 'room_type', 'room', 'check_in_date', 'check_out_date', 'status')
    list_filter = ('status', 'room_type')
    # lifecycle changes go through the API so they stay audited
    readonly_fields = ('status', 'room', 'key_card_id', 'checked_in_at', 'checked_out_at', 'created_by')


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('receipt_number', 'booking', 'amount', 'payment_method', 'status', 'processed_at')


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'user', 'action', 'entity_type', 'entity_id')
    list_filter = ('action', 'entity_type')
