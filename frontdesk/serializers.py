from rest_framework import serializers

from .models import AuditLog, Booking, Guest, Payment, Room, RoomType


class BlankAsNullMixin:
    """Treat '' as absent for the listed optional fields (form clients send blanks)."""

    blank_as_null = ()

    def to_internal_value(self, data):
        if hasattr(data, 'copy'):
            data = data.copy()
            for name in self.blank_as_null:
                if data.get(name) == '':
                    data[name] = None
        return super().to_internal_value(data)


class RoomTypeSerializer(serializers.ModelSerializer):
    amenities = serializers.ListField(child=serializers.CharField(), required=False)
    images = serializers.ListField(child=serializers.CharField(), required=False)

    class Meta:
        model = RoomType
        fields = '__all__'

    def validate_amenities(self, value):
        # amenities are a set; keep first-seen order
        return list(dict.fromkeys(value))


class RoomSerializer(serializers.ModelSerializer):
    room_type_id = serializers.PrimaryKeyRelatedField(source='room_type', queryset=RoomType.objects.all())
    room_type = RoomTypeSerializer(read_only=True)

    class Meta:
        model = Room
        fields = ['id', 'room_number', 'room_type_id', 'status', 'room_type']


class GuestSerializer(serializers.ModelSerializer):
    has_identity = serializers.BooleanField(read_only=True)

    class Meta:
        model = Guest
        fields = ['id', 'full_name', 'email', 'phone', 'id_type', 'id_number', 'address', 'has_identity']


class GuestDetailsInput(serializers.Serializer):
    full_name = serializers.CharField(required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True)
    id_type = serializers.CharField(required=False, allow_blank=True)
    id_number = serializers.CharField(required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)


class BookingSerializer(serializers.ModelSerializer):
    guest_id = serializers.IntegerField(read_only=True)
    room_type_id = serializers.IntegerField(read_only=True)
    room_id = serializers.IntegerField(read_only=True, allow_null=True)
    created_by = serializers.PrimaryKeyRelatedField(read_only=True)
    guest = GuestSerializer(read_only=True)
    room_type = RoomTypeSerializer(read_only=True)
    room = RoomSerializer(read_only=True)
    nights = serializers.IntegerField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id', 'guest_id', 'room_type_id', 'room_id',
            'check_in_date', 'check_out_date', 'nights', 'total_amount', 'status', 'notes',
            'key_card_id', 'created_by', 'created_at', 'updated_at', 'checked_in_at', 'checked_out_at',
            'guest', 'room_type', 'room',
        ]
        read_only_fields = fields


class BookingCreateSerializer(BlankAsNullMixin, serializers.Serializer):
    """Shape-checks a booking request; business preconditions live in services.create_booking."""

    blank_as_null = ('guest_id', 'room_type_id', 'room_id', 'check_in_date', 'check_out_date', 'total_amount')

    guest_id = serializers.IntegerField(required=False, allow_null=True)
    guest_details = GuestDetailsInput(required=False, allow_null=True)
    room_type_id = serializers.IntegerField(required=False, allow_null=True)
    room_id = serializers.IntegerField(required=False, allow_null=True)
    check_in_date = serializers.DateField(required=False, allow_null=True)
    check_out_date = serializers.DateField(required=False, allow_null=True)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class BookingUpdateSerializer(BlankAsNullMixin, serializers.Serializer):
    blank_as_null = ('guest_id', 'room_type_id', 'room_id', 'check_in_date', 'check_out_date', 'total_amount', 'status')

    guest_id = serializers.IntegerField(required=False, allow_null=True)
    room_type_id = serializers.IntegerField(required=False, allow_null=True)
    room_id = serializers.IntegerField(required=False, allow_null=True)
    check_in_date = serializers.DateField(required=False, allow_null=True)
    check_out_date = serializers.DateField(required=False, allow_null=True)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    status = serializers.ChoiceField(choices=Booking.Status.choices, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CheckInSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()
    room_id = serializers.IntegerField()
    guest_id_type = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    guest_id_number = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    key_card_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CheckOutSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class PaymentSerializer(serializers.ModelSerializer):
    booking_id = serializers.IntegerField(read_only=True)
    processed_by = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id', 'booking_id', 'amount', 'payment_method', 'status',
            'processed_by', 'processed_at', 'receipt_number', 'notes',
        ]
        read_only_fields = fields


class PaymentCreateSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    payment_method = serializers.ChoiceField(choices=Payment.Method.choices)
    status = serializers.ChoiceField(choices=Payment.Status.choices, default=Payment.Status.COMPLETED)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class AuditLogSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user_id', 'action', 'entity_type', 'entity_id', 'details', 'created_at']
        read_only_fields = fields
