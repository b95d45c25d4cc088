from datetime import datetime

from django.db.models import ProtectedError, Q
from django.http import JsonResponse
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from . import lifecycle, services
from .availability import list_available_rooms
from .checkin import CheckInFlow, guest_identity_complete
from .exceptions import ReferencedResource, get_or_not_found
from .inventory import list_room_types
from .models import AuditLog, Booking, Guest, Payment, Room
from .payments import record_payment
from .serializers import (
    AuditLogSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    BookingUpdateSerializer,
    CancelSerializer,
    CheckInSerializer,
    CheckOutSerializer,
    GuestSerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
    RoomSerializer,
    RoomTypeSerializer,
)


def welcome(request):
    return JsonResponse({"message": "Welcome to the Hotel Back-Office API"})


def health_check(request):
    return JsonResponse({"status": "ok"})


def parse_date_param(value, name):
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError({name: 'Invalid date format. Use YYYY-MM-DD'})


def parse_id_param(value, name):
    try:
        return int(value)
    except ValueError:
        raise ValidationError({name: 'Must be an integer id.'})


def parse_choice_param(value, choices, name):
    if value not in choices.values:
        raise ValidationError({name: f"Must be one of: {', '.join(choices.values)}."})
    return value


class ProtectedDestroyMixin:
    """Refuse to delete rows other records still point at."""

    def perform_destroy(self, instance):
        try:
            instance.delete()
        except ProtectedError:
            raise ReferencedResource(f"{instance} is still referenced and cannot be deleted.")


class RoomTypeViewSet(ProtectedDestroyMixin, viewsets.ModelViewSet):
    queryset = list_room_types()
    serializer_class = RoomTypeSerializer


class RoomViewSet(ProtectedDestroyMixin, viewsets.ModelViewSet):
    queryset = Room.objects.select_related('room_type')
    serializer_class = RoomSerializer

    def list(self, request):
        """Rooms, optionally narrowed to a type/status and to those free for a date window"""
        params = request.query_params
        check_in_str = params.get('check_in')
        check_out_str = params.get('check_out')
        room_type_id = params.get('room_type_id')
        exclude_booking_id = params.get('exclude_booking_id')
        room_status = params.get('status')

        check_in = parse_date_param(check_in_str, 'check_in') if check_in_str else None
        check_out = parse_date_param(check_out_str, 'check_out') if check_out_str else None
        room_type_id = parse_id_param(room_type_id, 'room_type_id') if room_type_id else None
        exclude_booking_id = parse_id_param(exclude_booking_id, 'exclude_booking_id') if exclude_booking_id else None

        rooms = list_available_rooms(
            check_in,
            check_out,
            room_type_id=room_type_id,
            exclude_booking_id=exclude_booking_id,
        )
        if room_status:
            rooms = rooms.filter(status=parse_choice_param(room_status, Room.Status, 'status'))

        page = self.paginate_queryset(rooms)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(rooms, many=True).data)


class GuestViewSet(ProtectedDestroyMixin, viewsets.ModelViewSet):
    queryset = Guest.objects.all()
    serializer_class = GuestSerializer

    def get_queryset(self):
        guests = super().get_queryset()
        id_number = self.request.query_params.get('id_number')
        search = self.request.query_params.get('search')
        if id_number:
            guests = guests.filter(id_number=id_number.strip())
        if search:
            term = search.strip()
            guests = guests.filter(
                Q(full_name__icontains=term)
                | Q(email__icontains=term)
                | Q(phone__icontains=term)
                | Q(id_number__icontains=term)
            )
        return guests


class BookingViewSet(mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     viewsets.GenericViewSet):
    queryset = Booking.objects.select_related('guest', 'room_type', 'room__room_type')
    serializer_class = BookingSerializer
    lookup_value_regex = r'\d+'
    ordering_fields = ['check_in_date', 'check_out_date', 'created_at', 'total_amount', 'status']

    def get_queryset(self):
        bookings = super().get_queryset()
        params = self.request.query_params
        for name in ('guest_id', 'room_id', 'room_type_id'):
            if params.get(name):
                bookings = bookings.filter(**{name: parse_id_param(params[name], name)})
        if params.get('status'):
            bookings = bookings.filter(status=parse_choice_param(params['status'], Booking.Status, 'status'))
        return bookings

    def _respond(self, booking, status_code=status.HTTP_200_OK):
        booking = self.queryset.all().get(pk=booking.pk)
        return Response(BookingSerializer(booking).data, status=status_code)

    def create(self, request):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = services.create_booking(serializer.validated_data, actor=request.user)
        return self._respond(booking, status.HTTP_201_CREATED)

    def update(self, request, pk=None, **kwargs):
        """PUT and PATCH both apply only the fields sent"""
        serializer = BookingUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        booking = services.update_booking(pk, serializer.validated_data, actor=request.user)
        return self._respond(booking)

    def partial_update(self, request, pk=None, **kwargs):
        return self.update(request, pk, **kwargs)

    @action(detail=True, methods=['get'], url_path='check-in-options')
    def check_in_options(self, request, pk=None):
        """Room stage data: candidate rooms of the booked type and guest identity status"""
        booking = self.get_object()
        flow = CheckInFlow(booking)
        rooms = flow.candidates()
        return Response({
            'booking_id': booking.pk,
            'room_type': RoomTypeSerializer(flow.room_type).data if flow.room_type else None,
            'rooms': RoomSerializer(rooms, many=True).data,
            'guest_verified': guest_identity_complete(booking.guest),
            'guest': GuestSerializer(booking.guest).data,
        })

    @action(detail=False, methods=['post'], url_path='check-in')
    def check_in(self, request):
        serializer = CheckInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        booking = get_or_not_found(self.queryset.all(), data['booking_id'])
        lifecycle.assert_transition(booking.status, Booking.Status.CHECKED_IN)
        flow = CheckInFlow(booking)
        flow.select_room(data['room_id'])
        flow.advance()
        if data.get('guest_id_type') or data.get('guest_id_number'):
            flow.provide_guest_identity(data.get('guest_id_type'), data.get('guest_id_number'))
        flow.advance()
        flow.record_key_card(data.get('key_card_id'))
        booking = flow.confirm(actor=request.user)
        return self._respond(booking)

    @action(detail=False, methods=['post'], url_path='check-out')
    def check_out(self, request):
        serializer = CheckOutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = lifecycle.check_out(serializer.validated_data['booking_id'], actor=request.user)
        return self._respond(booking)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = lifecycle.cancel_booking(pk, actor=request.user, reason=serializer.validated_data['reason'])
        return self._respond(booking)


class PaymentViewSet(mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     viewsets.GenericViewSet):
    queryset = Payment.objects.all()
    serializer_class = PaymentSerializer

    def get_queryset(self):
        payments = super().get_queryset()
        booking_id = self.request.query_params.get('booking_id')
        if booking_id:
            payments = payments.filter(booking_id=parse_id_param(booking_id, 'booking_id'))
        return payments

    def create(self, request):
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        payment = record_payment(
            data['booking_id'],
            data['amount'],
            data['payment_method'],
            actor=request.user,
            status=data['status'],
            notes=data['notes'],
        )
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = AuditLog.objects.all()
    serializer_class = AuditLogSerializer

    def get_queryset(self):
        entries = super().get_queryset()
        params = self.request.query_params
        for name in ('entity_type', 'entity_id', 'action'):
            if params.get(name):
                entries = entries.filter(**{name: params[name]})
        return entries
