from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from frontdesk.models import Booking, Guest, Room, RoomType


def days(offset):
    """Today's date shifted by `offset` days."""
    return timezone.localdate() + timedelta(days=offset)


def make_room_type(name='Deluxe', base_price='150.00', max_occupancy=2):
    return RoomType.objects.create(name=name, base_price=Decimal(base_price), max_occupancy=max_occupancy)


def make_room(room_number, room_type, status=Room.Status.AVAILABLE):
    return Room.objects.create(room_number=room_number, room_type=room_type, status=status)


def make_guest(full_name='Test Guest', id_type='passport', id_number='P-0001', **extra):
    return Guest.objects.create(full_name=full_name, id_type=id_type, id_number=id_number, **extra)


def make_booking(guest, room_type, check_in, check_out, room=None, status=Booking.Status.RESERVED, total_amount='300.00'):
    return Booking.objects.create(
        guest=guest,
        room_type=room_type,
        room=room,
        check_in_date=check_in,
        check_out_date=check_out,
        total_amount=Decimal(total_amount),
        status=status,
    )
