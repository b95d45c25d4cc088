"""Room availability over half-open ``[check_in, check_out)`` date ranges.

Two stays on the same room conflict when ``existing_start < new_end`` and
``new_start < existing_end``; a check-out on the day of the next check-in
is not a conflict. Only active bookings are considered.
"""
from django.db.models import Exists, OuterRef

from .inventory import available_rooms_of_type, list_rooms
from .models import Booking

INACTIVE_STATUSES = (
    Booking.Status.CANCELLED,
    Booking.Status.CHECKED_OUT,
    Booking.Status.EXPIRED,
)


def intervals_overlap(start_a, end_a, start_b, end_b):
    return start_a < end_b and start_b < end_a


def active_bookings():
    return Booking.objects.exclude(status__in=INACTIVE_STATUSES)


def overlapping_bookings(room_id, check_in, check_out, exclude_booking_id=None):
    bookings = active_bookings().filter(
        room_id=room_id,
        check_in_date__lt=check_out,
        check_out_date__gt=check_in,
    )
    if exclude_booking_id is not None:
        bookings = bookings.exclude(pk=exclude_booking_id)
    return bookings


def find_conflicts(room_id, check_in, check_out, exclude_booking_id=None):
    """True when the room is already taken for any night of the window."""
    return overlapping_bookings(room_id, check_in, check_out, exclude_booking_id).exists()


def list_available_rooms(check_in, check_out, room_type_id=None, exclude_booking_id=None, require_operational=False):
    """Rooms with no active booking overlapping the window.

    Without both dates the room list is returned unfiltered by bookings.
    ``require_operational`` additionally keeps only rooms whose status is
    available, which is what a check-in needs: a free but dirty room
    cannot be handed over.
    """
    if require_operational:
        rooms = available_rooms_of_type(room_type_id)
    else:
        rooms = list_rooms(room_type_id=room_type_id)
    if not check_in or not check_out:
        return rooms

    overlap = active_bookings().filter(
        room=OuterRef('pk'),
        check_in_date__lt=check_out,
        check_out_date__gt=check_in,
    )
    if exclude_booking_id is not None:
        overlap = overlap.exclude(pk=exclude_booking_id)
    return rooms.annotate(has_overlap=Exists(overlap)).filter(has_overlap=False)
