"""Booking lifecycle state machine.

reserved -> confirmed (payment completed)
reserved | confirmed -> checked_in (check-in flow only, see checkin.py)
checked_in -> checked_out
reserved | confirmed -> cancelled
reserved | confirmed -> expired (check-in date passed)

checked_out, cancelled and expired are terminal.
"""
from django.db import transaction
from django.utils import timezone

from hotel_backoffice.logging import get_logger

from .exceptions import InvalidTransition, get_or_not_found
from .models import Booking, Room, record_audit

logger = get_logger(__name__)

Status = Booking.Status

TRANSITIONS = {
    Status.RESERVED: frozenset({Status.CONFIRMED, Status.CHECKED_IN, Status.CANCELLED, Status.EXPIRED}),
    Status.CONFIRMED: frozenset({Status.CHECKED_IN, Status.CANCELLED, Status.EXPIRED}),
    Status.CHECKED_IN: frozenset({Status.CHECKED_OUT}),
    Status.CHECKED_OUT: frozenset(),
    Status.CANCELLED: frozenset(),
    Status.EXPIRED: frozenset(),
}

PRE_ARRIVAL_STATUSES = (Status.RESERVED, Status.CONFIRMED)
TERMINAL_STATUSES = tuple(status for status, targets in TRANSITIONS.items() if not targets)


def can_transition(current, target):
    return target in TRANSITIONS.get(current, frozenset())


def assert_transition(current, target):
    if not can_transition(current, target):
        raise InvalidTransition(current, target)


def assert_editable(booking):
    """Dates, room, amount and notes only change before arrival."""
    if booking.status not in PRE_ARRIVAL_STATUSES:
        raise InvalidTransition(
            detail=f"Booking {booking.pk} is {booking.status} and can no longer be edited."
        )


def lock_booking(booking_id):
    return get_or_not_found(Booking.objects.select_for_update(), booking_id)


def transition(booking, target, actor, action, **details):
    assert_transition(booking.status, target)
    previous = booking.status
    booking.status = target
    booking.save()
    record_audit(actor, action, booking, previous_status=previous, **details)
    logger.info(action, booking_id=booking.pk, previous_status=previous, status=target)
    return booking


def confirm_booking(booking_id, actor=None):
    with transaction.atomic():
        booking = lock_booking(booking_id)
        return transition(booking, Status.CONFIRMED, actor, 'booking.confirmed')


def cancel_booking(booking_id, actor=None, reason=''):
    with transaction.atomic():
        booking = lock_booking(booking_id)
        return transition(booking, Status.CANCELLED, actor, 'booking.cancelled', reason=reason)


def check_out(booking_id, actor=None):
    """Close the stay and send the room to housekeeping in one transaction."""
    with transaction.atomic():
        booking = lock_booking(booking_id)
        assert_transition(booking.status, Status.CHECKED_OUT)
        booking.checked_out_at = timezone.now()

        if booking.room_id is not None:
            room = Room.objects.select_for_update().get(pk=booking.room_id)
            if room.status == Room.Status.OCCUPIED:
                room.status = Room.Status.CLEANING
                room.save(update_fields=['status'])

        return transition(booking, Status.CHECKED_OUT, actor, 'booking.checked_out', room_id=booking.room_id)


def expire_overdue_bookings(today=None):
    """Expire pre-arrival bookings whose check-in date has passed.

    Returns the ids of the bookings that were expired.
    """
    today = today or timezone.localdate()
    expired = []
    with transaction.atomic():
        overdue = Booking.objects.select_for_update().filter(
            status__in=PRE_ARRIVAL_STATUSES,
            check_in_date__lt=today,
        )
        for booking in overdue:
            transition(booking, Status.EXPIRED, None, 'booking.expired', check_in_date=booking.check_in_date.isoformat())
            expired.append(booking.pk)
    return expired
