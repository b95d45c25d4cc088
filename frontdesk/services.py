"""Booking creation and editing.

Both run inside one transaction: inline guest creation commits or rolls
back together with the booking, and a hard-allocated room is row-locked
before the overlap check so concurrent writers for the same room are
serialized by the database.
"""
from django.db import transaction
from django.utils import timezone

from hotel_backoffice.logging import get_logger

from .availability import find_conflicts
from .exceptions import (
    InvalidAmount,
    InvalidTransition,
    InvertedDateRange,
    MissingDates,
    MissingGuest,
    MissingRoomType,
    PastCheckIn,
    RoomConflict,
    RoomTypeMismatch,
    get_or_not_found,
)
from .lifecycle import assert_editable, lock_booking, transition
from .models import Booking, Guest, Room, RoomType, record_audit

logger = get_logger(__name__)

GUEST_FIELDS = ('full_name', 'email', 'phone', 'id_type', 'id_number', 'address')
EDITABLE_FIELDS = ('guest_id', 'room_type_id', 'room_id', 'check_in_date', 'check_out_date', 'total_amount', 'notes')

# Status changes reachable through a plain booking edit; check-in and
# check-out have their own operations.
EDIT_TRANSITIONS = {
    Booking.Status.CONFIRMED: 'booking.confirmed',
    Booking.Status.CANCELLED: 'booking.cancelled',
}


def _filled(value):
    return bool(value and str(value).strip())


def validate_date_range(check_in, check_out, today):
    if check_in < today:
        raise PastCheckIn()
    if check_in >= check_out:
        raise InvertedDateRange()


def validate_amount(amount):
    if amount is not None and amount < 0:
        raise InvalidAmount()


def quote_total(room_type, check_in, check_out):
    return room_type.base_price * (check_out - check_in).days


def lock_room(room_id):
    return get_or_not_found(Room.objects.select_for_update(), room_id)


def _assign_room(room_id, room_type, check_in, check_out, exclude_booking_id=None):
    room = lock_room(room_id)
    if room.room_type_id != room_type.pk:
        raise RoomTypeMismatch(
            f"Room {room.room_number} is not of room type {room_type.name}."
        )
    if find_conflicts(room.pk, check_in, check_out, exclude_booking_id):
        raise RoomConflict(
            f"Room {room.room_number} is already booked between {check_in} and {check_out}."
        )
    return room


def _resolve_guest(guest_id, guest_details):
    if guest_id:
        return get_or_not_found(Guest.objects.all(), guest_id)

    id_number = guest_details['id_number'].strip()
    existing = Guest.objects.filter(id_number=id_number).order_by('pk').first()
    if existing is not None:
        return existing
    fields = {name: (guest_details.get(name) or '').strip() for name in GUEST_FIELDS}
    guest = Guest.objects.create(**fields)
    logger.info('guest created inline', guest_id=guest.pk)
    return guest


def create_booking(data, actor=None, today=None):
    """Validate and persist a new booking.

    Preconditions are checked in order and the first failure wins:
    guest reference, room type, dates, past check-in, date order, and
    (only when a specific room is requested) room availability.
    """
    today = today or timezone.localdate()

    guest_id = data.get('guest_id')
    guest_details = data.get('guest_details')
    if guest_id and guest_details:
        raise MissingGuest("Provide either guest_id or guest_details, not both.")
    if not guest_id and not (
        guest_details
        and _filled(guest_details.get('full_name'))
        and _filled(guest_details.get('id_number'))
    ):
        raise MissingGuest()

    room_type_id = data.get('room_type_id')
    check_in = data.get('check_in_date')
    check_out = data.get('check_out_date')
    if not room_type_id:
        raise MissingRoomType()
    if not check_in or not check_out:
        raise MissingDates()
    validate_date_range(check_in, check_out, today)

    total_amount = data.get('total_amount')
    validate_amount(total_amount)

    with transaction.atomic():
        room_type = get_or_not_found(RoomType.objects.all(), room_type_id)
        room = None
        if data.get('room_id'):
            room = _assign_room(data['room_id'], room_type, check_in, check_out)

        guest = _resolve_guest(guest_id, guest_details)
        if total_amount is None:
            total_amount = quote_total(room_type, check_in, check_out)

        booking = Booking.objects.create(
            guest=guest,
            room_type=room_type,
            room=room,
            check_in_date=check_in,
            check_out_date=check_out,
            total_amount=total_amount,
            status=Booking.Status.RESERVED,
            notes=data.get('notes') or '',
            created_by=actor if actor is not None and actor.is_authenticated else None,
        )
        record_audit(
            actor, 'booking.created', booking,
            room_type_id=room_type.pk,
            room_id=room.pk if room else None,
            check_in_date=check_in.isoformat(),
            check_out_date=check_out.isoformat(),
        )

    logger.info(
        'booking created',
        booking_id=booking.pk,
        room_type_id=room_type.pk,
        room_id=booking.room_id,
        soft_allocated=booking.is_soft_allocated,
    )
    return booking


def update_booking(booking_id, changes, actor=None, today=None):
    """Edit a pre-arrival booking and/or move it to confirmed or cancelled.

    Field edits re-run the availability check for the resulting
    room/date combination, excluding the booking itself.
    """
    today = today or timezone.localdate()

    with transaction.atomic():
        booking = lock_booking(booking_id)
        edits = {name: changes[name] for name in EDITABLE_FIELDS if name in changes}

        if edits:
            assert_editable(booking)
            _apply_edits(booking, edits, today)
            booking.save()
            record_audit(actor, 'booking.updated', booking, fields=sorted(edits))
            logger.info('booking updated', booking_id=booking.pk, fields=sorted(edits))

        target = changes.get('status')
        if target and target != booking.status:
            action = EDIT_TRANSITIONS.get(target)
            if action is None:
                raise InvalidTransition(booking.status, target)
            transition(booking, target, actor, action)

    return booking


def _apply_edits(booking, edits, today):
    check_in = edits.get('check_in_date', booking.check_in_date)
    check_out = edits.get('check_out_date', booking.check_out_date)
    if not check_in or not check_out:
        raise MissingDates()
    # an unchanged check-in date that has since passed stays editable
    if check_in != booking.check_in_date and check_in < today:
        raise PastCheckIn()
    if check_in >= check_out:
        raise InvertedDateRange()

    room_type_id = edits.get('room_type_id', booking.room_type_id)
    if not room_type_id:
        raise MissingRoomType()
    room_type = get_or_not_found(RoomType.objects.all(), room_type_id)

    room_id = edits['room_id'] if 'room_id' in edits else booking.room_id
    room = None
    if room_id:
        room = _assign_room(room_id, room_type, check_in, check_out, exclude_booking_id=booking.pk)

    if edits.get('guest_id'):
        booking.guest = get_or_not_found(Guest.objects.all(), edits['guest_id'])

    if 'total_amount' in edits and edits['total_amount'] is not None:
        validate_amount(edits['total_amount'])
        booking.total_amount = edits['total_amount']
    elif (check_in, check_out, room_type.pk) != (booking.check_in_date, booking.check_out_date, booking.room_type_id):
        booking.total_amount = quote_total(room_type, check_in, check_out)

    if 'notes' in edits:
        booking.notes = edits['notes'] or ''

    booking.room_type = room_type
    booking.room = room
    booking.check_in_date = check_in
    booking.check_out_date = check_out
