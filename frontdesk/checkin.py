"""Check-in: turning a reserved stay into an occupied room.

The operator walks through three stages (room, guest, key) with a
``CheckInFlow`` and confirms; ``check_in`` is the commit. It binds the
room, moves the booking to checked_in, completes the guest's identity,
records the key card and marks the room occupied, all in one
transaction with the booking and room rows locked.
"""
from django.db import transaction
from django.utils import timezone

from hotel_backoffice.logging import get_logger

from .availability import find_conflicts, list_available_rooms
from .exceptions import (
    BookingValidationError,
    GuestIdentityRequired,
    ResourceNotFound,
    RoomNoLongerAvailable,
    RoomTypeMismatch,
    get_or_not_found,
)
from .lifecycle import assert_transition, lock_booking, transition
from .models import Booking, Guest, Room, RoomType

logger = get_logger(__name__)

ROOM_STAGE = 'room'
GUEST_STAGE = 'guest'
KEY_STAGE = 'key'
STAGES = (ROOM_STAGE, GUEST_STAGE, KEY_STAGE)


def resolve_room_type_id(booking):
    """First non-null of the booking's type, its room's type, or a lookup via room_id."""
    if booking.room_type_id:
        return booking.room_type_id
    room = getattr(booking, 'room', None)
    if room is not None and room.room_type_id:
        return room.room_type_id
    if booking.room_id:
        return Room.objects.filter(pk=booking.room_id).values_list('room_type_id', flat=True).first()
    return None


def check_in_candidates(booking):
    """Rooms of the booking's type that can be handed over right now.

    A candidate is operationally available and free of other active
    bookings for the whole stay.
    """
    room_type_id = resolve_room_type_id(booking)
    if room_type_id is None:
        return Room.objects.none()
    return list_available_rooms(
        booking.check_in_date,
        booking.check_out_date,
        room_type_id=room_type_id,
        exclude_booking_id=booking.pk,
        require_operational=True,
    )


def guest_identity_complete(guest):
    return guest.has_identity


def _clean(value):
    return (value or '').strip()


class CheckInFlow:
    """Staged check-in for one booking.

    ``advance`` refuses to leave a stage whose requirements are unmet:
    the room stage needs a selected candidate room, the guest stage needs
    ID type and number unless both are already on file. The key stage is
    optional. ``confirm`` commits through ``check_in``.
    """

    def __init__(self, booking):
        self.booking = booking
        self.guest = booking.guest
        self.room_type = RoomType.objects.filter(pk=resolve_room_type_id(booking)).first()
        self.stage = ROOM_STAGE
        self.room_id = None
        self.guest_id_type = self.guest.id_type
        self.guest_id_number = self.guest.id_number
        self.key_card_id = ''

    @property
    def guest_verified(self):
        return guest_identity_complete(self.guest)

    def candidates(self):
        return check_in_candidates(self.booking)

    def select_room(self, room_id):
        rooms = self.candidates()
        if not rooms.exists():
            type_name = self.room_type.name if self.room_type else 'this type'
            raise RoomNoLongerAvailable(f"No available room of type {type_name}.")
        if not rooms.filter(pk=room_id).exists():
            raise RoomNoLongerAvailable()
        self.room_id = room_id
        logger.info('check-in room selected', booking_id=self.booking.pk, room_id=room_id)

    def provide_guest_identity(self, id_type, id_number):
        self.guest_id_type = _clean(id_type)
        self.guest_id_number = _clean(id_number)

    def record_key_card(self, key_card_id):
        self.key_card_id = _clean(key_card_id)

    def can_advance(self):
        if self.stage == ROOM_STAGE:
            return self.room_id is not None
        if self.stage == GUEST_STAGE:
            return self.guest_verified or bool(self.guest_id_type and self.guest_id_number)
        return True

    def advance(self):
        if not self.can_advance():
            if self.stage == GUEST_STAGE:
                raise GuestIdentityRequired()
            raise BookingValidationError("Select a room before continuing.")
        index = STAGES.index(self.stage)
        if index < len(STAGES) - 1:
            self.stage = STAGES[index + 1]
        return self.stage

    def back(self):
        index = STAGES.index(self.stage)
        if index > 0:
            self.stage = STAGES[index - 1]
        return self.stage

    def confirm(self, actor=None):
        while self.stage != KEY_STAGE:
            self.advance()
        # identity already on file is not re-sent
        patch_identity = not self.guest_verified
        return check_in(
            self.booking.pk,
            self.room_id,
            guest_id_type=self.guest_id_type if patch_identity else None,
            guest_id_number=self.guest_id_number if patch_identity else None,
            key_card_id=self.key_card_id or None,
            actor=actor,
        )


def check_in(booking_id, room_id, guest_id_type=None, guest_id_number=None, key_card_id=None, actor=None):
    """Atomically move a booking to checked_in in ``room_id``.

    Raises RoomNoLongerAvailable when the room stopped being available
    (or was booked by someone else for these nights) after it was chosen;
    the caller restarts the room stage.
    """
    with transaction.atomic():
        booking = lock_booking(booking_id)
        assert_transition(booking.status, Booking.Status.CHECKED_IN)

        try:
            room = Room.objects.select_for_update().get(pk=room_id)
        except (Room.DoesNotExist, ValueError, TypeError):
            raise ResourceNotFound('Room', room_id)

        room_type_id = resolve_room_type_id(booking)
        if room.room_type_id != room_type_id:
            raise RoomTypeMismatch(f"Room {room.room_number} is not of the booked room type.")
        if room.status != Room.Status.AVAILABLE:
            raise RoomNoLongerAvailable(f"Room {room.room_number} is {room.status}.")
        if find_conflicts(room.pk, booking.check_in_date, booking.check_out_date, exclude_booking_id=booking.pk):
            raise RoomNoLongerAvailable(f"Room {room.room_number} is booked by another stay for these dates.")

        guest = get_or_not_found(Guest.objects.select_for_update(), booking.guest_id)
        id_type, id_number = _clean(guest_id_type), _clean(guest_id_number)
        if id_type or id_number:
            if not (id_type and id_number):
                raise GuestIdentityRequired()
            guest.id_type = id_type
            guest.id_number = id_number
            guest.save(update_fields=['id_type', 'id_number'])
        elif not guest.has_identity:
            raise GuestIdentityRequired()

        booking.room = room
        booking.key_card_id = _clean(key_card_id)
        booking.checked_in_at = timezone.now()
        room.status = Room.Status.OCCUPIED
        room.save(update_fields=['status'])

        transition(
            booking, Booking.Status.CHECKED_IN, actor, 'booking.checked_in',
            room_id=room.pk,
            key_card_id=booking.key_card_id,
            guest_identity_updated=bool(id_type),
        )

    return booking
