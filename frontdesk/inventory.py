"""Read-only inventory queries over room types and rooms."""
from .models import Room, RoomType


def list_room_types():
    return RoomType.objects.all()


def list_rooms(room_type_id=None, status=None):
    """All rooms with their room type joined, optionally narrowed."""
    rooms = Room.objects.select_related('room_type')
    if room_type_id is not None:
        rooms = rooms.filter(room_type_id=room_type_id)
    if status is not None:
        rooms = rooms.filter(status=status)
    return rooms


def available_rooms_of_type(room_type_id):
    """Rooms of a type that are operationally free right now."""
    return list_rooms(room_type_id=room_type_id, status=Room.Status.AVAILABLE)
