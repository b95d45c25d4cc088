from decimal import Decimal

from django.core.management.base import BaseCommand
from frontdesk.models import Room, RoomType


class Command(BaseCommand):
    help = 'Populate database with sample room types and rooms'

    def handle(self, *args, **options):
        room_types_data = [
            {
                'name': 'Executive Room',
                'base_price': Decimal('180.00'),
                'max_occupancy': 2,
                'amenities': ['wifi', 'workspace', 'coffee machine'],
                'rooms': ['101', '102', '103'],
            },
            {
                'name': 'Deluxe Suite',
                'base_price': Decimal('250.00'),
                'max_occupancy': 3,
                'amenities': ['wifi', 'city view', 'mini bar', 'bathtub'],
                'rooms': ['201', '202'],
            },
            {
                'name': 'Presidential Penthouse',
                'base_price': Decimal('550.00'),
                'max_occupancy': 6,
                'amenities': ['wifi', 'panoramic view', 'butler service', 'private terrace'],
                'rooms': ['501'],
            },
        ]

        for type_data in room_types_data:
            room_numbers = type_data.pop('rooms')
            room_type, created = RoomType.objects.get_or_create(
                name=type_data['name'],
                defaults=type_data
            )
            if created:
                self.stdout.write(f'Created room type: {room_type.name}')
            else:
                self.stdout.write(f'Room type {room_type.name} already exists')

            for number in room_numbers:
                room, created = Room.objects.get_or_create(
                    room_number=number,
                    defaults={'room_type': room_type}
                )
                if created:
                    self.stdout.write(f'Created room: {room.room_number} - {room_type.name}')
                else:
                    self.stdout.write(f'Room {room.room_number} already exists')

        self.stdout.write(
            self.style.SUCCESS('Successfully populated database with sample data')
        )
