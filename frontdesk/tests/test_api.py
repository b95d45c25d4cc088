from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase

from frontdesk.models import AuditLog, Booking, Guest, Payment, Room

from .helpers import days, make_booking, make_guest, make_room, make_room_type


class FrontDeskAPITestCase(APITestCase):

    def setUp(self):
        self.user = get_user_model().objects.create_user('reception', password='secret')
        self.client.force_authenticate(self.user)
        self.deluxe = make_room_type('Deluxe', base_price='150.00')
        self.room = make_room('101', self.deluxe)
        self.guest = make_guest(id_number='P-1')


class AuthenticationTestCase(APITestCase):

    def setUp(self):
        self.user = get_user_model().objects.create_user('reception', password='secret')
        self.token = Token.objects.create(user=self.user)

    def test_missing_credentials_return_401(self):
        response = self.client.get('/api/bookings/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_bearer_token_accepted(self):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.token.key}')
        response = self.client.get('/api/bookings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_health_is_public(self):
        response = self.client.get('/health')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {'status': 'ok'})


class BookingCreateAPITestCase(FrontDeskAPITestCase):

    def test_create_soft_allocated_booking(self):
        response = self.client.post('/api/bookings/', {
            'guest_id': self.guest.id,
            'room_type_id': self.deluxe.id,
            'check_in_date': days(1).isoformat(),
            'check_out_date': days(3).isoformat(),
            'notes': 'high floor please',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['status'], 'reserved')
        self.assertIsNone(response.data['room_id'])
        self.assertEqual(response.data['total_amount'], Decimal('300.00'))
        self.assertEqual(response.data['room_type']['name'], 'Deluxe')
        self.assertEqual(response.data['created_by'], self.user.id)

    def test_create_with_inline_guest(self):
        response = self.client.post('/api/bookings/', {
            'guest_details': {'full_name': 'Kemi Ade', 'id_number': 'NIN-5', 'email': 'kemi@example.com'},
            'room_type_id': self.deluxe.id,
            'room_id': '',
            'check_in_date': days(1).isoformat(),
            'check_out_date': days(2).isoformat(),
            'total_amount': 120,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['guest']['full_name'], 'Kemi Ade')
        self.assertTrue(Guest.objects.filter(id_number='NIN-5').exists())

    def test_validation_error_codes(self):
        base = {
            'guest_id': self.guest.id,
            'room_type_id': self.deluxe.id,
            'check_in_date': days(1).isoformat(),
            'check_out_date': days(3).isoformat(),
        }
        scenarios = [
            ({'guest_id': None}, 'missing_guest'),
            ({'room_type_id': ''}, 'missing_room_type'),
            ({'check_in_date': ''}, 'missing_dates'),
            ({'check_in_date': days(-1).isoformat()}, 'past_check_in'),
            ({'check_out_date': days(1).isoformat()}, 'inverted_date_range'),
        ]
        for overrides, code in scenarios:
            with self.subTest(code=code):
                response = self.client.post('/api/bookings/', {**base, **overrides}, format='json')
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(response.data['code'], code)
        self.assertEqual(Booking.objects.count(), 0)

    def test_room_conflict_and_touching_dates(self):
        make_booking(self.guest, self.deluxe, days(1), days(5), room=self.room, status=Booking.Status.CONFIRMED)
        payload = {'guest_id': self.guest.id, 'room_type_id': self.deluxe.id, 'room_id': self.room.id}

        response = self.client.post('/api/bookings/', {
            **payload, 'check_in_date': days(4).isoformat(), 'check_out_date': days(8).isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'room_conflict')

        response = self.client.post('/api/bookings/', {
            **payload, 'check_in_date': days(5).isoformat(), 'check_out_date': days(8).isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

    def test_unknown_room_type_is_404(self):
        response = self.client.post('/api/bookings/', {
            'guest_id': self.guest.id,
            'room_type_id': 999999,
            'check_in_date': days(1).isoformat(),
            'check_out_date': days(3).isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')


class BookingReadAPITestCase(FrontDeskAPITestCase):

    def setUp(self):
        super().setUp()
        self.booking = make_booking(self.guest, self.deluxe, days(1), days(3), room=self.room)
        self.cancelled = make_booking(self.guest, self.deluxe, days(4), days(6), status=Booking.Status.CANCELLED)

    def test_re_read_is_stable(self):
        first = self.client.get(f'/api/bookings/{self.booking.id}/')
        second = self.client.get(f'/api/bookings/{self.booking.id}/')
        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(first.data, second.data)

    def test_missing_booking_is_404(self):
        response = self.client.get('/api/bookings/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_filters(self):
        response = self.client.get('/api/bookings/', {'status': 'cancelled'})
        self.assertEqual([b['id'] for b in response.data['results']], [self.cancelled.id])

        response = self.client.get('/api/bookings/', {'room_id': self.room.id})
        self.assertEqual([b['id'] for b in response.data['results']], [self.booking.id])

        response = self.client.get('/api/bookings/', {'ordering': 'check_in_date'})
        self.assertEqual([b['id'] for b in response.data['results']], [self.booking.id, self.cancelled.id])


class BookingLifecycleAPITestCase(FrontDeskAPITestCase):

    def setUp(self):
        super().setUp()
        self.booking = make_booking(self.guest, self.deluxe, days(0), days(2))

    def test_edit_booking(self):
        response = self.client.put(f'/api/bookings/{self.booking.id}/', {
            'check_out_date': days(3).isoformat(),
            'room_id': self.room.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data['room_id'], self.room.id)
        self.assertEqual(response.data['total_amount'], Decimal('450.00'))

    def test_cancel_then_edit_rejected(self):
        response = self.client.post(f'/api/bookings/{self.booking.id}/cancel/', {'reason': 'no show'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')

        response = self.client.patch(f'/api/bookings/{self.booking.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_transition')

    def test_cancel_via_status_update(self):
        response = self.client.put(f'/api/bookings/{self.booking.id}/', {'status': 'cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')

    def test_check_in_options(self):
        make_room('102', self.deluxe, status=Room.Status.CLEANING)
        response = self.client.get(f'/api/bookings/{self.booking.id}/check-in-options/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([r['room_number'] for r in response.data['rooms']], ['101'])
        self.assertEqual(response.data['room_type']['name'], 'Deluxe')
        self.assertTrue(response.data['guest_verified'])

    def test_check_in_options_skip_rooms_booked_for_the_stay(self):
        other_guest = make_guest(full_name='Other', id_number='P-2')
        make_booking(other_guest, self.deluxe, days(1), days(2), room=self.room, status=Booking.Status.CONFIRMED)

        response = self.client.get(f'/api/bookings/{self.booking.id}/check-in-options/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['rooms'], [])

        response = self.client.post('/api/bookings/check-in/', {
            'booking_id': self.booking.id, 'room_id': self.room.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'room_no_longer_available')

    def test_check_in_and_check_out(self):
        response = self.client.post('/api/bookings/check-in/', {
            'booking_id': self.booking.id,
            'room_id': self.room.id,
            'key_card_id': 'KC-3',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data['status'], 'checked_in')
        self.assertEqual(response.data['room_id'], self.room.id)
        self.assertEqual(response.data['key_card_id'], 'KC-3')
        self.room.refresh_from_db()
        self.assertEqual(self.room.status, Room.Status.OCCUPIED)

        response = self.client.post('/api/bookings/check-in/', {
            'booking_id': self.booking.id, 'room_id': self.room.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_transition')

        response = self.client.post('/api/bookings/check-out/', {'booking_id': self.booking.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'checked_out')
        self.room.refresh_from_db()
        self.assertEqual(self.room.status, Room.Status.CLEANING)

        actions = set(AuditLog.objects.filter(entity_id=str(self.booking.id)).values_list('action', flat=True))
        self.assertTrue({'booking.checked_in', 'booking.checked_out'} <= actions)

    def test_check_in_requires_guest_identity(self):
        self.guest.id_type = ''
        self.guest.save()

        response = self.client.post('/api/bookings/check-in/', {
            'booking_id': self.booking.id, 'room_id': self.room.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'guest_identity_required')

        response = self.client.post('/api/bookings/check-in/', {
            'booking_id': self.booking.id,
            'room_id': self.room.id,
            'guest_id_type': 'passport',
            'guest_id_number': 'P-1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)

    def test_check_in_unavailable_room(self):
        self.room.status = Room.Status.MAINTENANCE
        self.room.save()
        response = self.client.post('/api/bookings/check-in/', {
            'booking_id': self.booking.id, 'room_id': self.room.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'room_no_longer_available')


class InventoryAPITestCase(FrontDeskAPITestCase):

    def test_rooms_free_for_window(self):
        make_room('102', self.deluxe)
        make_booking(self.guest, self.deluxe, days(1), days(3), room=self.room)

        response = self.client.get('/api/rooms/', {
            'check_in': days(2).isoformat(), 'check_out': days(4).isoformat(),
        })
        self.assertEqual([r['room_number'] for r in response.data['results']], ['102'])

        response = self.client.get('/api/rooms/')
        self.assertEqual(response.data['count'], 2)

    def test_invalid_date_param(self):
        response = self.client.get('/api/rooms/', {'check_in': 'tomorrow', 'check_out': '2030-01-01'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_room_types(self):
        make_room_type('Standard', base_price='90.00')
        response = self.client.get('/api/room-types/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual({t['name'] for t in response.data['results']}, {'Deluxe', 'Standard'})

    def test_malformed_filters_are_rejected(self):
        scenarios = [
            ('/api/rooms/', {'room_type_id': 'abc'}),
            ('/api/rooms/', {'exclude_booking_id': '1.5'}),
            ('/api/rooms/', {'status': 'flooded'}),
            ('/api/bookings/', {'guest_id': 'abc'}),
            ('/api/bookings/', {'room_id': 'x'}),
            ('/api/bookings/', {'room_type_id': 'abc'}),
            ('/api/bookings/', {'status': 'lost'}),
            ('/api/payments/', {'booking_id': 'abc'}),
        ]
        for url, params in scenarios:
            with self.subTest(url=url, params=params):
                response = self.client.get(url, params)
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertIn(next(iter(params)), response.data)

    def test_room_filters_by_type_and_status(self):
        standard = make_room_type('Standard', base_price='90.00')
        make_room('201', standard, status=Room.Status.CLEANING)

        response = self.client.get('/api/rooms/', {'room_type_id': standard.id})
        self.assertEqual([r['room_number'] for r in response.data['results']], ['201'])
        response = self.client.get('/api/rooms/', {'status': 'available'})
        self.assertEqual([r['room_number'] for r in response.data['results']], ['101'])

    def test_room_type_in_use_cannot_be_deleted(self):
        response = self.client.delete(f'/api/room-types/{self.deluxe.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'referenced_resource')

    def test_guest_lookup_by_id_number(self):
        make_guest(full_name='Other', id_number='P-2')
        response = self.client.get('/api/guests/', {'id_number': 'P-1'})
        self.assertEqual([g['id'] for g in response.data['results']], [self.guest.id])


class PaymentAPITestCase(FrontDeskAPITestCase):

    def setUp(self):
        super().setUp()
        self.booking = make_booking(self.guest, self.deluxe, days(1), days(3))

    def test_completed_payment_confirms_booking(self):
        response = self.client.post('/api/payments/', {
            'booking_id': self.booking.id,
            'amount': '300.00',
            'payment_method': 'card',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertTrue(response.data['receipt_number'].startswith('RCP-'))
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.Status.CONFIRMED)

    def test_failed_payment_keeps_booking_reserved(self):
        response = self.client.post('/api/payments/', {
            'booking_id': self.booking.id,
            'amount': '300.00',
            'payment_method': 'card',
            'status': 'failed',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.Status.RESERVED)
        self.assertEqual(Payment.objects.get().status, Payment.Status.FAILED)
