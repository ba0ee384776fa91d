"""
Test suite for appointment scheduling
"""
from datetime import datetime
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.core.exceptions import BusinessRuleError
from backend.core.permissions import ROLE_DOCTOR, ROLE_MANAGER, ROLE_SALES
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.scheduling import services
from backend.scheduling.models import Appointment, AppointmentStatus


def at(hour, minute=0):
    return timezone.make_aware(datetime(2030, 5, 10, hour, minute))


class ConflictTests(TestCase):
    """Test overlap detection for rooms and doctors"""

    def setUp(self):
        self.room = TestDataFactory.create_room()
        self.doctor = TestDataFactory.create_user(roles=[ROLE_DOCTOR])
        self.patient = TestDataFactory.create_patient()
        self.booked = services.create_appointment({
            'patient': self.patient, 'room': self.room, 'doctor': self.doctor,
            'appointment_time': at(9), 'duration_minutes': 30,
        })

    def book(self, start, duration=30, room=None, doctor=None):
        return services.create_appointment({
            'patient': TestDataFactory.create_patient(), 'room': room, 'doctor': doctor,
            'appointment_time': start, 'duration_minutes': duration,
        })

    def test_overlap_in_same_room(self):
        with self.assertRaises(BusinessRuleError) as ctx:
            self.book(at(9, 15), room=self.room)
        self.assertEqual(ctx.exception.details['conflicting_appointments'], [self.booked.id])
        self.assertIn('Room', ctx.exception.message)

    def test_overlap_for_same_doctor(self):
        with self.assertRaises(BusinessRuleError) as ctx:
            self.book(at(8, 45), room=TestDataFactory.create_room(), doctor=self.doctor)
        self.assertIn('Doctor', ctx.exception.message)

    def test_back_to_back_is_allowed(self):
        self.book(at(9, 30), room=self.room, doctor=self.doctor)
        self.book(at(8, 30), room=self.room, doctor=self.doctor)
        self.assertEqual(Appointment.objects.count(), 3)

    def test_long_appointment_overlaps_later_start(self):
        self.book(at(10), duration=240, room=self.room)
        with self.assertRaises(BusinessRuleError):
            self.book(at(13, 30), room=self.room)

    def test_other_room_and_doctor_are_free(self):
        self.book(at(9), room=TestDataFactory.create_room(),
                  doctor=TestDataFactory.create_user(roles=[ROLE_DOCTOR]))

    def test_cancelled_appointment_frees_the_slot(self):
        services.change_status(self.booked, 'CANCELLED')
        self.book(at(9), room=self.room, doctor=self.doctor)

    def test_reactivating_into_taken_slot_fails(self):
        services.change_status(self.booked, 'NO_SHOW')
        self.book(at(9), room=self.room)
        with self.assertRaises(BusinessRuleError):
            services.change_status(self.booked, 'SCHEDULED')
        self.booked.refresh_from_db()
        self.assertEqual(self.booked.current_status_id, 'NO_SHOW')

    def test_moving_an_appointment_ignores_itself(self):
        services.update_appointment(self.booked, {'appointment_time': at(9, 10)})
        self.booked.refresh_from_db()
        self.assertEqual(self.booked.appointment_time, at(9, 10))

    def test_inactive_room(self):
        room = TestDataFactory.create_room()
        room.is_active = False
        room.save()
        with self.assertRaises(BusinessRuleError):
            self.book(at(15), room=room)

    def test_cannot_move_into_inactive_room(self):
        room = TestDataFactory.create_room()
        room.is_active = False
        room.save()
        with self.assertRaises(BusinessRuleError):
            services.update_appointment(self.booked, {'room': room})
        self.booked.refresh_from_db()
        self.assertEqual(self.booked.room, self.room)

    def test_same_status_rejected(self):
        with self.assertRaises(BusinessRuleError):
            services.change_status(self.booked, 'SCHEDULED')

    def test_unknown_status(self):
        with self.assertRaises(BusinessRuleError):
            services.change_status(self.booked, 'TELEPORTED')


class AppointmentAPITests(TestCase):
    """Test appointment and status endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(roles=[ROLE_MANAGER])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.room = TestDataFactory.create_room()
        self.doctor = TestDataFactory.create_user(roles=[ROLE_DOCTOR])
        self.patient = TestDataFactory.create_patient(full_name='Le Van Nam')

    def post_appointment(self, start, **extra):
        data = {'patient': self.patient.id, 'room': self.room.id, 'doctor': self.doctor.id,
                'appointment_time': start.isoformat(), 'duration_minutes': 30, 'service_type': 'General check-up'}
        data.update(extra)
        return self.client.post('/api/v1/appointments/', data, format='json')

    def test_book_and_conflict(self):
        response = self.post_appointment(at(14))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['current_status'], 'SCHEDULED')
        self.assertEqual(response.data['created_by'], self.user.id)

        response = self.post_appointment(at(14, 20))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('conflicting_appointments', response.data['details'])

    def test_doctor_must_have_doctor_role(self):
        response = self.post_appointment(at(14), doctor=TestDataFactory.create_user(roles=[ROLE_SALES]).id)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duration_limits(self):
        response = self.post_appointment(at(14), duration_minutes=600)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filters(self):
        self.post_appointment(at(8))
        self.post_appointment(at(10), room=TestDataFactory.create_room().id, doctor=None)
        response = self.client.get(f'/api/v1/appointments/?room_id={self.room.id}&start_date=2030-05-10')
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/appointments/?search=nam')
        self.assertEqual(len(response.data), 2)

    def test_change_status_endpoint(self):
        appointment_id = self.post_appointment(at(14)).data['id']
        response = self.client.post(f'/api/v1/appointments/{appointment_id}/status/', {'status': 'checked_in'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['current_status'], 'CHECKED_IN')

    def test_status_stats(self):
        self.post_appointment(at(8))
        self.post_appointment(at(9))
        response = self.client.get('/api/v1/appointment-statuses/stats/')
        counts = {row['code']: row['count'] for row in response.data}
        self.assertEqual(counts['SCHEDULED'], 2)
        self.assertEqual(counts['COMPLETED'], 0)

    def test_custom_status_and_initialize(self):
        response = self.client.post('/api/v1/appointment-statuses/', {'code': 'waiting_lab', 'name': 'Waiting lab',
                                                                       'color': '#abcdef'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['code'], 'WAITING_LAB')

        AppointmentStatus.objects.filter(code='SCHEDULED').update(name='Renamed')
        response = self.client.post('/api/v1/appointment-statuses/initialize/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(AppointmentStatus.objects.get(code='SCHEDULED').name, 'Đã đặt lịch')
        self.assertTrue(AppointmentStatus.objects.filter(code='WAITING_LAB').exists())

    def test_status_in_use_cannot_be_deleted(self):
        self.post_appointment(at(14))
        response = self.client.delete('/api/v1/appointment-statuses/scheduled/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bad_color(self):
        response = self.client.post('/api/v1/appointment-statuses/', {'code': 'X', 'name': 'X', 'color': 'red'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        for color in ('#zzzzzz', '#abc', '#1890ff0'):
            response = self.client.post('/api/v1/appointment-statuses/', {'code': 'X', 'name': 'X', 'color': color},
                                        format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, color)

    def test_edit_cannot_change_status(self):
        appointment_id = self.post_appointment(at(14)).data['id']
        response = self.client.patch(f'/api/v1/appointments/{appointment_id}/', {'current_status': 'CANCELLED'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status endpoint', response.data['error'])
        self.assertEqual(Appointment.objects.get(pk=appointment_id).current_status_id, 'SCHEDULED')

        response = self.client.patch(f'/api/v1/appointments/{appointment_id}/',
                                     {'current_status': 'SCHEDULED', 'note': 'Fasting'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_only_managers_define_statuses(self):
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_DOCTOR]))
        response = self.client.post('/api/v1/appointment-statuses/initialize/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
