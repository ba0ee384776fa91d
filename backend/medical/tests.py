"""
Test suite for medical records
Tests: SOAP notes with prescriptions, sign-off, immutability, patient history and lab orders
"""
from datetime import datetime
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.core.exceptions import BusinessRuleError
from backend.core.permissions import ROLE_DOCTOR, ROLE_SALES
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.medical import services
from backend.medical.models import MedicalRecord, Prescription, LabOrder
from backend.scheduling import services as scheduling_services


class MedicalRecordTests(TestCase):
    """Test record writes through the API"""

    def setUp(self):
        self.doctor = TestDataFactory.create_user(roles=[ROLE_DOCTOR])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.doctor)
        self.patient = TestDataFactory.create_patient()
        self.amoxicillin = TestDataFactory.create_product(name='Amoxicillin 500mg')
        self.appointment = scheduling_services.create_appointment({
            'patient': self.patient, 'doctor': self.doctor,
            'appointment_time': timezone.make_aware(datetime(2030, 1, 15, 9, 0)),
        })

    def create_record(self, **extra):
        data = {
            'patient': self.patient.id,
            'appointment': self.appointment.id,
            'symptoms': 'Sore throat for three days',
            'examination': 'Red tonsils, temperature 38.5',
            'diagnosis': 'J03.9 Acute tonsillitis',
            'treatment_plan': 'Antibiotics for 7 days',
            'vital_signs': {'temperature': 38.5, 'pulse': 90},
            'prescriptions': [
                {'product': self.amoxicillin.id, 'quantity': 14, 'dosage': '1 capsule twice daily'},
                {'medicine_name': 'Warm salt water gargle', 'instructions': 'Three times a day'},
            ],
        }
        data.update(extra)
        return self.client.post('/api/v1/medical-records/', data, format='json')

    def test_create_with_prescriptions(self):
        response = self.create_record()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['doctor'], self.doctor.id)
        self.assertFalse(response.data['is_signed_off'])
        names = [p['medicine_name'] for p in response.data['prescriptions']]
        self.assertEqual(names, ['Amoxicillin 500mg', 'Warm salt water gargle'])

    def test_prescription_needs_product_or_name(self):
        response = self.create_record(prescriptions=[{'quantity': 2}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_appointment_of_other_patient(self):
        response = self.create_record(patient=TestDataFactory.create_patient().id)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_vital_signs_must_be_object(self):
        response = self.create_record(vital_signs=[38.5])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_replaces_prescriptions(self):
        record_id = self.create_record().data['id']
        response = self.client.patch(f'/api/v1/medical-records/{record_id}/', {
            'prescriptions': [{'medicine_name': 'Paracetamol 500mg', 'quantity': 6}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Prescription.objects.filter(record_id=record_id).count(), 1)

    def test_update_without_prescriptions_keeps_them(self):
        record_id = self.create_record().data['id']
        self.client.patch(f'/api/v1/medical-records/{record_id}/', {'notes': 'Follow up in a week'}, format='json')
        self.assertEqual(Prescription.objects.filter(record_id=record_id).count(), 2)

    def test_sign_off_completes_appointment(self):
        record_id = self.create_record().data['id']
        response = self.client.post(f'/api/v1/medical-records/{record_id}/sign-off/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_signed_off'])
        self.assertIsNotNone(response.data['signed_off_at'])
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.current_status_id, 'COMPLETED')

        response = self.client.post(f'/api/v1/medical-records/{record_id}/sign-off/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_signed_off_record_is_final(self):
        record_id = self.create_record().data['id']
        self.client.post(f'/api/v1/medical-records/{record_id}/sign-off/')

        response = self.client.patch(f'/api/v1/medical-records/{record_id}/', {'diagnosis': 'Changed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.delete(f'/api/v1/medical-records/{record_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(MedicalRecord.objects.get(pk=record_id).diagnosis, 'J03.9 Acute tonsillitis')

    def test_draft_record_can_be_deleted(self):
        record_id = self.create_record().data['id']
        response = self.client.delete(f'/api/v1/medical-records/{record_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_history_lists_signed_off_visits(self):
        signed_id = self.create_record().data['id']
        self.client.post(f'/api/v1/medical-records/{signed_id}/sign-off/')
        self.create_record(appointment=None)

        response = self.client.get(f'/api/v1/patients/{self.patient.id}/medical-history/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([r['id'] for r in response.data], [signed_id])
        self.assertEqual(len(response.data[0]['prescriptions']), 2)

    def test_list_filters_and_stats(self):
        signed_id = self.create_record().data['id']
        self.client.post(f'/api/v1/medical-records/{signed_id}/sign-off/')
        self.create_record(appointment=None, diagnosis='')

        response = self.client.get('/api/v1/medical-records/?is_signed_off=false')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/medical-records/?diagnosis=tonsillitis')
        self.assertEqual(response.data['count'], 1)

        response = self.client.get(f'/api/v1/medical-records/stats/?doctor_id={self.doctor.id}')
        self.assertEqual(response.data, {'total': 2, 'signed_off': 1, 'pending': 1, 'with_diagnosis': 1})

    def test_sales_staff_have_no_access(self):
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_SALES]))
        response = self.client.get('/api/v1/medical-records/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class SignOffServiceTests(TestCase):

    def test_record_without_appointment(self):
        record = services.create_record({'patient': TestDataFactory.create_patient()})
        record = services.sign_off(record)
        self.assertTrue(record.is_signed_off)
        with self.assertRaises(BusinessRuleError):
            services.update_record(record, {'notes': 'late note'})


class LabOrderTests(TestCase):
    """Test lab orders from ordering to result"""

    def setUp(self):
        self.doctor = TestDataFactory.create_user(roles=[ROLE_DOCTOR])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.doctor)
        self.patient = TestDataFactory.create_patient()
        self.record = MedicalRecord.objects.create(patient=self.patient, doctor=self.doctor,
                                                   diagnosis='R50.9 Fever')

    def test_order_several_services_on_a_visit(self):
        response = self.client.post('/api/v1/lab-orders/', {
            'record': self.record.id,
            'orders': [
                {'service_name': 'Complete blood count', 'preliminary_diagnosis': 'Suspected infection'},
                {'service_name': 'Chest X-ray'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data), 2)
        self.assertEqual(self.record.lab_orders.count(), 2)
        self.assertTrue(all(not order['is_executed'] for order in response.data))

    def test_single_order(self):
        response = self.client.post('/api/v1/lab-orders/', {
            'record': self.record.id, 'service_name': 'Urinalysis',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['patient'], self.patient.id)
        self.assertEqual(response.data['created_by'], self.doctor.id)

    def test_empty_batch_rejected(self):
        response = self.client.post('/api/v1/lab-orders/', {'record': self.record.id, 'orders': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_execute_then_receive_result(self):
        order = LabOrder.objects.create(record=self.record, service_name='Complete blood count')

        response = self.client.post(f'/api/v1/lab-orders/{order.id}/result/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(f'/api/v1/lab-orders/{order.id}/execute/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_executed'])
        self.assertIsNotNone(response.data['executed_at'])

        response = self.client.get('/api/v1/lab-orders/', {'awaiting_results': 'true'})
        self.assertEqual([o['id'] for o in response.data['results']], [order.id])

        response = self.client.post(f'/api/v1/lab-orders/{order.id}/result/',
                                    {'result_notes': 'WBC 12.000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['result_received_at'])
        self.assertEqual(response.data['result_notes'], 'WBC 12.000')

        response = self.client.get('/api/v1/lab-orders/', {'awaiting_results': 'true'})
        self.assertEqual(response.data['count'], 0)

    def test_executed_order_is_final(self):
        order = LabOrder.objects.create(record=self.record, service_name='Chest X-ray')
        services.execute_lab_order(order)

        response = self.client.patch(f'/api/v1/lab-orders/{order.id}/', {'service_name': 'CT'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.delete(f'/api/v1/lab-orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        with self.assertRaises(BusinessRuleError):
            services.execute_lab_order(order)

    def test_pending_order_can_be_deleted(self):
        order = LabOrder.objects.create(record=self.record, service_name='Chest X-ray')
        response = self.client.delete(f'/api/v1/lab-orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(LabOrder.objects.filter(pk=order.id).exists())

    def test_filters_and_stats(self):
        other_record = MedicalRecord.objects.create(patient=TestDataFactory.create_patient(), doctor=self.doctor)
        blood = LabOrder.objects.create(record=self.record, service_name='Complete blood count')
        LabOrder.objects.create(record=self.record, service_name='Chest X-ray')
        LabOrder.objects.create(record=other_record, service_name='Complete blood count')
        services.execute_lab_order(blood)
        services.receive_lab_result(blood)

        response = self.client.get('/api/v1/lab-orders/', {'patient_id': self.patient.id})
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/v1/lab-orders/', {'service_name': 'blood', 'is_executed': 'false'})
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/lab-orders/stats/')
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(response.data['executed'], 1)
        self.assertEqual(response.data['pending'], 2)
        self.assertEqual(response.data['results_received'], 1)
        self.assertEqual(response.data['by_service'], {'Complete blood count': 2, 'Chest X-ray': 1})

    def test_sales_staff_have_no_access(self):
        seller = TestDataFactory.create_user(roles=[ROLE_SALES])
        self.client.authenticate_user(seller)
        response = self.client.get('/api/v1/lab-orders/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
