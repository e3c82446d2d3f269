"""
Tests for appointment booking and listing
"""
import pytest

from hms.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from hms.models import Appointment, Invoice
from hms.services.appointment_service import (
    create_appointment,
    delete_appointment,
    scoped_query,
    update_appointment,
)
from tests.conftest import auth_headers, make_user


class TestCreateAppointment:
    def test_patient_books_for_self(self, patient, doctor, other_patient):
        appt = create_appointment(patient, doctor_id=doctor.doctor.id,
                                  patient_id=other_patient.patient.id, description='Headache')
        assert appt.patient_id == patient.patient.id
        assert appt.approved is False
        assert appt.patient_name == 'Jane Doe'
        assert appt.doctor_name == 'Gregory House'

    def test_admin_booking_starts_approved_without_invoice(self, admin, patient, doctor):
        appt = create_appointment(admin, doctor_id=doctor.doctor.id,
                                  patient_id=patient.patient.id, description='Review')
        assert appt.approved is True
        assert Invoice.query.count() == 0

    def test_doctor_books_for_self(self, doctor, other_doctor, patient):
        appt = create_appointment(doctor, doctor_id=other_doctor.doctor.id,
                                  patient_id=patient.patient.id, description='Scan')
        assert appt.doctor_id == doctor.doctor.id

    @pytest.mark.parametrize('description', [None, '', '   ', 'x' * 501, 42])
    def test_description_validated(self, patient, doctor, description):
        with pytest.raises(ValidationError):
            create_appointment(patient, doctor_id=doctor.doctor.id, description=description)

    def test_unknown_doctor(self, patient):
        with pytest.raises(NotFoundError):
            create_appointment(patient, doctor_id=999, description='Headache')

    def test_unapproved_doctor(self, patient):
        pending = make_user('drnew', 'doctor', approved=False)
        with pytest.raises(ValidationError):
            create_appointment(patient, doctor_id=pending.doctor.id, description='Headache')


class TestScopedListing:
    def test_roles_see_their_own(self, admin, doctor, other_doctor, patient, other_patient):
        mine = create_appointment(patient, doctor_id=doctor.doctor.id, description='Mine')
        theirs = create_appointment(other_patient, doctor_id=other_doctor.doctor.id, description='Theirs')

        assert {a.id for a in scoped_query(admin)} == {mine.id, theirs.id}
        assert [a.id for a in scoped_query(doctor)] == [mine.id]
        assert [a.id for a in scoped_query(patient)] == [mine.id]
        assert [a.id for a in scoped_query(other_doctor)] == [theirs.id]

    def test_approved_filter(self, admin, patient, doctor):
        pending = create_appointment(patient, doctor_id=doctor.doctor.id, description='Pending')
        approved = create_appointment(admin, doctor_id=doctor.doctor.id,
                                      patient_id=patient.patient.id, description='Approved')
        assert [a.id for a in scoped_query(admin, approved=True)] == [approved.id]
        assert [a.id for a in scoped_query(admin, approved=False)] == [pending.id]


class TestUpdateAndDelete:
    def test_patient_cannot_touch_other_appointment(self, other_patient, appointment):
        with pytest.raises(AuthorizationError):
            update_appointment(appointment.id, other_patient, description='Hijack')

    def test_non_admin_status_is_ignored(self, doctor, appointment):
        updated = update_appointment(appointment.id, doctor, description='Follow-up', approved=True)
        assert updated.description == 'Follow-up'
        assert updated.approved is False
        assert Invoice.query.count() == 0

    def test_status_must_be_boolean(self, admin, appointment):
        with pytest.raises(ValidationError):
            update_appointment(appointment.id, admin, approved='yes')

    def test_missing_appointment(self, admin):
        with pytest.raises(NotFoundError):
            update_appointment(777, admin, approved=True)

    def test_delete_billed_appointment_conflicts(self, admin, appointment):
        update_appointment(appointment.id, admin, approved=True)
        with pytest.raises(ConflictError):
            delete_appointment(appointment.id, admin)

    def test_doctor_deletes_own_pending(self, doctor, appointment):
        delete_appointment(appointment.id, doctor)
        assert Appointment.query.count() == 0

    def test_patient_cannot_delete(self, patient, appointment):
        with pytest.raises(AuthorizationError):
            delete_appointment(appointment.id, patient)


class TestAppointmentEndpoints:
    def test_book_and_list(self, client, patient, doctor):
        response = client.post('/api/patient/appointments',
                               json={'doctorId': doctor.doctor.id, 'description': 'Back pain'},
                               headers=auth_headers(patient))
        assert response.status_code == 201
        booked = response.get_json()['data']
        assert booked['approved'] is False
        assert booked['invoice_id'] is None

        response = client.get('/api/appointments/pending', headers=auth_headers(patient))
        assert [a['id'] for a in response.get_json()['data']] == [booked['id']]

    def test_admin_create_endpoint(self, client, admin, patient, doctor):
        response = client.post('/api/appointments',
                               json={'doctorId': doctor.doctor.id, 'patientId': patient.patient.id,
                                     'description': 'Consultation',
                                     'appointmentDate': '2024-05-01T09:30:00Z'},
                               headers=auth_headers(admin))
        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['approved'] is True
        assert data['appointment_date'] == '2024-05-01T09:30:00'

    def test_doctor_update_keeps_description_and_ignores_status(self, client, doctor, appointment):
        response = client.put(f'/api/appointments/{appointment.id}',
                              json={'description': 'updated', 'status': True},
                              headers=auth_headers(doctor))
        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['description'] == 'updated'
        assert data['approved'] is False
        assert data['invoice_id'] is None

    def test_approve_endpoint_bills_once(self, client, admin, appointment):
        for _ in range(2):
            response = client.put(f'/api/appointments/{appointment.id}/approve', headers=auth_headers(admin))
            assert response.status_code == 200
        assert Invoice.query.count() == 1

    def test_patient_put_status_is_forbidden(self, client, patient, appointment):
        response = client.put(f'/api/appointments/{appointment.id}', json={'status': True},
                              headers=auth_headers(patient))
        assert response.status_code == 403

    def test_bad_id_type(self, client, admin):
        response = client.post('/api/appointments', json={'doctorId': 'abc', 'description': 'x'},
                               headers=auth_headers(admin))
        assert response.status_code == 400
