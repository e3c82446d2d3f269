"""
Tests for invoice creation, charge addition and status changes
"""
from datetime import datetime
from decimal import Decimal

import pytest

from hms.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from hms.extensions import db
from hms.models import Appointment, Invoice
from hms.services.appointment_service import approve_appointment, update_appointment
from hms.services.invoice_service import (
    add_charges,
    auto_create_invoice_on_approval,
    generate_invoice,
    list_patient_invoices,
    set_invoice_status,
)
from tests.conftest import auth_headers, fresh

PAID_AT = '2024-04-02T10:15:00Z'


def _book(patient, doctor, description='Check-up'):
    appt = Appointment(
        patient_id=patient.patient.id,
        doctor_id=doctor.doctor.id,
        patient_name=patient.full_name,
        doctor_name=doctor.full_name,
        description=description,
    )
    db.session.add(appt)
    db.session.commit()
    return appt


class TestApprovalCreatesInvoice:
    def test_first_approval_bills_appointment(self, admin, appointment):
        update_appointment(appointment.id, admin, approved=True)

        invoices = Invoice.query.filter_by(appointment_id=appointment.id).all()
        assert len(invoices) == 1
        invoice = invoices[0]
        assert invoice.items == [{'description': 'Appointment Fee', 'amount': '100'}]
        assert invoice.subtotal == Decimal('100.00')
        assert invoice.tax == Decimal('10.00')
        assert invoice.total == Decimal('110.00')
        assert invoice.status == 'pending'
        assert invoice.invoice_number == 'INV-000001'
        assert invoice.patient_id == appointment.patient_id
        assert invoice.doctor_id == appointment.doctor_id

    def test_second_approval_creates_nothing(self, admin, appointment):
        update_appointment(appointment.id, admin, approved=True)
        update_appointment(appointment.id, admin, approved=True)
        approve_appointment(appointment.id, admin)
        assert Invoice.query.filter_by(appointment_id=appointment.id).count() == 1

    def test_description_only_update_does_not_bill(self, admin, appointment):
        update_appointment(appointment.id, admin, description='Moved to Friday')
        assert Invoice.query.count() == 0
        assert fresh(Appointment, appointment.id).description == 'Moved to Friday'

    def test_unapprove_then_reapprove_keeps_one_invoice(self, admin, appointment):
        update_appointment(appointment.id, admin, approved=True)
        update_appointment(appointment.id, admin, approved=False)
        update_appointment(appointment.id, admin, approved=True)
        assert Invoice.query.count() == 1

    def test_non_admin_cannot_approve(self, doctor, appointment):
        with pytest.raises(AuthorizationError):
            update_appointment(appointment.id, doctor, approved=True)
        assert Invoice.query.count() == 0
        assert fresh(Appointment, appointment.id).approved is False

    def test_auto_create_skips_non_admin(self, doctor, appointment):
        assert auto_create_invoice_on_approval(appointment, doctor) is None
        assert Invoice.query.count() == 0

    def test_invoice_numbers_are_sequential(self, admin, patient, doctor):
        first = _book(patient, doctor)
        second = _book(patient, doctor)
        update_appointment(first.id, admin, approved=True)
        update_appointment(second.id, admin, approved=True)
        numbers = sorted(i.invoice_number for i in Invoice.query.all())
        assert numbers == ['INV-000001', 'INV-000002']


class TestAddCharges:
    def test_xray_on_appointment_fee(self, admin, appointment):
        update_appointment(appointment.id, admin, approved=True)
        invoice = Invoice.query.filter_by(appointment_id=appointment.id).one()

        updated = add_charges(invoice.id, [{'description': 'X-ray', 'amount': 50}], admin)

        assert updated.subtotal == Decimal('150.00')
        assert updated.tax == Decimal('15.00')
        assert updated.total == Decimal('165.00')
        assert [line['description'] for line in updated.items] == ['Appointment Fee', 'X-ray']
        assert updated.additional_charges == [{'description': 'X-ray', 'amount': '50'}]

    def test_repeated_additions_do_not_drift(self, admin, appointment):
        update_appointment(appointment.id, admin, approved=True)
        invoice = Invoice.query.one()
        for amount in ('0.05', '0.05', '0.05'):
            add_charges(invoice.id, [{'description': 'Gauze', 'amount': amount}], admin)

        invoice = fresh(Invoice, invoice.id)
        assert invoice.subtotal == Decimal('100.15')
        assert invoice.tax == Decimal('10.02')
        assert invoice.total == Decimal('110.17')
        assert len(invoice.additional_charges) == 3

    def test_owning_doctor_may_add(self, admin, doctor, appointment):
        update_appointment(appointment.id, admin, approved=True)
        invoice = Invoice.query.one()
        updated = add_charges(invoice.id, [{'description': 'ECG', 'amount': 30}], doctor)
        assert updated.total == Decimal('143.00')

    def test_other_doctor_may_not_add(self, admin, other_doctor, appointment):
        update_appointment(appointment.id, admin, approved=True)
        invoice = Invoice.query.one()
        with pytest.raises(AuthorizationError):
            add_charges(invoice.id, [{'description': 'ECG', 'amount': 30}], other_doctor)
        assert fresh(Invoice, invoice.id).total == Decimal('110.00')

    def test_patient_may_not_add(self, admin, patient, appointment):
        update_appointment(appointment.id, admin, approved=True)
        invoice = Invoice.query.one()
        with pytest.raises(AuthorizationError):
            add_charges(invoice.id, [{'description': 'Discount', 'amount': 0}], patient)

    def test_missing_invoice(self, admin):
        with pytest.raises(NotFoundError):
            add_charges(404, [{'description': 'X-ray', 'amount': 50}], admin)

    @pytest.mark.parametrize('charges', [
        [], None, [{'description': 'X-ray', 'amount': -50}], [{'description': '', 'amount': 5}],
    ])
    def test_invalid_charges(self, admin, appointment, charges):
        update_appointment(appointment.id, admin, approved=True)
        invoice = Invoice.query.one()
        with pytest.raises(ValidationError):
            add_charges(invoice.id, charges, admin)


class TestGenerateInvoice:
    def test_generate_with_additional_charges(self, admin, appointment):
        invoice = generate_invoice(appointment.id, [{'description': 'Lab test', 'amount': '40.50'}], admin)
        assert invoice.subtotal == Decimal('140.50')
        assert invoice.tax == Decimal('14.05')
        assert invoice.total == Decimal('154.55')
        assert len(invoice.items) == 2
        assert len(invoice.additional_charges) == 1

    def test_generate_twice_conflicts(self, admin, appointment):
        generate_invoice(appointment.id, [], admin)
        with pytest.raises(ConflictError):
            generate_invoice(appointment.id, [], admin)
        assert Invoice.query.count() == 1

    def test_generate_for_missing_appointment(self, admin):
        with pytest.raises(NotFoundError):
            generate_invoice(12345, [], admin)

    def test_other_doctor_cannot_generate(self, other_doctor, appointment):
        with pytest.raises(AuthorizationError):
            generate_invoice(appointment.id, [], other_doctor)

    def test_approval_after_manual_invoice_does_not_duplicate(self, admin, appointment):
        generate_invoice(appointment.id, [], admin)
        update_appointment(appointment.id, admin, approved=True)
        assert Invoice.query.count() == 1


class TestInvoiceStatus:
    def test_mark_paid_is_idempotent(self, admin, appointment):
        invoice = generate_invoice(appointment.id, [], admin)
        set_invoice_status(invoice.id, 'paid', PAID_AT, admin)
        first = fresh(Invoice, invoice.id).to_dict()
        set_invoice_status(invoice.id, 'paid', PAID_AT, admin)
        second = fresh(Invoice, invoice.id).to_dict()

        assert first['status'] == second['status'] == 'paid'
        assert first['payment_date'] == second['payment_date'] == datetime(2024, 4, 2, 10, 15).isoformat()
        assert first['total'] == second['total']
        assert first['items'] == second['items']

    def test_paid_requires_payment_date(self, admin, appointment):
        invoice = generate_invoice(appointment.id, [], admin)
        with pytest.raises(ValidationError):
            set_invoice_status(invoice.id, 'paid', None, admin)

    def test_unknown_status(self, admin, appointment):
        invoice = generate_invoice(appointment.id, [], admin)
        with pytest.raises(ValidationError):
            set_invoice_status(invoice.id, 'refunded', None, admin)

    def test_overdue_keeps_payment_date(self, admin, appointment):
        invoice = generate_invoice(appointment.id, [], admin)
        set_invoice_status(invoice.id, 'overdue', None, admin)
        assert fresh(Invoice, invoice.id).status == 'overdue'
        assert fresh(Invoice, invoice.id).payment_date is None

    @pytest.mark.parametrize('role_fixture', ['doctor', 'patient'])
    def test_only_admin_sets_status(self, request, admin, appointment, role_fixture):
        invoice = generate_invoice(appointment.id, [], admin)
        with pytest.raises(AuthorizationError):
            set_invoice_status(invoice.id, 'paid', PAID_AT, request.getfixturevalue(role_fixture))
        assert fresh(Invoice, invoice.id).status == 'pending'


def test_patient_invoices_newest_first(admin, patient, doctor):
    older = _book(patient, doctor, 'First visit')
    newer = _book(patient, doctor, 'Second visit')
    first = generate_invoice(older.id, [], admin)
    second = generate_invoice(newer.id, [], admin)

    invoices = list_patient_invoices(patient.patient.id, admin)
    assert [i.id for i in invoices] == [second.id, first.id]
    assert [i.id for i in list_patient_invoices(patient.patient.id, patient)] == [second.id, first.id]


def test_other_patient_cannot_list_invoices(admin, patient, other_patient, appointment):
    generate_invoice(appointment.id, [], admin)
    with pytest.raises(AuthorizationError):
        list_patient_invoices(patient.patient.id, other_patient)


class TestInvoiceEndpoints:
    def test_approve_via_put_then_add_charges(self, client, admin, appointment):
        response = client.put(f'/api/appointments/{appointment.id}', json={'status': True},
                              headers=auth_headers(admin))
        assert response.status_code == 200
        invoice_id = response.get_json()['data']['invoice_id']
        assert invoice_id is not None

        response = client.put(f'/api/invoices/{invoice_id}/add-charges',
                              json={'charges': [{'description': 'X-ray', 'amount': 50}]},
                              headers=auth_headers(admin))
        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['subtotal'] == 150.0
        assert data['tax'] == 15.0
        assert data['total'] == 165.0

    def test_generate_conflict_is_409(self, client, admin, appointment):
        body = {'appointmentId': appointment.id}
        assert client.post('/api/invoices/generate', json=body, headers=auth_headers(admin)).status_code == 201
        response = client.post('/api/invoices/generate', json=body, headers=auth_headers(admin))
        assert response.status_code == 409
        assert response.get_json() == {'success': False, 'error': 'Invoice already exists for this appointment'}

    def test_status_endpoint(self, client, admin, appointment):
        invoice = generate_invoice(appointment.id, [], admin)
        response = client.put(f'/api/invoices/{invoice.id}/status',
                              json={'status': 'paid', 'paymentDate': PAID_AT},
                              headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.get_json()['data']['status'] == 'paid'

        response = client.put(f'/api/invoices/{invoice.id}/status', json={'status': 'void'},
                              headers=auth_headers(admin))
        assert response.status_code == 400

    def test_patient_list_endpoint(self, client, admin, patient, appointment):
        generate_invoice(appointment.id, [], admin)
        response = client.get(f'/api/invoices/patient/{patient.patient.id}', headers=auth_headers(patient))
        assert response.status_code == 200
        assert response.get_json()['total'] == 1

    def test_patient_cannot_add_charges(self, client, admin, patient, appointment):
        invoice = generate_invoice(appointment.id, [], admin)
        response = client.put(f'/api/invoices/{invoice.id}/add-charges',
                              json={'charges': [{'description': 'X-ray', 'amount': 50}]},
                              headers=auth_headers(patient))
        assert response.status_code == 403
