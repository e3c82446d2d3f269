"""
Tests for the discharge workflow and the discharge bill PDF
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from hms.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from hms.extensions import db
from hms.models import AuditLog, DischargeDetail, Patient
from hms.models.base import utcnow
from hms.services.discharge_service import (
    discharge_patient,
    get_latest_discharge,
    patients_awaiting_discharge,
    preview_discharge,
    readmit_patient,
)
from hms.utils.pdf_utils import discharge_bill_sections, format_currency
from tests.conftest import ADMIT_DATE, auth_headers, fresh, make_user

RELEASE_DATE = ADMIT_DATE + timedelta(days=5)


def _discharge(patient, admin, release_date=RELEASE_DATE, **charges):
    amounts = dict(daily_room_rate=50, medicine_cost=20, doctor_fee=100, other_charge=10)
    amounts.update(charges)
    return discharge_patient(patient.patient.id, actor=admin, release_date=release_date, **amounts)


def _admitted_days_ago(patient, days):
    # Just under the whole number of days, so the request lands in the last day
    patient.patient.admit_date = utcnow() - timedelta(days=days) + timedelta(hours=1)
    db.session.commit()


class TestDischargePatient:
    def test_five_day_stay(self, admin, patient, doctor):
        detail = _discharge(patient, admin)

        assert detail.day_spent == 5
        assert detail.room_charge == Decimal('250.00')
        assert detail.daily_room_rate == Decimal('50')
        assert detail.total == Decimal('380.00')
        assert detail.doctor_id == doctor.doctor.id
        assert detail.doctor_name == 'Gregory House'
        assert detail.patient_name == 'Jane Doe'
        assert detail.admit_date == ADMIT_DATE
        assert detail.release_date == RELEASE_DATE

        reloaded = fresh(Patient, patient.patient.id)
        assert reloaded.current_discharge_id == detail.id
        assert reloaded.is_discharged

    def test_snapshot_survives_profile_edit(self, admin, patient):
        detail = _discharge(patient, admin)
        patient.patient.address = 'Somewhere else'
        patient.first_name = 'Janet'
        db.session.commit()

        stored = fresh(DischargeDetail, detail.id)
        assert stored.address == '7 Home Street'
        assert stored.patient_name == 'Jane Doe'

    def test_no_assigned_doctor(self, admin):
        orphan = make_user('orphan', 'patient')
        with pytest.raises(NotFoundError):
            _discharge(orphan, admin)
        assert DischargeDetail.query.count() == 0

    def test_missing_patient(self, admin):
        with pytest.raises(NotFoundError):
            discharge_patient(9999, 50, 20, 100, 10, actor=admin)

    def test_negative_charge_rejected_before_lookup(self, admin):
        with pytest.raises(ValidationError):
            discharge_patient(9999, 50, -20, 100, 10, actor=admin)

    def test_release_before_admit(self, admin, patient):
        with pytest.raises(ValidationError):
            _discharge(patient, admin, release_date=ADMIT_DATE - timedelta(hours=1))
        assert DischargeDetail.query.count() == 0

    @pytest.mark.parametrize('role_fixture', ['doctor', 'patient'])
    def test_only_admin_discharges(self, request, patient, role_fixture):
        actor = request.getfixturevalue(role_fixture)
        with pytest.raises(AuthorizationError):
            _discharge(patient, actor)
        assert DischargeDetail.query.count() == 0

    def test_second_discharge_same_admission_conflicts(self, admin, patient):
        _discharge(patient, admin)
        with pytest.raises(ConflictError):
            _discharge(patient, admin, release_date=RELEASE_DATE + timedelta(days=1))
        assert DischargeDetail.query.count() == 1

    def test_readmission_allows_new_discharge(self, admin, patient):
        first = _discharge(patient, admin)
        new_admit = RELEASE_DATE + timedelta(days=30)
        readmit_patient(patient.patient.id, admin, admit_date=new_admit)

        second = _discharge(patient, admin, release_date=new_admit + timedelta(days=2), daily_room_rate=80)
        assert second.day_spent == 2
        assert second.room_charge == Decimal('160.00')
        assert get_latest_discharge(patient.patient.id, admin).id == second.id
        assert DischargeDetail.query.filter_by(patient_id=patient.patient.id).count() == 2
        assert first.id != second.id

    def test_audit_entry_written(self, admin, patient):
        detail = _discharge(patient, admin)
        entry = AuditLog.query.filter_by(entity_type='discharge', entity_id=str(detail.id)).one()
        assert entry.action == 'create'
        assert entry.user_id == admin.id


class TestDischargeQueries:
    def test_preview_persists_nothing(self, admin, patient):
        preview = preview_discharge(patient.patient.id, admin, as_of=ADMIT_DATE + timedelta(days=3, hours=2))
        assert preview['day'] == 4
        assert preview['assigned_doctor_name'] == 'Gregory House'
        assert DischargeDetail.query.count() == 0

    def test_preview_without_doctor(self, admin):
        orphan = make_user('orphan', 'patient')
        preview = preview_discharge(orphan.patient.id, admin, as_of=ADMIT_DATE + timedelta(days=1))
        assert preview['assigned_doctor_name'] == 'Not Assigned'

    def test_awaiting_discharge_excludes_discharged(self, admin, patient, other_patient):
        _discharge(patient, admin)
        waiting = patients_awaiting_discharge()
        assert [p.id for p in waiting] == [other_patient.patient.id]

    def test_patient_sees_only_own_discharge(self, admin, patient, other_patient):
        _discharge(patient, admin)
        assert get_latest_discharge(patient.patient.id, patient).patient_id == patient.patient.id
        with pytest.raises(AuthorizationError):
            get_latest_discharge(patient.patient.id, other_patient)


class TestBillDocument:
    def test_sections_match_stored_figures(self, admin, patient):
        detail = _discharge(patient, admin)
        sections = dict(discharge_bill_sections(detail))
        bill = dict(sections['Bill Details'])

        assert bill['Room Charge (5 days @ $50.00):'] == '$250.00'
        assert bill['Medicine Cost:'] == '$20.00'
        assert bill['Doctor Fee:'] == '$100.00'
        assert bill['Other Charges:'] == '$10.00'
        assert bill['TOTAL:'] == '$380.00'
        assert dict(sections['Stay'])['Days Spent:'] == '5'

    def test_format_currency(self):
        assert format_currency(Decimal('1250')) == '$1,250.00'
        assert format_currency(0.5, symbol='€') == '€0.50'


class TestDischargeEndpoints:
    def test_discharge_and_download(self, client, admin, patient):
        _admitted_days_ago(patient, 5)
        response = client.post(
            f'/api/discharge/{patient.patient.id}',
            json={'roomCharge': 50, 'medicineCost': 20, 'doctorFee': 100, 'otherCharge': 10},
            headers=auth_headers(admin),
        )
        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['day_spent'] == 5
        assert data['room_charge'] == 250.0
        assert data['total'] == 380.0

        pdf = client.get(f'/api/discharge/{patient.patient.id}/pdf', headers=auth_headers(admin))
        assert pdf.status_code == 200
        assert pdf.mimetype == 'application/pdf'
        assert pdf.data.startswith(b'%PDF')
        assert 'attachment' in pdf.headers['Content-Disposition']

    def test_patient_downloads_own_bill(self, client, admin, patient):
        _discharge(patient, admin)
        response = client.get(f'/api/discharge/{patient.patient.id}/pdf', headers=auth_headers(patient))
        assert response.status_code == 200

    def test_pdf_without_discharge_is_404(self, client, admin, patient):
        response = client.get(f'/api/discharge/{patient.patient.id}/pdf', headers=auth_headers(admin))
        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_doctor_cannot_discharge(self, client, doctor, patient):
        response = client.post(
            f'/api/discharge/{patient.patient.id}',
            json={'roomCharge': 50, 'medicineCost': 20, 'doctorFee': 100, 'otherCharge': 10},
            headers=auth_headers(doctor),
        )
        assert response.status_code == 403

    def test_missing_charge_is_400(self, client, admin, patient):
        response = client.post(
            f'/api/discharge/{patient.patient.id}',
            json={'roomCharge': 50, 'medicineCost': 20, 'doctorFee': 100},
            headers=auth_headers(admin),
        )
        assert response.status_code == 400

    def test_duplicate_discharge_is_409(self, client, admin, patient):
        _discharge(patient, admin)
        response = client.post(
            f'/api/discharge/{patient.patient.id}',
            json={'roomCharge': 50, 'medicineCost': 20, 'doctorFee': 100, 'otherCharge': 10},
            headers=auth_headers(admin),
        )
        assert response.status_code == 409

    def test_history_newest_first(self, client, admin, patient):
        first = _discharge(patient, admin)
        readmit_patient(patient.patient.id, admin, admit_date=RELEASE_DATE + timedelta(days=10))
        second = _discharge(patient, admin, release_date=RELEASE_DATE + timedelta(days=12))
        response = client.get(f'/api/discharge/{patient.patient.id}/history', headers=auth_headers(admin))
        ids = [d['id'] for d in response.get_json()['data']]
        assert ids == [second.id, first.id]

    def test_unauthenticated_is_401(self, client, patient):
        response = client.get(f'/api/discharge/{patient.patient.id}/pdf')
        assert response.status_code == 401

    def test_readmit_endpoint_clears_current_discharge(self, client, admin, patient):
        _discharge(patient, admin)
        response = client.post(
            f'/api/admin/patients/{patient.patient.id}/readmit',
            json={'admitDate': (RELEASE_DATE + timedelta(days=10)).isoformat()},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['is_discharged'] is False
        assert data['current_discharge_id'] is None
        assert data['admit_date'] == (RELEASE_DATE + timedelta(days=10)).isoformat()

    def test_release_date_in_body_is_ignored(self, client, admin, patient):
        _admitted_days_ago(patient, 3)
        response = client.post(
            f'/api/discharge/{patient.patient.id}',
            json={'roomCharge': 50, 'medicineCost': 0, 'doctorFee': 0, 'otherCharge': 0,
                  'releaseDate': (utcnow() + timedelta(days=365)).isoformat()},
            headers=auth_headers(admin),
        )
        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['day_spent'] == 3
        assert data['total'] == 150.0

    def test_pdf_filename_with_non_latin_name(self, client, admin, doctor):
        user = make_user('lihua', 'patient', first_name='李', last_name='华',
                         assigned_doctor_id=doctor.doctor.id)
        detail = _discharge(user, admin)
        response = client.get(f'/api/discharge/{user.patient.id}/pdf', headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.data.startswith(b'%PDF')
        disposition = response.headers['Content-Disposition']
        disposition.encode('latin-1')
        assert disposition.startswith('attachment')
        assert f"filename*=UTF-8''bill_%E6%9D%8E_%E5%8D%8E_{detail.id}.pdf" in disposition
