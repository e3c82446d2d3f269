"""
Discharge Service
Closes a patient's stay and issues the discharge bill.
"""
import logging

from sqlalchemy.exc import IntegrityError

from hms.extensions import db
from hms.errors import ConflictError, NotFoundError
from hms.models import DischargeDetail, Doctor, Patient
from hms.models.base import utcnow
from hms.services.billing import compute_discharge_total, days_between, to_amount
from hms.utils.access import authorize, scope_for
from hms.utils.audit import log_audit

logger = logging.getLogger(__name__)


def get_patient(patient_id) -> Patient:
    patient = db.session.get(Patient, patient_id)
    if not patient:
        raise NotFoundError('Patient not found')
    return patient


def _assigned_doctor(patient: Patient) -> Doctor:
    doctor = db.session.get(Doctor, patient.assigned_doctor_id) if patient.assigned_doctor_id else None
    if not doctor:
        raise NotFoundError('Assigned doctor not found')
    return doctor


def discharge_patient(patient_id, daily_room_rate, medicine_cost, doctor_fee, other_charge, actor,
                      release_date=None) -> DischargeDetail:
    """
    Discharge a patient and persist the bill for the stay.

    ``daily_room_rate`` is per day; the stored ``room_charge`` covers the
    whole stay. The patient must have an assigned doctor. One bill per
    admission: a second discharge before re-admission raises ConflictError.
    """
    authorize(actor, 'discharge_patient')

    # Reject bad amounts before any lookups
    for field, value in (('roomCharge', daily_room_rate), ('medicineCost', medicine_cost),
                         ('doctorFee', doctor_fee), ('otherCharge', other_charge)):
        to_amount(value, field)

    patient = get_patient(patient_id)
    doctor = _assigned_doctor(patient)

    if patient.current_discharge_id is not None:
        raise ConflictError('Patient is already discharged for the current admission')

    release_date = release_date or utcnow()
    day_spent = days_between(patient.admit_date, release_date)
    charges = compute_discharge_total(daily_room_rate, day_spent, medicine_cost, doctor_fee, other_charge)

    detail = DischargeDetail(
        patient_id=patient.id,
        doctor_id=doctor.id,
        patient_name=patient.name,
        doctor_name=doctor.name,
        address=patient.address,
        mobile=patient.mobile,
        symptoms=patient.symptoms,
        admit_date=patient.admit_date,
        release_date=release_date,
        day_spent=day_spent,
        daily_room_rate=to_amount(daily_room_rate, 'roomCharge'),
        room_charge=charges['room_charge'],
        medicine_cost=to_amount(medicine_cost, 'medicineCost'),
        doctor_fee=to_amount(doctor_fee, 'doctorFee'),
        other_charge=to_amount(other_charge, 'otherCharge'),
        total=charges['total'],
        created_by=actor.id,
    )
    db.session.add(detail)
    try:
        db.session.flush()
        patient.current_discharge_id = detail.id
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('Patient is already discharged for the current admission')

    log_audit('discharge', 'create', user_id=actor.id, entity_id=detail.id,
              details={'patient_id': patient.id, 'day_spent': day_spent, 'total': detail.total})
    logger.info("Patient %s discharged after %s day(s), total %s", patient.id, day_spent, detail.total)
    return detail


def preview_discharge(patient_id, actor, as_of=None) -> dict:
    """Days so far and doctor for a patient about to be discharged; persists nothing."""
    authorize(actor, 'discharge_patient')
    patient = get_patient(patient_id)
    today = as_of or utcnow()
    doctor = patient.assigned_doctor
    return {
        'patient_id': patient.id,
        'name': patient.name,
        'mobile': patient.mobile,
        'address': patient.address,
        'symptoms': patient.symptoms,
        'admit_date': patient.admit_date.isoformat(),
        'today_date': today.isoformat(),
        'day': days_between(patient.admit_date, today),
        'assigned_doctor_id': doctor.id if doctor else None,
        'assigned_doctor_name': doctor.name if doctor else 'Not Assigned',
        'is_discharged': patient.is_discharged,
    }


def latest_discharge(patient: Patient):
    """The discharge for the current admission, else the most recent one on file."""
    if patient.current_discharge is not None:
        return patient.current_discharge
    return patient.discharges.order_by(None).order_by(
        DischargeDetail.created_at.desc(), DischargeDetail.id.desc()
    ).first()


def get_latest_discharge(patient_id, actor) -> DischargeDetail:
    scope_for(actor, 'view_records')
    patient = get_patient(patient_id)
    authorize(actor, 'view_records', patient)
    detail = latest_discharge(patient)
    if not detail:
        raise NotFoundError('Discharge details not found')
    return detail


def discharge_history(patient_id, actor):
    scope_for(actor, 'view_records')
    patient = get_patient(patient_id)
    authorize(actor, 'view_records', patient)
    return (DischargeDetail.query.filter_by(patient_id=patient.id)
            .order_by(DischargeDetail.created_at.desc(), DischargeDetail.id.desc())
            .all())


def patients_awaiting_discharge():
    """Approved patients with no discharge for their current admission."""
    return (Patient.query.filter(Patient.approved.is_(True), Patient.current_discharge_id.is_(None))
            .order_by(Patient.admit_date.asc())
            .all())


def readmit_patient(patient_id, actor, admit_date=None) -> Patient:
    """Start a new admission; the previous discharge stays in the history."""
    authorize(actor, 'discharge_patient')
    patient = get_patient(patient_id)
    patient.admit_date = admit_date or utcnow()
    patient.current_discharge_id = None
    db.session.commit()
    log_audit('patient', 'readmit', user_id=actor.id, entity_id=patient.id,
              details={'admit_date': patient.admit_date})
    return patient
