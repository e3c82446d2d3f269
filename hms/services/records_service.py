"""
Clinical Records Service
Medical records and prescriptions written by a patient's doctor.
"""
import logging

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from hms.extensions import db
from hms.errors import ConflictError, NotFoundError, ValidationError
from hms.models import Appointment, MedicalRecord, Patient, Prescription
from hms.utils.access import authorize, scope_for
from hms.utils.audit import log_audit
from hms.utils.decorators import current_doctor, current_patient
from hms.utils.payload import parse_datetime, pick, to_int

logger = logging.getLogger(__name__)

MEDICATION_FIELDS = ("name", "dosage", "frequency", "duration", "instructions")


def _patient(patient_id) -> Patient:
    patient = db.session.get(Patient, patient_id) if patient_id is not None else None
    if not patient:
        raise NotFoundError("Patient not found")
    return patient


def _text(data, key, required=False, limit=None):
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{key} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    if limit and len(value) > limit:
        raise ValidationError(f"{key} must be at most {limit} characters")
    return value


# ---------------------------------------------------------------------------
# Medical records
# ---------------------------------------------------------------------------

def create_medical_record(data, actor) -> MedicalRecord:
    """Record a diagnosis for one of the doctor's own patients."""
    scope_for(actor, "write_medical_record")
    patient = _patient(to_int(pick(data, "patientId", "patient_id"), "patientId"))
    authorize(actor, "write_medical_record", patient)

    record = MedicalRecord(
        patient_id=patient.id,
        doctor_id=actor.doctor.id,
        diagnosis=_text(data, "diagnosis", required=True, limit=500),
        treatment=_text(data, "treatment", required=True, limit=500),
        prescription=_text(data, "prescription", limit=500),
        notes=_text(data, "notes", limit=1000),
        follow_up_date=parse_datetime(pick(data, "followUpDate", "follow_up_date"), "followUpDate"),
    )
    record.vital_signs = pick(data, "vitalSigns", "vital_signs", default={})
    db.session.add(record)
    db.session.commit()

    log_audit("medical_record", "create", user_id=actor.id, entity_id=record.id,
              details={"patient_id": patient.id})
    return record


def get_medical_record(record_id, actor) -> MedicalRecord:
    scope_for(actor, "view_records")
    record = db.session.get(MedicalRecord, record_id)
    if not record:
        raise NotFoundError("Medical record not found")
    authorize(actor, "view_records", record)
    return record


def update_medical_record(record_id, data, actor) -> MedicalRecord:
    scope_for(actor, "write_medical_record")
    record = db.session.get(MedicalRecord, record_id)
    if not record:
        raise NotFoundError("Medical record not found")
    authorize(actor, "write_medical_record", record)

    for key, limit in (("diagnosis", 500), ("treatment", 500), ("prescription", 500), ("notes", 1000)):
        if key in data:
            value = _text(data, key, required=key in ("diagnosis", "treatment"), limit=limit)
            setattr(record, key, value)
    vitals = pick(data, "vitalSigns", "vital_signs")
    if vitals is not None:
        record.vital_signs = vitals
    follow_up = pick(data, "followUpDate", "follow_up_date")
    if follow_up is not None:
        record.follow_up_date = parse_datetime(follow_up, "followUpDate")
    db.session.commit()

    log_audit("medical_record", "update", user_id=actor.id, entity_id=record.id)
    return record


def delete_medical_record(record_id, actor) -> None:
    scope_for(actor, "write_medical_record")
    record = db.session.get(MedicalRecord, record_id)
    if not record:
        raise NotFoundError("Medical record not found")
    authorize(actor, "write_medical_record", record)
    db.session.delete(record)
    db.session.commit()
    log_audit("medical_record", "delete", user_id=actor.id, entity_id=record_id)


def doctor_medical_records(actor):
    scope_for(actor, "write_medical_record")
    return (MedicalRecord.query.filter_by(doctor_id=current_doctor(actor).id)
            .order_by(MedicalRecord.created_at.desc(), MedicalRecord.id.desc())
            .all())


def patient_medical_records(patient_id, actor):
    scope_for(actor, "view_records")
    patient = _patient(patient_id)
    authorize(actor, "view_records", patient)
    return (MedicalRecord.query.filter_by(patient_id=patient.id)
            .order_by(MedicalRecord.created_at.desc(), MedicalRecord.id.desc())
            .all())


# ---------------------------------------------------------------------------
# Prescriptions
# ---------------------------------------------------------------------------

def generate_prescription_number() -> str:
    """Next sequential number, e.g. RX-000001."""
    prefix = current_app.config.get("PRESCRIPTION_NUMBER_PREFIX", "RX-")
    count = db.session.query(func.count(Prescription.id)).scalar() or 0
    return f"{prefix}{count + 1:06d}"


def normalize_medications(items):
    """Validate medication entries; name and dosage are required."""
    if not isinstance(items, list) or not items:
        raise ValidationError("medications must be a non-empty list")

    medications = []
    for idx, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"Item {idx}: must be an object")
        name = (item.get("name") or "").strip() if isinstance(item.get("name"), str) else ""
        dosage = (item.get("dosage") or "").strip() if isinstance(item.get("dosage"), str) else ""
        if not name:
            raise ValidationError(f"Item {idx}: name is required")
        if not dosage:
            raise ValidationError(f"Item {idx}: dosage is required")
        medications.append({
            field: str(item.get(field) or "").strip() for field in MEDICATION_FIELDS
        })
    return medications


def create_prescription(data, actor) -> Prescription:
    scope_for(actor, "write_prescription")
    patient = _patient(to_int(pick(data, "patientId", "patient_id"), "patientId"))
    authorize(actor, "write_prescription", patient)

    appointment_id = to_int(pick(data, "appointmentId", "appointment_id"), "appointmentId")
    if appointment_id is not None:
        appointment = db.session.get(Appointment, appointment_id)
        if not appointment or appointment.patient_id != patient.id:
            raise NotFoundError("Appointment not found for this patient")

    prescription = Prescription(
        prescription_number=generate_prescription_number(),
        patient_id=patient.id,
        doctor_id=actor.doctor.id,
        appointment_id=appointment_id,
        diagnosis=_text(data, "diagnosis", required=True, limit=500),
        symptoms=_text(data, "symptoms", limit=500),
        notes=_text(data, "notes"),
        follow_up_date=parse_datetime(pick(data, "followUpDate", "follow_up_date"), "followUpDate"),
    )
    prescription.medications = normalize_medications(data.get("medications"))
    db.session.add(prescription)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Prescription number already taken, retry the request")

    log_audit("prescription", "create", user_id=actor.id, entity_id=prescription.id,
              details={"patient_id": patient.id, "number": prescription.prescription_number})
    logger.info("Prescription %s created for patient %s", prescription.prescription_number, patient.id)
    return prescription


def get_prescription(prescription_id, actor) -> Prescription:
    scope_for(actor, "view_records")
    prescription = db.session.get(Prescription, prescription_id)
    if not prescription:
        raise NotFoundError("Prescription not found")
    authorize(actor, "view_records", prescription)
    return prescription


def update_prescription(prescription_id, data, actor) -> Prescription:
    scope_for(actor, "write_prescription")
    prescription = db.session.get(Prescription, prescription_id)
    if not prescription:
        raise NotFoundError("Prescription not found")
    authorize(actor, "write_prescription", prescription)

    if "diagnosis" in data:
        prescription.diagnosis = _text(data, "diagnosis", required=True, limit=500)
    if "symptoms" in data:
        prescription.symptoms = _text(data, "symptoms", limit=500)
    if "notes" in data:
        prescription.notes = _text(data, "notes")
    if "medications" in data:
        prescription.medications = normalize_medications(data.get("medications"))
    follow_up = pick(data, "followUpDate", "follow_up_date")
    if follow_up is not None:
        prescription.follow_up_date = parse_datetime(follow_up, "followUpDate")
    db.session.commit()

    log_audit("prescription", "update", user_id=actor.id, entity_id=prescription.id)
    return prescription


def list_prescriptions(actor, patient_id=None):
    """Prescriptions visible to the actor, optionally for one patient, newest first."""
    scope_for(actor, "view_records")
    query = Prescription.query
    if patient_id is not None:
        patient = _patient(patient_id)
        authorize(actor, "view_records", patient)
        query = query.filter(Prescription.patient_id == patient.id)
    elif actor.role == "doctor":
        query = query.filter(Prescription.doctor_id == current_doctor(actor).id)
    elif actor.role == "patient":
        query = query.filter(Prescription.patient_id == current_patient(actor).id)
    return query.order_by(Prescription.created_at.desc(), Prescription.id.desc()).all()
