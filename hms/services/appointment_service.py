"""
Appointment Service
Booking, updates and the approval transition that bills an appointment.
"""
import logging

from hms.extensions import db
from hms.errors import ConflictError, NotFoundError, ValidationError
from hms.models import Appointment, Doctor, Patient
from hms.services.invoice_service import auto_create_invoice_on_approval
from hms.utils.access import authorize, scope_for
from hms.utils.audit import log_audit

logger = logging.getLogger(__name__)


def get_appointment(appointment_id) -> Appointment:
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        raise NotFoundError('Appointment not found')
    return appointment


def scoped_query(actor, approved=None):
    """Appointments visible to the actor, newest first."""
    scope_for(actor, 'view_records')
    query = Appointment.query
    if actor.role == 'doctor':
        profile = actor.doctor
        if not profile:
            raise NotFoundError('Doctor profile not found')
        query = query.filter(Appointment.doctor_id == profile.id)
    elif actor.role == 'patient':
        profile = actor.patient
        if not profile:
            raise NotFoundError('Patient profile not found')
        query = query.filter(Appointment.patient_id == profile.id)
    if approved is not None:
        query = query.filter(Appointment.approved.is_(approved))
    return query.order_by(Appointment.created_at.desc(), Appointment.id.desc())


def create_appointment(actor, doctor_id=None, patient_id=None, description=None, appointment_date=None) -> Appointment:
    """
    Book an appointment.

    Patients always book for themselves and doctors for themselves; admins
    name both parties and their bookings start out approved.
    """
    scope_for(actor, 'book_appointment')
    if actor.role == 'patient':
        if not actor.patient:
            raise NotFoundError('Patient profile not found')
        patient_id = actor.patient.id
    elif actor.role == 'doctor':
        if not actor.doctor:
            raise NotFoundError('Doctor profile not found')
        doctor_id = actor.doctor.id

    if not isinstance(description, str) or not description.strip():
        raise ValidationError('description is required')
    if len(description) > 500:
        raise ValidationError('description must be at most 500 characters')

    doctor = db.session.get(Doctor, doctor_id) if doctor_id is not None else None
    patient = db.session.get(Patient, patient_id) if patient_id is not None else None
    if not doctor or not patient:
        raise NotFoundError('Doctor or patient not found')
    if actor.role == 'patient' and not doctor.approved:
        raise ValidationError('Doctor is not approved yet')

    appointment = Appointment(
        patient_id=patient.id,
        doctor_id=doctor.id,
        patient_name=patient.name,
        doctor_name=doctor.name,
        description=description.strip(),
        approved=actor.role == 'admin',
    )
    if appointment_date is not None:
        appointment.appointment_date = appointment_date
    db.session.add(appointment)
    db.session.commit()

    logger.info("Appointment %s booked by user %s (%s)", appointment.id, actor.id, actor.role)
    return appointment


def _claim_approval(appointment: Appointment) -> bool:
    """Flip approved false -> true in one conditional UPDATE; True if this call did it."""
    rows = (Appointment.query
            .filter(Appointment.id == appointment.id, Appointment.approved.is_(False))
            .update({Appointment.approved: True}, synchronize_session=False))
    return rows == 1


def update_appointment(appointment_id, actor, description=None, approved=None) -> Appointment:
    """
    Update description and/or approval.

    Only admins may change approval; a status sent by anyone else is
    ignored. When this call moves the appointment from unapproved to
    approved, the appointment is invoiced.
    """
    scope_for(actor, 'update_appointment')
    if actor.role != 'admin':
        approved = None
    if approved is not None and not isinstance(approved, bool):
        raise ValidationError('status must be a boolean')

    appointment = get_appointment(appointment_id)
    authorize(actor, 'update_appointment', appointment)

    if description is not None:
        if not isinstance(description, str) or not description.strip():
            raise ValidationError('description must not be empty')
        if len(description) > 500:
            raise ValidationError('description must be at most 500 characters')
        appointment.description = description.strip()

    transitioned = False
    if approved is True:
        transitioned = _claim_approval(appointment)
    elif approved is False:
        appointment.approved = False

    db.session.commit()
    db.session.refresh(appointment)

    if transitioned:
        log_audit('appointment', 'approve', user_id=actor.id, entity_id=appointment.id)
        auto_create_invoice_on_approval(appointment, actor)
        db.session.refresh(appointment)
    return appointment


def approve_appointment(appointment_id, actor) -> Appointment:
    authorize(actor, 'approve_appointment')
    return update_appointment(appointment_id, actor, approved=True)


def delete_appointment(appointment_id, actor) -> None:
    scope_for(actor, 'delete_appointment')
    appointment = get_appointment(appointment_id)
    authorize(actor, 'delete_appointment', appointment)
    if appointment.invoice is not None:
        raise ConflictError('Appointment has an invoice and cannot be deleted')
    db.session.delete(appointment)
    db.session.commit()
    log_audit('appointment', 'delete', user_id=actor.id, entity_id=appointment_id)
