"""
User Service
Accounts and their doctor/patient profiles.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from hms.extensions import db
from hms.errors import ConflictError, NotFoundError, ValidationError
from hms.models import (
    Appointment, DEPARTMENTS, DischargeDetail, Doctor, Invoice, Message, Patient, ROLES, User,
)
from hms.utils.access import authorize
from hms.utils.audit import log_audit

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {
    'doctor': ('address', 'mobile', 'department'),
    'patient': ('address', 'mobile', 'symptoms'),
}


def _clean(data: Dict[str, Any], key: str, default: str = '') -> str:
    value = data.get(key)
    if value is None:
        return default
    return str(value).strip()


def _check_department(department: str) -> str:
    if department not in DEPARTMENTS:
        raise ValidationError(f"department must be one of: {', '.join(DEPARTMENTS)}")
    return department


def _ensure_unique(username: str, email: str, exclude_id: Optional[int] = None) -> None:
    query = User.query.filter(or_(User.username == username, User.email == email))
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise ConflictError('User already exists')


def _commit_unique():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('User already exists')


def create_user(data: Dict[str, Any], approved: bool = True, allowed_roles=ROLES) -> User:
    """
    Create an account plus its role profile.

    Required: firstName, lastName, username, email, password, role.
    """
    first_name = _clean(data, 'firstName') or _clean(data, 'first_name')
    last_name = _clean(data, 'lastName') or _clean(data, 'last_name')
    username = _clean(data, 'username')
    email = _clean(data, 'email').lower()
    password = data.get('password') or ''
    role = _clean(data, 'role')

    missing = [name for name, value in (
        ('firstName', first_name), ('lastName', last_name), ('username', username),
        ('email', email), ('password', password), ('role', role),
    ) if not value]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")
    if role not in allowed_roles:
        raise ValidationError(f"role must be one of: {', '.join(allowed_roles)}")
    if len(password) < 6:
        raise ValidationError('password must be at least 6 characters')

    _ensure_unique(username, email)

    user = User(first_name=first_name, last_name=last_name, username=username,
                email=email, role=role, is_active=True)
    user.set_password(password)

    if role == 'doctor':
        user.doctor = Doctor(
            address=_clean(data, 'address'),
            mobile=_clean(data, 'mobile'),
            department=_check_department(_clean(data, 'department', DEPARTMENTS[0]) or DEPARTMENTS[0]),
            approved=approved,
        )
    elif role == 'patient':
        assigned = data.get('assignedDoctorId', data.get('assigned_doctor_id'))
        user.patient = Patient(
            address=_clean(data, 'address'),
            mobile=_clean(data, 'mobile'),
            symptoms=_clean(data, 'symptoms'),
            assigned_doctor_id=_doctor_ref(assigned),
            approved=approved,
        )

    db.session.add(user)
    _commit_unique()
    logger.info("User %s created with role %s", user.username, role)
    return user


def _doctor_ref(doctor_id) -> Optional[int]:
    if doctor_id in (None, ''):
        return None
    try:
        doctor_id = int(doctor_id)
    except (TypeError, ValueError):
        raise ValidationError('assignedDoctorId must be an integer')
    if not db.session.get(Doctor, doctor_id):
        raise NotFoundError('Doctor not found')
    return doctor_id


def admin_create_user(data: Dict[str, Any], actor) -> User:
    authorize(actor, 'manage_users')
    user = create_user(data, approved=True)
    log_audit('user', 'create', user_id=actor.id, entity_id=user.id, details={'role': user.role})
    return user


def register_user(data: Dict[str, Any]) -> User:
    """Self-registration; doctors and patients wait for admin approval."""
    return create_user(data, approved=False, allowed_roles=('doctor', 'patient'))


def get_user(user_id) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError('User not found')
    return user


def update_profile(profile, data: Dict[str, Any]) -> None:
    """Apply non-empty profile fields (address, mobile, department/symptoms)."""
    role = 'doctor' if isinstance(profile, Doctor) else 'patient'
    for field in PROFILE_FIELDS[role]:
        value = _clean(data, field)
        if not value:
            continue
        if field == 'department':
            _check_department(value)
        setattr(profile, field, value)


def update_user(user_id, data: Dict[str, Any], actor) -> User:
    authorize(actor, 'manage_users')
    user = get_user(user_id)

    is_active = data.get('isActive', data.get('is_active'))
    if is_active is not None and not isinstance(is_active, bool):
        raise ValidationError('isActive must be a boolean')

    username = _clean(data, 'username') or user.username
    email = (_clean(data, 'email') or user.email).lower()
    if username != user.username or email != user.email:
        _ensure_unique(username, email, exclude_id=user.id)

    user.first_name = _clean(data, 'firstName') or _clean(data, 'first_name') or user.first_name
    user.last_name = _clean(data, 'lastName') or _clean(data, 'last_name') or user.last_name
    user.username = username
    user.email = email
    if data.get('password'):
        if len(data['password']) < 6:
            raise ValidationError('password must be at least 6 characters')
        user.set_password(data['password'])
    if is_active is not None:
        user.is_active = is_active

    profile = user.doctor or user.patient
    if profile is not None:
        update_profile(profile, data)
    if user.patient is not None and ('assignedDoctorId' in data or 'assigned_doctor_id' in data):
        user.patient.assigned_doctor_id = _doctor_ref(data.get('assignedDoctorId', data.get('assigned_doctor_id')))

    _commit_unique()
    log_audit('user', 'update', user_id=actor.id, entity_id=user.id)
    return user


def delete_user(user_id, actor) -> None:
    """
    Delete an account and its profile.

    Patients with invoices or discharge bills, and doctors still referenced
    by patients, appointments or bills, are kept: the billing history must
    stay resolvable.
    """
    authorize(actor, 'manage_users')
    user = get_user(user_id)
    if user.id == actor.id:
        raise ValidationError('Cannot delete your own account')

    if user.patient is not None:
        patient = user.patient
        if (Invoice.query.filter_by(patient_id=patient.id).first()
                or DischargeDetail.query.filter_by(patient_id=patient.id).first()):
            raise ConflictError('Patient has billing history and cannot be deleted')
        for appointment in patient.appointments:
            db.session.delete(appointment)
        for record in patient.medical_records:
            db.session.delete(record)
        for prescription in patient.prescriptions:
            db.session.delete(prescription)
    if user.doctor is not None:
        doctor = user.doctor
        if (Patient.query.filter_by(assigned_doctor_id=doctor.id).first()
                or Appointment.query.filter_by(doctor_id=doctor.id).first()
                or DischargeDetail.query.filter_by(doctor_id=doctor.id).first()):
            raise ConflictError('Doctor still has patients, appointments or bills')

    Message.query.filter(or_(Message.sender_id == user.id, Message.receiver_id == user.id)).delete(
        synchronize_session=False)

    role = user.role
    db.session.delete(user)
    db.session.commit()
    log_audit('user', 'delete', user_id=actor.id, entity_id=user_id, details={'role': role})


def set_approval(profile, approved: bool, actor):
    authorize(actor, 'manage_users')
    profile.approved = bool(approved)
    db.session.commit()
    log_audit(profile.__tablename__[:-1], 'approve' if approved else 'unapprove',
              user_id=actor.id, entity_id=profile.id)
    return profile


def assign_doctor(patient: Patient, doctor_id, actor) -> Patient:
    authorize(actor, 'manage_users')
    patient.assigned_doctor_id = _doctor_ref(doctor_id)
    db.session.commit()
    log_audit('patient', 'assign_doctor', user_id=actor.id, entity_id=patient.id,
              details={'doctor_id': patient.assigned_doctor_id})
    return patient
