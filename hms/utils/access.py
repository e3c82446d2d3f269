"""
Access policy.

Every workflow asks this table before touching the store. A role missing
from an action's entry is denied; ``OWN`` restricts the role to resources
linked to its own profile by foreign key.
"""
from hms.errors import AuthenticationError, AuthorizationError

ALL = 'all'
OWN = 'own'

ACCESS_POLICY = {
    'discharge_patient': {'admin': ALL},
    'add_invoice_charge': {'admin': ALL, 'doctor': OWN},
    'generate_invoice': {'admin': ALL, 'doctor': OWN},
    'set_invoice_status': {'admin': ALL},
    'approve_appointment': {'admin': ALL},
    'book_appointment': {'admin': ALL, 'doctor': OWN, 'patient': OWN},
    'update_appointment': {'admin': ALL, 'doctor': OWN, 'patient': OWN},
    'delete_appointment': {'admin': ALL, 'doctor': OWN},
    'manage_users': {'admin': ALL},
    'write_medical_record': {'doctor': OWN},
    'write_prescription': {'doctor': OWN},
    'view_records': {'admin': ALL, 'doctor': OWN, 'patient': OWN},
}


def scope_for(actor, action):
    """Return ALL or OWN for the actor's role, or raise AuthorizationError."""
    if actor is None:
        raise AuthenticationError('Authentication required')
    rules = ACCESS_POLICY.get(action)
    if rules is None:
        raise KeyError(f'Unknown policy action: {action}')
    scope = rules.get(actor.role)
    if scope is None:
        raise AuthorizationError(f'Permission denied. Role {actor.role!r} may not {action.replace("_", " ")}')
    return scope


def authorize(actor, action, resource=None):
    """
    Check ``actor`` may perform ``action``, on ``resource`` when given.

    Without a resource only the role column is checked; callers that act on
    a loaded entity pass it so OWN scopes are enforced.
    """
    scope = scope_for(actor, action)
    if scope == OWN and resource is not None and not owns(actor, resource):
        raise AuthorizationError('Permission denied for this record')
    return scope


def owns(actor, resource):
    from hms.models import Patient, Appointment

    if actor.role == 'admin':
        return True

    if actor.role == 'doctor':
        profile = actor.doctor
        if profile is None:
            return False
        if isinstance(resource, Patient):
            if resource.assigned_doctor_id == profile.id:
                return True
            return Appointment.query.filter_by(
                patient_id=resource.id, doctor_id=profile.id
            ).first() is not None
        return getattr(resource, 'doctor_id', None) == profile.id

    if actor.role == 'patient':
        profile = actor.patient
        if profile is None:
            return False
        if isinstance(resource, Patient):
            return resource.id == profile.id
        return getattr(resource, 'patient_id', None) == profile.id

    return False

