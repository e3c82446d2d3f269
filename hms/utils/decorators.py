from functools import wraps
from flask import jsonify
from flask_jwt_extended import get_jwt_identity
from hms.extensions import db
from hms.errors import NotFoundError
from hms.models import User


def get_current_user():
    """Return the active User behind the request's JWT, or None."""
    try:
        user_id = int(get_jwt_identity())
    except (TypeError, ValueError):
        return None
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        return None
    return user


def current_doctor(user):
    if not user or not user.doctor:
        raise NotFoundError('Doctor profile not found')
    return user.doctor


def current_patient(user):
    if not user or not user.patient:
        raise NotFoundError('Patient profile not found')
    return user.patient


def require_role(*roles):
    """
    Decorator to require specific roles
    Usage: @require_role('admin', 'doctor')
    Must be used together with @jwt_required() on the route.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = get_current_user()
            if not user:
                return jsonify({
                    'success': False,
                    'error': 'Authentication required'
                }), 401

            if not user.has_any_role(*roles):
                return jsonify({
                    'success': False,
                    'error': f'Permission denied. Required roles: {", ".join(roles)}'
                }), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator
