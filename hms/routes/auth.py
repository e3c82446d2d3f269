from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity,
)
from hms.extensions import db
from hms.models import User
from hms.models.base import utcnow
from hms.services.user_service import register_user
from hms.utils.decorators import get_current_user
from hms.utils.payload import get_json_body
import logging

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _claims(user):
    return {
        "username": user.username,
        "role": user.role,
    }


def _profile(user):
    data = user.to_dict()
    if user.doctor:
        data['doctor'] = user.doctor.to_dict()
    if user.patient:
        data['patient'] = user.patient.to_dict()
    return data


@auth_bp.route('/register', methods=['POST'])
def register():
    """Self-registration for doctors and patients; an admin approves them later"""
    data = get_json_body()
    user = register_user(data)
    return jsonify({
        'success': True,
        'message': 'Registration successful. Waiting for admin approval.',
        'data': _profile(user)
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """Login endpoint - authenticates a user and returns JWT tokens"""
    data = request.get_json(silent=True)

    if not data:
        return jsonify({
            'success': False,
            'error': 'Request body must be JSON'
        }), 400

    username = data.get('username')
    password = data.get('password')

    if not username or not password:
        return jsonify({
            'success': False,
            'error': 'Username and password required'
        }), 400

    user = User.query.filter_by(username=username).first()

    if not user or not user.check_password(password):
        return jsonify({
            'success': False,
            'error': 'Invalid username or password'
        }), 401

    if not user.is_active:
        return jsonify({
            'success': False,
            'error': 'Account is deactivated'
        }), 403

    # Update login tracking
    user.last_login = utcnow()
    user.login_count = (user.login_count or 0) + 1
    db.session.commit()

    # Identity must be a string for the JWT "sub" claim
    identity = str(user.id)
    access_token = create_access_token(identity=identity, additional_claims=_claims(user), fresh=True)
    refresh_token = create_refresh_token(identity=identity, additional_claims=_claims(user))

    logger.info("User %s logged in (%s)", user.username, user.role)
    expires = current_app.config['JWT_ACCESS_TOKEN_EXPIRES']
    return jsonify({
        'success': True,
        'data': _profile(user),
        'access_token': access_token,
        'refresh_token': refresh_token,
        'token_type': 'bearer',
        'expires_in': int(expires.total_seconds())
    }), 200


@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    """Exchange a refresh token for a new access token"""
    user = db.session.get(User, int(get_jwt_identity()))
    if not user or not user.is_active:
        return jsonify({'success': False, 'error': 'Authentication required'}), 401

    access_token = create_access_token(identity=str(user.id), additional_claims=_claims(user), fresh=False)
    return jsonify({
        'success': True,
        'access_token': access_token,
        'token_type': 'bearer'
    }), 200


@auth_bp.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    """Stateless JWT: the client discards its tokens"""
    return jsonify({
        'success': True,
        'message': 'Logged out successfully (delete tokens on client)'
    }), 200


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    """Current user with their doctor/patient profile"""
    user = get_current_user()
    if not user:
        return jsonify({'success': False, 'error': 'User not found'}), 404

    return jsonify({
        'success': True,
        'data': _profile(user)
    }), 200
