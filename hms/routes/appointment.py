from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from hms.services.appointment_service import (
    approve_appointment,
    create_appointment,
    delete_appointment,
    get_appointment,
    scoped_query,
    update_appointment,
)
from hms.utils.access import authorize
from hms.utils.decorators import get_current_user
from hms.utils.payload import get_json_body, parse_datetime, pick, to_int

appointment_bp = Blueprint('appointment', __name__, url_prefix='/api/appointments')


def _list(approved=None):
    user = get_current_user()
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', 20, type=int)
    if page < 1:
        page = 1
    if limit < 1 or limit > 100:
        limit = 20

    appointments = scoped_query(user, approved=approved).paginate(page=page, per_page=limit, error_out=False)
    return jsonify({
        'success': True,
        'data': [a.to_dict() for a in appointments.items],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': appointments.total,
            'pages': appointments.pages,
            'has_next': appointments.has_next,
            'has_prev': appointments.has_prev
        }
    }), 200


@appointment_bp.route('', methods=['GET'])
@jwt_required()
def list_appointments():
    """
    Appointments visible to the caller, newest first.
    Admins see all, doctors their own, patients their own.
    Query params: page, limit
    """
    return _list()


@appointment_bp.route('/approved', methods=['GET'])
@jwt_required()
def list_approved_appointments():
    return _list(approved=True)


@appointment_bp.route('/pending', methods=['GET'])
@jwt_required()
def list_pending_appointments():
    return _list(approved=False)


@appointment_bp.route('/<int:appointment_id>', methods=['GET'])
@jwt_required()
def get_appointment_detail(appointment_id):
    user = get_current_user()
    appointment = get_appointment(appointment_id)
    authorize(user, 'view_records', appointment)
    return jsonify({'success': True, 'data': appointment.to_dict()}), 200


@appointment_bp.route('', methods=['POST'])
@jwt_required()
def create_appointment_route():
    """
    Book an appointment.
    Body: {doctorId, patientId, description, appointmentDate?}
    Patients and doctors book for themselves; the other party is required.
    """
    user = get_current_user()
    data = get_json_body()
    appointment = create_appointment(
        user,
        doctor_id=to_int(pick(data, 'doctorId', 'doctor_id'), 'doctorId'),
        patient_id=to_int(pick(data, 'patientId', 'patient_id'), 'patientId'),
        description=data.get('description'),
        appointment_date=parse_datetime(pick(data, 'appointmentDate', 'appointment_date'), 'appointmentDate'),
    )
    return jsonify({
        'success': True,
        'message': 'Appointment created successfully',
        'data': appointment.to_dict()
    }), 201


@appointment_bp.route('/<int:appointment_id>', methods=['PUT'])
@jwt_required()
def update_appointment_route(appointment_id):
    """
    Update an appointment.
    Body: {description?, status?} where status is the approval flag.
    The first approval by an admin creates the appointment's invoice.
    """
    user = get_current_user()
    data = get_json_body()
    appointment = update_appointment(
        appointment_id,
        user,
        description=data.get('description'),
        approved=pick(data, 'status', 'approved'),
    )
    return jsonify({
        'success': True,
        'message': 'Appointment updated successfully',
        'data': appointment.to_dict()
    }), 200


@appointment_bp.route('/<int:appointment_id>/approve', methods=['PUT'])
@jwt_required()
def approve_appointment_route(appointment_id):
    user = get_current_user()
    appointment = approve_appointment(appointment_id, user)
    return jsonify({
        'success': True,
        'message': 'Appointment approved',
        'data': appointment.to_dict()
    }), 200


@appointment_bp.route('/<int:appointment_id>', methods=['DELETE'])
@jwt_required()
def delete_appointment_route(appointment_id):
    user = get_current_user()
    delete_appointment(appointment_id, user)
    return jsonify({
        'success': True,
        'message': 'Appointment deleted successfully'
    }), 200

