from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy import or_
from hms.extensions import db
from hms.models import Doctor, User
from hms.services.appointment_service import create_appointment, scoped_query
from hms.services.discharge_service import latest_discharge
from hms.services.user_service import update_profile
from hms.utils.decorators import current_patient, get_current_user, require_role
from hms.utils.payload import get_json_body, parse_datetime, pick, to_int

patient_bp = Blueprint('patient', __name__, url_prefix='/api/patient')


def _approved_doctors():
    return Doctor.query.filter(Doctor.approved.is_(True))


@patient_bp.route('/dashboard', methods=['GET'])
@jwt_required()
@require_role('patient')
def dashboard():
    """The signed-in patient's profile, assigned doctor and appointment counts"""
    user = get_current_user()
    patient = current_patient(user)
    doctor = patient.assigned_doctor
    return jsonify({
        'success': True,
        'data': {
            'patient': patient.to_dict(),
            'doctor_name': doctor.name if doctor else None,
            'doctor_mobile': doctor.mobile if doctor else None,
            'doctor_department': doctor.department if doctor else None,
            'admit_date': patient.admit_date.isoformat(),
            'appointment_count': scoped_query(user, approved=True).count(),
            'pending_appointment_count': scoped_query(user, approved=False).count(),
        }
    }), 200


@patient_bp.route('/doctors', methods=['GET'])
@jwt_required()
@require_role('patient')
def list_doctors():
    doctors = _approved_doctors().order_by(Doctor.department.asc(), Doctor.id.asc()).all()
    return jsonify({
        'success': True,
        'data': [d.to_dict() for d in doctors],
        'total': len(doctors)
    }), 200


@patient_bp.route('/doctors/search', methods=['GET'])
@jwt_required()
@require_role('patient')
def search_doctors():
    """
    Search approved doctors by name or department.
    Query params: q (required)
    """
    q = (request.args.get('q') or '').strip()
    if not q:
        return jsonify({
            'success': False,
            'error': 'Search query (q) is required'
        }), 400

    term = f'%{q}%'
    doctors = (_approved_doctors().join(User, Doctor.user_id == User.id)
               .filter(or_(User.first_name.ilike(term),
                           User.last_name.ilike(term),
                           Doctor.department.ilike(term)))
               .order_by(Doctor.id.asc())
               .limit(50).all())
    return jsonify({
        'success': True,
        'data': [d.to_dict() for d in doctors],
        'total': len(doctors)
    }), 200


@patient_bp.route('/appointments', methods=['GET'])
@jwt_required()
@require_role('patient')
def list_appointments():
    appointments = scoped_query(get_current_user()).all()
    return jsonify({
        'success': True,
        'data': [a.to_dict() for a in appointments],
        'total': len(appointments)
    }), 200


@patient_bp.route('/appointments', methods=['POST'])
@jwt_required()
@require_role('patient')
def book_appointment():
    """
    Book with an approved doctor; the appointment waits for admin approval.
    Body: {doctorId, description, appointmentDate?}
    """
    data = get_json_body()
    appointment = create_appointment(
        get_current_user(),
        doctor_id=to_int(pick(data, 'doctorId', 'doctor_id'), 'doctorId'),
        description=data.get('description'),
        appointment_date=parse_datetime(pick(data, 'appointmentDate', 'appointment_date'), 'appointmentDate'),
    )
    return jsonify({
        'success': True,
        'message': 'Appointment requested. Waiting for admin approval.',
        'data': appointment.to_dict()
    }), 201


@patient_bp.route('/discharge', methods=['GET'])
@jwt_required()
@require_role('patient')
def discharge_summary():
    """
    The patient's discharge bill, if any.
    is_discharged reflects the current admission; the bill shown is the
    current one, else the most recent on file.
    """
    patient = current_patient(get_current_user())
    detail = latest_discharge(patient)
    return jsonify({
        'success': True,
        'data': {
            'isDischarged': patient.is_discharged,
            'patient_id': patient.id,
            'discharge': detail.to_dict() if detail else None,
        }
    }), 200


@patient_bp.route('/profile', methods=['GET'])
@jwt_required()
@require_role('patient')
def get_profile():
    patient = current_patient(get_current_user())
    return jsonify({'success': True, 'data': patient.to_dict()}), 200


@patient_bp.route('/profile', methods=['PUT'])
@jwt_required()
@require_role('patient')
def update_own_profile():
    """Body: any of address, mobile, symptoms"""
    patient = current_patient(get_current_user())
    update_profile(patient, get_json_body())
    db.session.commit()
    return jsonify({
        'success': True,
        'message': 'Profile updated successfully',
        'data': patient.to_dict()
    }), 200
