from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy import or_
from hms.extensions import db
from hms.models import Appointment, DischargeDetail, Patient, User
from hms.services.appointment_service import scoped_query
from hms.services.user_service import update_profile
from hms.utils.decorators import current_doctor, get_current_user, require_role
from hms.utils.payload import get_json_body

doctor_bp = Blueprint('doctor', __name__, url_prefix='/api/doctor')


def _own_patients(doctor):
    return Patient.query.filter(
        Patient.assigned_doctor_id == doctor.id,
        Patient.approved.is_(True),
    )


@doctor_bp.route('/dashboard', methods=['GET'])
@jwt_required()
@require_role('doctor')
def dashboard():
    """Patient, appointment and discharge counts for the signed-in doctor"""
    doctor = current_doctor(get_current_user())
    recent = (Appointment.query
              .filter(Appointment.doctor_id == doctor.id, Appointment.approved.is_(True))
              .order_by(Appointment.created_at.desc(), Appointment.id.desc())
              .limit(5).all())
    return jsonify({
        'success': True,
        'data': {
            'doctor': doctor.to_dict(),
            'patient_count': _own_patients(doctor).count(),
            'appointment_count': Appointment.query.filter_by(doctor_id=doctor.id, approved=True).count(),
            'pending_appointment_count': Appointment.query.filter_by(doctor_id=doctor.id, approved=False).count(),
            'discharged_patient_count': DischargeDetail.query.filter_by(doctor_id=doctor.id).count(),
            'recent_appointments': [a.to_dict() for a in recent],
        }
    }), 200


@doctor_bp.route('/patients', methods=['GET'])
@jwt_required()
@require_role('doctor')
def list_patients():
    """Approved patients assigned to the signed-in doctor"""
    doctor = current_doctor(get_current_user())
    patients = _own_patients(doctor).order_by(Patient.admit_date.desc()).all()
    return jsonify({
        'success': True,
        'data': [p.to_dict() for p in patients],
        'total': len(patients)
    }), 200


@doctor_bp.route('/patients/search', methods=['GET'])
@jwt_required()
@require_role('doctor')
def search_patients():
    """
    Search own patients by name or symptoms.
    Query params: q (required)
    """
    doctor = current_doctor(get_current_user())
    q = (request.args.get('q') or '').strip()
    if not q:
        return jsonify({
            'success': False,
            'error': 'Search query (q) is required'
        }), 400

    term = f'%{q}%'
    patients = (_own_patients(doctor).join(User, Patient.user_id == User.id)
                .filter(or_(User.first_name.ilike(term),
                            User.last_name.ilike(term),
                            Patient.symptoms.ilike(term)))
                .order_by(Patient.admit_date.desc())
                .limit(50).all())
    return jsonify({
        'success': True,
        'data': [p.to_dict() for p in patients],
        'total': len(patients)
    }), 200


@doctor_bp.route('/discharged-patients', methods=['GET'])
@jwt_required()
@require_role('doctor')
def discharged_patients():
    """Discharge bills issued for the signed-in doctor's patients"""
    doctor = current_doctor(get_current_user())
    details = (DischargeDetail.query.filter_by(doctor_id=doctor.id)
               .order_by(DischargeDetail.release_date.desc(), DischargeDetail.id.desc())
               .all())
    return jsonify({
        'success': True,
        'data': [d.to_dict() for d in details],
        'total': len(details)
    }), 200


def _appointments(approved=None):
    appointments = scoped_query(get_current_user(), approved=approved).all()
    return jsonify({
        'success': True,
        'data': [a.to_dict() for a in appointments],
        'total': len(appointments)
    }), 200


@doctor_bp.route('/appointments', methods=['GET'])
@jwt_required()
@require_role('doctor')
def appointments():
    return _appointments()


@doctor_bp.route('/appointments/approved', methods=['GET'])
@jwt_required()
@require_role('doctor')
def approved_appointments():
    return _appointments(approved=True)


@doctor_bp.route('/appointments/pending', methods=['GET'])
@jwt_required()
@require_role('doctor')
def pending_appointments():
    return _appointments(approved=False)


@doctor_bp.route('/profile', methods=['GET'])
@jwt_required()
@require_role('doctor')
def get_profile():
    doctor = current_doctor(get_current_user())
    return jsonify({'success': True, 'data': doctor.to_dict()}), 200


@doctor_bp.route('/profile', methods=['PUT'])
@jwt_required()
@require_role('doctor')
def update_own_profile():
    """Body: any of address, mobile, department"""
    doctor = current_doctor(get_current_user())
    update_profile(doctor, get_json_body())
    db.session.commit()
    return jsonify({
        'success': True,
        'message': 'Profile updated successfully',
        'data': doctor.to_dict()
    }), 200
