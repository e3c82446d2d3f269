from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from hms.extensions import db
from hms.errors import NotFoundError
from hms.models import Appointment, DischargeDetail, Doctor, Invoice, Patient, User, ROLES
from hms.services.discharge_service import readmit_patient
from hms.services.user_service import (
    admin_create_user,
    assign_doctor,
    delete_user,
    set_approval,
    update_user,
)
from hms.utils.decorators import get_current_user, require_role
from hms.utils.payload import get_json_body, parse_datetime, pick

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _doctor_or_404(doctor_id):
    doctor = db.session.get(Doctor, doctor_id)
    if not doctor:
        raise NotFoundError('Doctor not found')
    return doctor


def _patient_or_404(patient_id):
    patient = db.session.get(Patient, patient_id)
    if not patient:
        raise NotFoundError('Patient not found')
    return patient


def _filtered(model, approved):
    query = model.query
    if approved is not None:
        query = query.filter(model.approved.is_(approved))
    return query.order_by(model.created_at.desc(), model.id.desc()).all()


@admin_bp.route('/dashboard', methods=['GET'])
@jwt_required()
@require_role('admin')
def dashboard():
    """Counts for the admin dashboard plus the latest doctors and patients"""
    return jsonify({
        'success': True,
        'data': {
            'doctor_count': Doctor.query.filter_by(approved=True).count(),
            'pending_doctor_count': Doctor.query.filter_by(approved=False).count(),
            'patient_count': Patient.query.filter_by(approved=True).count(),
            'pending_patient_count': Patient.query.filter_by(approved=False).count(),
            'appointment_count': Appointment.query.filter_by(approved=True).count(),
            'pending_appointment_count': Appointment.query.filter_by(approved=False).count(),
            'discharge_count': DischargeDetail.query.count(),
            'unpaid_invoice_count': Invoice.query.filter(Invoice.status != 'paid').count(),
            'recent_doctors': [d.to_dict() for d in
                               Doctor.query.order_by(Doctor.id.desc()).limit(5)],
            'recent_patients': [p.to_dict() for p in
                                Patient.query.order_by(Patient.id.desc()).limit(5)],
        }
    }), 200


# ---------------------------------------------------------------------------
# Doctors
# ---------------------------------------------------------------------------

@admin_bp.route('/doctors', methods=['GET'])
@jwt_required()
@require_role('admin')
def list_doctors():
    doctors = _filtered(Doctor, None)
    return jsonify({'success': True, 'data': [d.to_dict() for d in doctors], 'total': len(doctors)}), 200


@admin_bp.route('/doctors/approved', methods=['GET'])
@jwt_required()
@require_role('admin')
def list_approved_doctors():
    doctors = _filtered(Doctor, True)
    return jsonify({'success': True, 'data': [d.to_dict() for d in doctors], 'total': len(doctors)}), 200


@admin_bp.route('/doctors/pending', methods=['GET'])
@jwt_required()
@require_role('admin')
def list_pending_doctors():
    doctors = _filtered(Doctor, False)
    return jsonify({'success': True, 'data': [d.to_dict() for d in doctors], 'total': len(doctors)}), 200


@admin_bp.route('/doctors', methods=['POST'])
@jwt_required()
@require_role('admin')
def create_doctor():
    """Body: user fields plus address, mobile, department. Created approved."""
    data = dict(get_json_body(), role='doctor')
    user = admin_create_user(data, get_current_user())
    return jsonify({
        'success': True,
        'message': 'Doctor created successfully',
        'data': user.doctor.to_dict()
    }), 201


@admin_bp.route('/doctors/<int:doctor_id>', methods=['PUT'])
@jwt_required()
@require_role('admin')
def update_doctor(doctor_id):
    doctor = _doctor_or_404(doctor_id)
    update_user(doctor.user_id, get_json_body(), get_current_user())
    return jsonify({
        'success': True,
        'message': 'Doctor updated successfully',
        'data': doctor.to_dict()
    }), 200


@admin_bp.route('/doctors/<int:doctor_id>/approve', methods=['PUT'])
@jwt_required()
@require_role('admin')
def approve_doctor(doctor_id):
    doctor = set_approval(_doctor_or_404(doctor_id), True, get_current_user())
    return jsonify({
        'success': True,
        'message': 'Doctor approved',
        'data': doctor.to_dict()
    }), 200


@admin_bp.route('/doctors/<int:doctor_id>', methods=['DELETE'])
@jwt_required()
@require_role('admin')
def delete_doctor(doctor_id):
    doctor = _doctor_or_404(doctor_id)
    delete_user(doctor.user_id, get_current_user())
    return jsonify({'success': True, 'message': 'Doctor deleted successfully'}), 200


# ---------------------------------------------------------------------------
# Patients
# ---------------------------------------------------------------------------

@admin_bp.route('/patients', methods=['GET'])
@jwt_required()
@require_role('admin')
def list_patients():
    patients = _filtered(Patient, None)
    return jsonify({'success': True, 'data': [p.to_dict() for p in patients], 'total': len(patients)}), 200


@admin_bp.route('/patients/approved', methods=['GET'])
@jwt_required()
@require_role('admin')
def list_approved_patients():
    patients = _filtered(Patient, True)
    return jsonify({'success': True, 'data': [p.to_dict() for p in patients], 'total': len(patients)}), 200


@admin_bp.route('/patients/pending', methods=['GET'])
@jwt_required()
@require_role('admin')
def list_pending_patients():
    patients = _filtered(Patient, False)
    return jsonify({'success': True, 'data': [p.to_dict() for p in patients], 'total': len(patients)}), 200


@admin_bp.route('/patients', methods=['POST'])
@jwt_required()
@require_role('admin')
def create_patient():
    """Body: user fields plus address, mobile, symptoms, assignedDoctorId. Created approved."""
    data = dict(get_json_body(), role='patient')
    user = admin_create_user(data, get_current_user())
    return jsonify({
        'success': True,
        'message': 'Patient created successfully',
        'data': user.patient.to_dict()
    }), 201


@admin_bp.route('/patients/<int:patient_id>', methods=['PUT'])
@jwt_required()
@require_role('admin')
def update_patient(patient_id):
    patient = _patient_or_404(patient_id)
    update_user(patient.user_id, get_json_body(), get_current_user())
    return jsonify({
        'success': True,
        'message': 'Patient updated successfully',
        'data': patient.to_dict()
    }), 200


@admin_bp.route('/patients/<int:patient_id>/approve', methods=['PUT'])
@jwt_required()
@require_role('admin')
def approve_patient(patient_id):
    patient = set_approval(_patient_or_404(patient_id), True, get_current_user())
    return jsonify({
        'success': True,
        'message': 'Patient approved',
        'data': patient.to_dict()
    }), 200


@admin_bp.route('/patients/<int:patient_id>/assign-doctor', methods=['PUT'])
@jwt_required()
@require_role('admin')
def assign_patient_doctor(patient_id):
    """Body: {doctorId} (null clears the assignment)"""
    data = get_json_body()
    patient = assign_doctor(_patient_or_404(patient_id), pick(data, 'doctorId', 'doctor_id'), get_current_user())
    return jsonify({
        'success': True,
        'message': 'Doctor assigned',
        'data': patient.to_dict()
    }), 200


@admin_bp.route('/patients/<int:patient_id>/readmit', methods=['POST'])
@jwt_required()
@require_role('admin')
def readmit(patient_id):
    """
    Start a new admission for a discharged patient.
    Body (optional): {admitDate}
    """
    data = request.get_json(silent=True) or {}
    patient = readmit_patient(
        patient_id,
        get_current_user(),
        admit_date=parse_datetime(pick(data, 'admitDate', 'admit_date'), 'admitDate'),
    )
    return jsonify({
        'success': True,
        'message': 'Patient re-admitted',
        'data': patient.to_dict()
    }), 200


@admin_bp.route('/patients/<int:patient_id>', methods=['DELETE'])
@jwt_required()
@require_role('admin')
def delete_patient(patient_id):
    patient = _patient_or_404(patient_id)
    delete_user(patient.user_id, get_current_user())
    return jsonify({'success': True, 'message': 'Patient deleted successfully'}), 200


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@admin_bp.route('/users', methods=['GET'])
@jwt_required()
@require_role('admin')
def list_users():
    """
    Query params: role (admin|doctor|patient), page, limit
    """
    role = request.args.get('role', type=str)
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', 50, type=int)
    if page < 1:
        page = 1
    if limit < 1 or limit > 100:
        limit = 50

    query = User.query
    if role in ROLES:
        query = query.filter(User.role == role)
    users = query.order_by(User.created_at.desc(), User.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )
    return jsonify({
        'success': True,
        'data': [u.to_dict() for u in users.items],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': users.total,
            'pages': users.pages,
            'has_next': users.has_next,
            'has_prev': users.has_prev
        }
    }), 200


@admin_bp.route('/users', methods=['POST'])
@jwt_required()
@require_role('admin')
def create_user():
    user = admin_create_user(get_json_body(), get_current_user())
    return jsonify({
        'success': True,
        'message': 'User created successfully',
        'data': user.to_dict()
    }), 201


@admin_bp.route('/users/<int:user_id>', methods=['PUT'])
@jwt_required()
@require_role('admin')
def update_user_route(user_id):
    user = update_user(user_id, get_json_body(), get_current_user())
    return jsonify({
        'success': True,
        'message': 'User updated successfully',
        'data': user.to_dict()
    }), 200


@admin_bp.route('/users/<int:user_id>', methods=['DELETE'])
@jwt_required()
@require_role('admin')
def delete_user_route(user_id):
    delete_user(user_id, get_current_user())
    return jsonify({'success': True, 'message': 'User deleted successfully'}), 200
