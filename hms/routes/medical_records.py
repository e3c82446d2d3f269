from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required
from hms.services.records_service import (
    create_medical_record,
    delete_medical_record,
    doctor_medical_records,
    get_medical_record,
    patient_medical_records,
    update_medical_record,
)
from hms.utils.decorators import get_current_user, require_role
from hms.utils.payload import get_json_body

medical_record_bp = Blueprint('medical_records', __name__, url_prefix='/api/medical-records')


@medical_record_bp.route('', methods=['GET'])
@jwt_required()
@require_role('doctor')
def list_own_records():
    """Records written by the signed-in doctor"""
    records = doctor_medical_records(get_current_user())
    return jsonify({'success': True, 'data': [r.to_dict() for r in records], 'total': len(records)}), 200


@medical_record_bp.route('/patient/<int:patient_id>', methods=['GET'])
@jwt_required()
def list_patient_records(patient_id):
    records = patient_medical_records(patient_id, get_current_user())
    return jsonify({'success': True, 'data': [r.to_dict() for r in records], 'total': len(records)}), 200


@medical_record_bp.route('/<int:record_id>', methods=['GET'])
@jwt_required()
def get_record(record_id):
    record = get_medical_record(record_id, get_current_user())
    return jsonify({'success': True, 'data': record.to_dict()}), 200


@medical_record_bp.route('', methods=['POST'])
@jwt_required()
def create_record():
    """
    Body: {patientId, diagnosis, treatment, prescription?, notes?,
           vitalSigns?: {blood_pressure, heart_rate, temperature, weight, height},
           followUpDate?}
    """
    record = create_medical_record(get_json_body(), get_current_user())
    return jsonify({
        'success': True,
        'message': 'Medical record created successfully',
        'data': record.to_dict()
    }), 201


@medical_record_bp.route('/<int:record_id>', methods=['PUT'])
@jwt_required()
def update_record(record_id):
    record = update_medical_record(record_id, get_json_body(), get_current_user())
    return jsonify({
        'success': True,
        'message': 'Medical record updated successfully',
        'data': record.to_dict()
    }), 200


@medical_record_bp.route('/<int:record_id>', methods=['DELETE'])
@jwt_required()
def delete_record(record_id):
    delete_medical_record(record_id, get_current_user())
    return jsonify({'success': True, 'message': 'Medical record deleted successfully'}), 200
