import io

from flask import Blueprint, jsonify, send_file
from flask_jwt_extended import jwt_required
from hms.services.discharge_service import (
    discharge_history,
    discharge_patient,
    get_latest_discharge,
    patients_awaiting_discharge,
    preview_discharge,
)
from hms.utils.decorators import get_current_user, require_role
from hms.utils.payload import get_json_body, pick
from hms.utils.pdf_utils import render_discharge_bill_pdf

discharge_bp = Blueprint('discharge', __name__, url_prefix='/api/discharge')


@discharge_bp.route('/patients', methods=['GET'])
@jwt_required()
@require_role('admin')
def list_patients_to_discharge():
    """Approved patients not yet discharged for their current admission"""
    patients = patients_awaiting_discharge()
    return jsonify({
        'success': True,
        'data': [p.to_dict() for p in patients],
        'total': len(patients)
    }), 200


@discharge_bp.route('/details/<int:patient_id>', methods=['GET'])
@jwt_required()
def discharge_preview(patient_id):
    """Days spent so far and the assigned doctor; nothing is saved"""
    details = preview_discharge(patient_id, get_current_user())
    return jsonify({'success': True, 'data': details}), 200


@discharge_bp.route('/<int:patient_id>', methods=['POST'])
@jwt_required()
def discharge(patient_id):
    """
    Discharge a patient and issue the bill.
    Body: {roomCharge, medicineCost, doctorFee, otherCharge}
    roomCharge is the daily rate; the stored room charge covers the whole stay.
    The release date is always the time of the request.
    """
    user = get_current_user()
    data = get_json_body()
    detail = discharge_patient(
        patient_id,
        daily_room_rate=pick(data, 'roomCharge', 'room_charge'),
        medicine_cost=pick(data, 'medicineCost', 'medicine_cost'),
        doctor_fee=pick(data, 'doctorFee', 'doctor_fee'),
        other_charge=pick(data, 'otherCharge', 'other_charge'),
        actor=user,
    )
    return jsonify({
        'success': True,
        'message': 'Patient discharged successfully',
        'data': detail.to_dict()
    }), 201


@discharge_bp.route('/<int:patient_id>', methods=['GET'])
@jwt_required()
def latest_discharge_detail(patient_id):
    detail = get_latest_discharge(patient_id, get_current_user())
    return jsonify({'success': True, 'data': detail.to_dict()}), 200


@discharge_bp.route('/<int:patient_id>/history', methods=['GET'])
@jwt_required()
def history(patient_id):
    details = discharge_history(patient_id, get_current_user())
    return jsonify({
        'success': True,
        'data': [d.to_dict() for d in details],
        'total': len(details)
    }), 200


@discharge_bp.route('/<int:patient_id>/pdf', methods=['GET'])
@jwt_required()
def download_bill_pdf(patient_id):
    """Discharge bill as PDF, built from the patient's most recent discharge"""
    detail = get_latest_discharge(patient_id, get_current_user())
    pdf_bytes = render_discharge_bill_pdf(detail)

    filename = f"bill_{detail.patient_name.replace(' ', '_')}_{detail.id}.pdf"
    # Non-ASCII names go out as filename*=UTF-8''... with an ASCII fallback
    response = send_file(io.BytesIO(pdf_bytes), mimetype='application/pdf',
                         as_attachment=True, download_name=filename)
    response.content_length = len(pdf_bytes)
    return response
