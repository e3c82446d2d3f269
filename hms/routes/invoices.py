from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required
from hms.errors import ValidationError
from hms.services.invoice_service import (
    add_charges,
    generate_invoice,
    list_patient_invoices,
    set_invoice_status,
    view_invoice,
)
from hms.utils.decorators import get_current_user
from hms.utils.payload import get_json_body, pick, to_int

invoice_bp = Blueprint('invoices', __name__, url_prefix='/api/invoices')


@invoice_bp.route('/generate', methods=['POST'])
@jwt_required()
def generate():
    """
    Create the invoice for an appointment.
    Body: {appointmentId, additionalCharges?: [{description, amount}]}
    409 when the appointment already has one.
    """
    user = get_current_user()
    data = get_json_body()
    appointment_id = to_int(pick(data, 'appointmentId', 'appointment_id'), 'appointmentId')
    if appointment_id is None:
        raise ValidationError('appointmentId is required')

    invoice = generate_invoice(
        appointment_id,
        pick(data, 'additionalCharges', 'additional_charges', default=[]),
        user,
    )
    return jsonify({
        'success': True,
        'message': 'Invoice generated successfully',
        'data': invoice.to_dict()
    }), 201


@invoice_bp.route('/patient/<int:patient_id>', methods=['GET'])
@jwt_required()
def patient_invoices(patient_id):
    """Invoices of a patient, newest first"""
    invoices = list_patient_invoices(patient_id, get_current_user())
    return jsonify({
        'success': True,
        'data': [i.to_dict() for i in invoices],
        'total': len(invoices)
    }), 200


@invoice_bp.route('/<int:invoice_id>', methods=['GET'])
@jwt_required()
def get_invoice_detail(invoice_id):
    invoice = view_invoice(invoice_id, get_current_user())
    return jsonify({'success': True, 'data': invoice.to_dict()}), 200


@invoice_bp.route('/<int:invoice_id>/add-charges', methods=['PUT'])
@jwt_required()
def add_invoice_charges(invoice_id):
    """
    Append charges and recompute totals.
    Body: {charges: [{description, amount}]}
    """
    user = get_current_user()
    data = get_json_body()
    invoice = add_charges(invoice_id, data.get('charges'), user)
    return jsonify({
        'success': True,
        'message': 'Charges added successfully',
        'data': invoice.to_dict()
    }), 200


@invoice_bp.route('/<int:invoice_id>/status', methods=['PUT'])
@jwt_required()
def update_status(invoice_id):
    """
    Body: {status: pending|paid|overdue, paymentDate?}
    paymentDate is required when status is paid.
    """
    user = get_current_user()
    data = get_json_body()
    invoice = set_invoice_status(
        invoice_id,
        data.get('status'),
        pick(data, 'paymentDate', 'payment_date'),
        user,
    )
    return jsonify({
        'success': True,
        'message': 'Invoice status updated successfully',
        'data': {
            'id': invoice.id,
            'invoice_number': invoice.invoice_number,
            'status': invoice.status,
            'payment_date': invoice.payment_date.isoformat() if invoice.payment_date else None
        }
    }), 200
