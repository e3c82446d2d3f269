"""
Prescription API Routes
"""

from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required
from hms.services.records_service import (
    create_prescription,
    get_prescription,
    list_prescriptions,
    update_prescription,
)
from hms.utils.decorators import get_current_user, require_role
from hms.utils.payload import get_json_body

prescription_bp = Blueprint("prescription", __name__, url_prefix="/api/prescriptions")


@prescription_bp.route("", methods=["POST"])
@jwt_required()
@require_role("doctor")
def create():
    """
    Create a new prescription

    Body:
        patientId: Patient ID (required)
        appointmentId: Appointment ID (optional)
        diagnosis: Diagnosis (required)
        medications: list of {name, dosage, frequency, duration, instructions} (required)
        symptoms, notes, followUpDate (optional)

    Returns:
        Prescription object numbered RX-NNNNNN
    """
    prescription = create_prescription(get_json_body(), get_current_user())
    return jsonify({
        "success": True,
        "message": "Prescription created successfully",
        "data": prescription.to_dict(),
    }), 201


@prescription_bp.route("/mine", methods=["GET"])
@jwt_required()
@require_role("doctor", "patient")
def list_own():
    """Doctors see what they wrote, patients what they were given"""
    prescriptions = list_prescriptions(get_current_user())
    return jsonify({
        "success": True,
        "data": [p.to_dict() for p in prescriptions],
        "total": len(prescriptions),
    }), 200


@prescription_bp.route("/patient/<int:patient_id>", methods=["GET"])
@jwt_required()
def list_for_patient(patient_id):
    prescriptions = list_prescriptions(get_current_user(), patient_id=patient_id)
    return jsonify({
        "success": True,
        "data": [p.to_dict() for p in prescriptions],
        "total": len(prescriptions),
    }), 200


@prescription_bp.route("/<int:prescription_id>", methods=["GET"])
@jwt_required()
def get(prescription_id):
    prescription = get_prescription(prescription_id, get_current_user())
    return jsonify({"success": True, "data": prescription.to_dict()}), 200


@prescription_bp.route("/<int:prescription_id>", methods=["PUT"])
@jwt_required()
@require_role("doctor")
def update(prescription_id):
    prescription = update_prescription(prescription_id, get_json_body(), get_current_user())
    return jsonify({
        "success": True,
        "message": "Prescription updated successfully",
        "data": prescription.to_dict(),
    }), 200
