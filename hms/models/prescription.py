from hms.extensions import db
from .base import TimestampMixin, iso
import json


class Prescription(db.Model, TimestampMixin):
    """
    Prescription model - one or more medications written by a doctor.

    Medications are stored in ``medications_json`` as a list of
    ``{name, dosage, frequency, duration, instructions}`` dicts.
    """

    __tablename__ = "prescriptions"

    id = db.Column(db.Integer, primary_key=True)
    prescription_number = db.Column(db.String(20), unique=True, nullable=False, index=True)

    patient_id = db.Column(db.Integer, db.ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey("doctors.id"), nullable=False, index=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.id"), nullable=True, index=True)

    medications_json = db.Column(db.Text, nullable=False, default="[]")
    diagnosis = db.Column(db.String(500), nullable=False)
    symptoms = db.Column(db.String(500), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    follow_up_date = db.Column(db.DateTime, nullable=True)

    patient = db.relationship("Patient", backref=db.backref("prescriptions", lazy="dynamic"))
    doctor = db.relationship("Doctor")
    appointment = db.relationship("Appointment")

    @property
    def medications(self):
        if not self.medications_json:
            return []
        try:
            data = json.loads(self.medications_json)
        except (TypeError, json.JSONDecodeError):
            return []
        return data if isinstance(data, list) else []

    @medications.setter
    def medications(self, items):
        self.medications_json = json.dumps(items or [], ensure_ascii=False)

    def to_dict(self):
        return {
            "id": self.id,
            "prescription_number": self.prescription_number,
            "patient_id": self.patient_id,
            "patient_name": self.patient.name if self.patient else None,
            "doctor_id": self.doctor_id,
            "doctor_name": self.doctor.name if self.doctor else None,
            "department": self.doctor.department if self.doctor else None,
            "appointment_id": self.appointment_id,
            "medications": self.medications,
            "diagnosis": self.diagnosis,
            "symptoms": self.symptoms or "",
            "notes": self.notes or "",
            "follow_up_date": iso(self.follow_up_date),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Prescription {self.prescription_number} - Patient: {self.patient_id}>"
