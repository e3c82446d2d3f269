import json

from hms.extensions import db
from .base import TimestampMixin, iso

VITAL_SIGN_FIELDS = ('blood_pressure', 'heart_rate', 'temperature', 'weight', 'height')


class MedicalRecord(db.Model, TimestampMixin):
    __tablename__ = 'medical_records'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey('patients.id'), nullable=False, index=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey('doctors.id'), nullable=False, index=True)

    diagnosis = db.Column(db.String(500), nullable=False)
    treatment = db.Column(db.String(500), nullable=False)
    prescription = db.Column(db.String(500), nullable=True)
    notes = db.Column(db.String(1000), nullable=True)
    vital_signs_json = db.Column(db.Text, nullable=True)  # JSON object keyed by VITAL_SIGN_FIELDS
    follow_up_date = db.Column(db.DateTime, nullable=True)

    patient = db.relationship('Patient', backref=db.backref('medical_records', lazy='dynamic'))
    doctor = db.relationship('Doctor')

    @property
    def vital_signs(self):
        if not self.vital_signs_json:
            return {}
        try:
            data = json.loads(self.vital_signs_json)
        except (TypeError, json.JSONDecodeError):
            return {}
        return data if isinstance(data, dict) else {}

    @vital_signs.setter
    def vital_signs(self, values):
        values = values or {}
        self.vital_signs_json = json.dumps(
            {k: str(values[k]) for k in VITAL_SIGN_FIELDS if values.get(k) not in (None, '')}
        )

    def to_dict(self):
        return {
            'id': self.id,
            'patient_id': self.patient_id,
            'patient_name': self.patient.name if self.patient else None,
            'doctor_id': self.doctor_id,
            'doctor_name': self.doctor.name if self.doctor else None,
            'diagnosis': self.diagnosis,
            'treatment': self.treatment,
            'prescription': self.prescription,
            'notes': self.notes,
            'vital_signs': self.vital_signs,
            'follow_up_date': iso(self.follow_up_date),
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }
