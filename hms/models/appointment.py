from hms.extensions import db
from .base import TimestampMixin, iso, utcnow


class Appointment(db.Model, TimestampMixin):
    __tablename__ = 'appointments'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey('patients.id'), nullable=False, index=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey('doctors.id'), nullable=False, index=True)

    # Names as they were when the appointment was booked
    patient_name = db.Column(db.String(40), nullable=False)
    doctor_name = db.Column(db.String(40), nullable=False)

    appointment_date = db.Column(db.DateTime, default=utcnow, nullable=False)
    description = db.Column(db.String(500), nullable=False)

    # false -> true once, by an admin; the transition bills the appointment
    approved = db.Column(db.Boolean, default=False, nullable=False, index=True)

    patient = db.relationship('Patient', back_populates='appointments')
    doctor = db.relationship('Doctor')
    invoice = db.relationship('Invoice', back_populates='appointment', uselist=False)

    def to_dict(self):
        return {
            'id': self.id,
            'patient_id': self.patient_id,
            'doctor_id': self.doctor_id,
            'patient_name': self.patient_name,
            'doctor_name': self.doctor_name,
            'appointment_date': iso(self.appointment_date),
            'description': self.description,
            'approved': self.approved,
            'invoice_id': self.invoice.id if self.invoice else None,
            'created_at': iso(self.created_at),
        }

    def __repr__(self):
        return f"<Appointment {self.id} {self.patient_name} - {self.doctor_name}>"
