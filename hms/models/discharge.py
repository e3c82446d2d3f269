from hms.extensions import db
from .base import TimestampMixin, iso, money


class DischargeDetail(db.Model, TimestampMixin):
    """
    Bill for one inpatient stay.

    Names, address and mobile are copied from the patient and doctor at the
    moment of discharge; later profile edits never change an issued bill.
    """

    __tablename__ = 'discharge_details'
    __table_args__ = (
        db.UniqueConstraint('patient_id', 'admit_date', name='uq_discharge_patient_admission'),
    )

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey('patients.id'), nullable=False, index=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey('doctors.id'), nullable=False, index=True)

    patient_name = db.Column(db.String(40), nullable=False)
    doctor_name = db.Column(db.String(40), nullable=False)
    address = db.Column(db.String(40), nullable=False)
    mobile = db.Column(db.String(20), nullable=False)
    symptoms = db.Column(db.String(100), nullable=False)

    admit_date = db.Column(db.DateTime, nullable=False)
    release_date = db.Column(db.DateTime, nullable=False)
    day_spent = db.Column(db.Integer, nullable=False)

    daily_room_rate = db.Column(db.Numeric(12, 2), nullable=False)
    room_charge = db.Column(db.Numeric(12, 2), nullable=False)  # whole stay
    medicine_cost = db.Column(db.Numeric(12, 2), nullable=False)
    doctor_fee = db.Column(db.Numeric(12, 2), nullable=False)
    other_charge = db.Column(db.Numeric(12, 2), nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    patient = db.relationship('Patient', back_populates='discharges', foreign_keys=[patient_id])
    doctor = db.relationship('Doctor')

    def to_dict(self):
        return {
            'id': self.id,
            'patient_id': self.patient_id,
            'doctor_id': self.doctor_id,
            'patient_name': self.patient_name,
            'doctor_name': self.doctor_name,
            'address': self.address,
            'mobile': self.mobile,
            'symptoms': self.symptoms,
            'admit_date': iso(self.admit_date),
            'release_date': iso(self.release_date),
            'day_spent': self.day_spent,
            'daily_room_rate': money(self.daily_room_rate),
            'room_charge': money(self.room_charge),
            'medicine_cost': money(self.medicine_cost),
            'doctor_fee': money(self.doctor_fee),
            'other_charge': money(self.other_charge),
            'total': money(self.total),
            'created_by': self.created_by,
            'created_at': iso(self.created_at),
        }

    def __repr__(self):
        return f"<DischargeDetail {self.id} - Patient: {self.patient_id} total={self.total}>"
