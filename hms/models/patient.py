from hms.extensions import db
from .base import TimestampMixin, iso, utcnow


class Patient(db.Model, TimestampMixin):
    __tablename__ = 'patients'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=False, index=True)

    address = db.Column(db.String(40), nullable=False, default='')
    mobile = db.Column(db.String(20), nullable=False, default='')
    symptoms = db.Column(db.String(100), nullable=False, default='')

    assigned_doctor_id = db.Column(db.Integer, db.ForeignKey('doctors.id'), nullable=True, index=True)
    admit_date = db.Column(db.DateTime, default=utcnow, nullable=False)
    approved = db.Column(db.Boolean, default=False, nullable=False, index=True)

    # Discharge for the current admission; cleared on re-admission
    current_discharge_id = db.Column(
        db.Integer,
        db.ForeignKey('discharge_details.id', use_alter=True, name='fk_patients_current_discharge'),
        nullable=True,
    )

    user = db.relationship('User', back_populates='patient')
    assigned_doctor = db.relationship('Doctor', back_populates='patients', foreign_keys=[assigned_doctor_id])
    current_discharge = db.relationship('DischargeDetail', foreign_keys=[current_discharge_id], post_update=True)
    discharges = db.relationship('DischargeDetail', back_populates='patient',
                                 foreign_keys='DischargeDetail.patient_id',
                                 order_by='DischargeDetail.created_at.desc()', lazy='dynamic')
    appointments = db.relationship('Appointment', back_populates='patient', lazy='dynamic')

    @property
    def name(self):
        return self.user.full_name if self.user else ''

    @property
    def is_discharged(self):
        return self.current_discharge_id is not None

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.name,
            'first_name': self.user.first_name if self.user else None,
            'last_name': self.user.last_name if self.user else None,
            'email': self.user.email if self.user else None,
            'address': self.address,
            'mobile': self.mobile,
            'symptoms': self.symptoms,
            'assigned_doctor_id': self.assigned_doctor_id,
            'assigned_doctor_name': self.assigned_doctor.name if self.assigned_doctor else None,
            'admit_date': iso(self.admit_date),
            'approved': self.approved,
            'current_discharge_id': self.current_discharge_id,
            'is_discharged': self.is_discharged,
            'created_at': iso(self.created_at),
        }

    def __repr__(self):
        return f"<Patient {self.id} {self.name}>"
