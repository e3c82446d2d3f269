from hms.extensions import db
from .base import TimestampMixin, iso

DEPARTMENTS = (
    'Cardiologist',
    'Dermatologists',
    'Emergency Medicine Specialists',
    'Allergists/Immunologists',
    'Anesthesiologists',
    'Colon and Rectal Surgeons',
)


class Doctor(db.Model, TimestampMixin):
    __tablename__ = 'doctors'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=False, index=True)

    address = db.Column(db.String(40), nullable=False, default='')
    mobile = db.Column(db.String(20), nullable=False, default='')
    department = db.Column(db.String(64), nullable=False, default=DEPARTMENTS[0])

    # Approval by an admin (self-registered doctors start unapproved)
    approved = db.Column(db.Boolean, default=False, nullable=False, index=True)

    user = db.relationship('User', back_populates='doctor')
    patients = db.relationship('Patient', back_populates='assigned_doctor',
                               foreign_keys='Patient.assigned_doctor_id', lazy='dynamic')

    @property
    def name(self):
        return self.user.full_name if self.user else ''

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
            'department': self.department,
            'approved': self.approved,
            'created_at': iso(self.created_at),
        }

    def __repr__(self):
        return f"<Doctor {self.id} {self.name} ({self.department})>"
