from flask_login import UserMixin

from hms.extensions import db, bcrypt
from .base import TimestampMixin, iso

ROLES = ('admin', 'doctor', 'patient')


class User(db.Model, TimestampMixin, UserMixin):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Personal Information
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)

    # Role - one of ROLES; doctors and patients also own a profile row
    role = db.Column(db.String(20), nullable=False, index=True)

    # Status
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Last login tracking
    last_login = db.Column(db.DateTime, nullable=True)
    login_count = db.Column(db.Integer, default=0)

    # Role profiles (deleting the user deletes the profile)
    doctor = db.relationship('Doctor', back_populates='user', uselist=False,
                             cascade='all, delete-orphan')
    patient = db.relationship('Patient', back_populates='user', uselist=False,
                              cascade='all, delete-orphan')

    def set_password(self, password):
        """Hash and set password"""
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        """Check if provided password matches hash"""
        return bcrypt.check_password_hash(self.password_hash, password)

    def has_any_role(self, *role_names):
        return self.role in role_names

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'role': self.role,
            'is_active': self.is_active,
            'last_login': iso(self.last_login),
            'login_count': self.login_count,
            'created_at': iso(self.created_at),
        }

    def __repr__(self):
        return f"<User {self.username} ({self.first_name} {self.last_name}) - {self.role}>"
