"""
Shared fixtures for the hospital backend tests.

Every test gets a fresh in-memory database. Accounts are created directly
through the models; HTTP tests authenticate with a token minted for them.
"""
from datetime import datetime

import pytest
from flask_jwt_extended import create_access_token

from hms import create_app
from hms.extensions import db
from hms.models import Appointment, Doctor, Patient, User

ADMIT_DATE = datetime(2024, 3, 1, 9, 0, 0)


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(username, role, first_name='Test', last_name=None, **profile):
    user = User(
        username=username,
        email=f'{username}@hospital.test',
        first_name=first_name,
        last_name=last_name or username.capitalize(),
        role=role,
        is_active=True,
    )
    user.set_password('secret123')
    if role == 'doctor':
        user.doctor = Doctor(
            address=profile.get('address', '1 Clinic Road'),
            mobile=profile.get('mobile', '5550000000'),
            department=profile.get('department', 'Cardiologist'),
            approved=profile.get('approved', True),
        )
    elif role == 'patient':
        user.patient = Patient(
            address=profile.get('address', '7 Home Street'),
            mobile=profile.get('mobile', '5551111111'),
            symptoms=profile.get('symptoms', 'Fever'),
            assigned_doctor_id=profile.get('assigned_doctor_id'),
            admit_date=profile.get('admit_date', ADMIT_DATE),
            approved=profile.get('approved', True),
        )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def admin(app):
    return make_user('admin', 'admin', first_name='Ada')


@pytest.fixture
def doctor(app):
    return make_user('drhouse', 'doctor', first_name='Gregory', last_name='House')


@pytest.fixture
def other_doctor(app):
    return make_user('drwho', 'doctor', first_name='John', last_name='Smith', department='Dermatologists')


@pytest.fixture
def patient(app, doctor):
    return make_user('jane', 'patient', first_name='Jane', last_name='Doe',
                     assigned_doctor_id=doctor.doctor.id)


@pytest.fixture
def other_patient(app, other_doctor):
    return make_user('rick', 'patient', first_name='Rick', last_name='Roe',
                     assigned_doctor_id=other_doctor.doctor.id)


@pytest.fixture
def appointment(app, patient, doctor):
    appt = Appointment(
        patient_id=patient.patient.id,
        doctor_id=doctor.doctor.id,
        patient_name=patient.full_name,
        doctor_name=doctor.full_name,
        description='Chest pain follow-up',
        approved=False,
    )
    db.session.add(appt)
    db.session.commit()
    return appt


def auth_headers(user):
    token = create_access_token(identity=str(user.id), additional_claims={'role': user.role})
    return {'Authorization': f'Bearer {token}'}


def fresh(model, pk):
    """Reload a row, bypassing anything cached in the session."""
    db.session.expire_all()
    return db.session.get(model, pk)
