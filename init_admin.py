#!/usr/bin/env python3
"""
Create the tables and seed an admin, doctors, patients and appointments.
Run with: python init_admin.py
"""
from datetime import timedelta

from hms import create_app
from hms.extensions import db
from hms.models import Appointment, Doctor, Patient, User
from hms.models.base import utcnow

DEFAULT_ADMIN = {
    'username': 'admin',
    'email': 'admin@hospital.com',
    'password': 'admin123',
    'first_name': 'Super',
    'last_name': 'Admin',
}

DEFAULT_DOCTORS = [
    {'username': 'drsmith', 'email': 'smith@hospital.com', 'password': 'doctor123',
     'first_name': 'John', 'last_name': 'Smith', 'department': 'Cardiologist',
     'address': '12 Heart Lane', 'mobile': '5550001001'},
    {'username': 'drjones', 'email': 'jones@hospital.com', 'password': 'doctor123',
     'first_name': 'Sarah', 'last_name': 'Jones', 'department': 'Dermatologists',
     'address': '4 Skin Street', 'mobile': '5550001002'},
    {'username': 'drpatel', 'email': 'patel@hospital.com', 'password': 'doctor123',
     'first_name': 'Ravi', 'last_name': 'Patel', 'department': 'Emergency Medicine Specialists',
     'address': '9 Rapid Road', 'mobile': '5550001003'},
]

DEFAULT_PATIENTS = [
    {'username': 'alice', 'email': 'alice@example.com', 'password': 'patient123',
     'first_name': 'Alice', 'last_name': 'Brown', 'symptoms': 'Chest pain',
     'address': '1 Elm Street', 'mobile': '5550002001', 'doctor': 'drsmith', 'days_ago': 5},
    {'username': 'bob', 'email': 'bob@example.com', 'password': 'patient123',
     'first_name': 'Bob', 'last_name': 'Green', 'symptoms': 'Skin rash',
     'address': '2 Oak Avenue', 'mobile': '5550002002', 'doctor': 'drjones', 'days_ago': 2},
    {'username': 'carol', 'email': 'carol@example.com', 'password': 'patient123',
     'first_name': 'Carol', 'last_name': 'White', 'symptoms': 'Fractured wrist',
     'address': '3 Pine Court', 'mobile': '5550002003', 'doctor': 'drpatel', 'days_ago': 1},
]


def _user(data, role):
    user = User(
        username=data['username'],
        email=data['email'],
        first_name=data['first_name'],
        last_name=data['last_name'],
        role=role,
        is_active=True
    )
    user.set_password(data['password'])
    return user


def seed():
    """Create tables and default accounts; existing usernames are skipped"""
    app = create_app()

    with app.app_context():
        db.create_all()

        print("=" * 60)
        print("Initializing Hospital Data")
        print("=" * 60)
        print()

        created_count = 0

        if not User.query.filter_by(username=DEFAULT_ADMIN['username']).first():
            db.session.add(_user(DEFAULT_ADMIN, 'admin'))
            created_count += 1
            print(f"  ✓ Created admin: {DEFAULT_ADMIN['username']} - Password: {DEFAULT_ADMIN['password']}")
        else:
            print(f"  - Admin '{DEFAULT_ADMIN['username']}' already exists (skipping)")

        doctors = {}
        for data in DEFAULT_DOCTORS:
            existing = User.query.filter_by(username=data['username']).first()
            if existing:
                print(f"  - Doctor '{data['username']}' already exists (skipping)")
                doctors[data['username']] = existing.doctor
                continue
            user = _user(data, 'doctor')
            user.doctor = Doctor(address=data['address'], mobile=data['mobile'],
                                 department=data['department'], approved=True)
            db.session.add(user)
            doctors[data['username']] = user.doctor
            created_count += 1
            print(f"  ✓ Created doctor: {data['username']} ({data['department']}) - Password: {data['password']}")

        db.session.flush()

        for data in DEFAULT_PATIENTS:
            if User.query.filter_by(username=data['username']).first():
                print(f"  - Patient '{data['username']}' already exists (skipping)")
                continue
            doctor = doctors.get(data['doctor'])
            user = _user(data, 'patient')
            user.patient = Patient(
                address=data['address'],
                mobile=data['mobile'],
                symptoms=data['symptoms'],
                assigned_doctor_id=doctor.id if doctor else None,
                admit_date=utcnow() - timedelta(days=data['days_ago']),
                approved=True
            )
            db.session.add(user)
            db.session.flush()
            if doctor:
                # Left pending so approving it exercises invoice creation
                db.session.add(Appointment(
                    patient_id=user.patient.id,
                    doctor_id=doctor.id,
                    patient_name=user.full_name,
                    doctor_name=doctor.name,
                    description=f"Follow-up: {data['symptoms']}",
                    approved=False
                ))
            created_count += 1
            print(f"  ✓ Created patient: {data['username']} - Password: {data['password']}")

        db.session.commit()

        print()
        print("=" * 60)
        print(f"✅ Created {created_count} new account(s)")
        print("=" * 60)
        print("\n⚠️  IMPORTANT: Change passwords after first login!")
        print("\nRoles:")
        print("  - admin")
        print("  - doctor")
        print("  - patient")


if __name__ == '__main__':
    seed()
