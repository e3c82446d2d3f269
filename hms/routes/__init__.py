from .health import health_bp
from .auth import auth_bp
from .admin import admin_bp
from .doctor import doctor_bp
from .patient import patient_bp
from .appointment import appointment_bp
from .discharge import discharge_bp
from .invoices import invoice_bp
from .medical_records import medical_record_bp
from .prescriptions import prescription_bp
from .messages import message_bp

__all__ = [
    'health_bp', 'auth_bp', 'admin_bp', 'doctor_bp', 'patient_bp', 'appointment_bp',
    'discharge_bp', 'invoice_bp', 'medical_record_bp', 'prescription_bp', 'message_bp',
]
