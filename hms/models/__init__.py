from .user import User, ROLES
from .doctor import Doctor, DEPARTMENTS
from .patient import Patient
from .appointment import Appointment
from .invoice import Invoice, INVOICE_STATUSES
from .discharge import DischargeDetail
from .medical_record import MedicalRecord
from .prescription import Prescription
from .message import Message, MESSAGE_TYPES
from .audit_log import AuditLog

__all__ = [
    "User", "ROLES", "Doctor", "DEPARTMENTS", "Patient", "Appointment",
    "Invoice", "INVOICE_STATUSES", "DischargeDetail", "MedicalRecord",
    "Prescription", "Message", "MESSAGE_TYPES", "AuditLog",
]
