from .billing import compute_discharge_total, compute_invoice_totals, days_between

from .discharge_service import discharge_patient, preview_discharge, get_latest_discharge, readmit_patient

from .invoice_service import (
    auto_create_invoice_on_approval,
    generate_invoice,
    add_charges,
    set_invoice_status,
    list_patient_invoices,
)

from .appointment_service import create_appointment, update_appointment, approve_appointment

__all__ = [
    # Billing Calculator
    "compute_discharge_total",
    "compute_invoice_totals",
    "days_between",
    # Discharge
    "discharge_patient",
    "preview_discharge",
    "get_latest_discharge",
    "readmit_patient",
    # Invoices
    "auto_create_invoice_on_approval",
    "generate_invoice",
    "add_charges",
    "set_invoice_status",
    "list_patient_invoices",
    # Appointments
    "create_appointment",
    "update_appointment",
    "approve_appointment",
]
