"""
Invoice Service
Creation, charge addition and status changes for appointment invoices.
"""
import logging
from decimal import Decimal
from typing import Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from hms.extensions import db
from hms.errors import ConflictError, NotFoundError, ValidationError
from hms.models import Appointment, Invoice, Patient, INVOICE_STATUSES
from hms.services.billing import DEFAULT_TAX_RATE, compute_invoice_totals, normalize_items, to_amount
from hms.utils.access import authorize, scope_for
from hms.utils.audit import log_audit
from hms.utils.payload import parse_datetime

logger = logging.getLogger(__name__)

APPOINTMENT_FEE_LABEL = 'Appointment Fee'


def _tax_rate() -> Decimal:
    return Decimal(str(current_app.config.get('INVOICE_TAX_RATE', DEFAULT_TAX_RATE)))


def _appointment_fee() -> Decimal:
    return to_amount(current_app.config.get('APPOINTMENT_FEE', 100), 'APPOINTMENT_FEE')


def generate_invoice_number() -> str:
    """
    Next sequential number, e.g. INV-000001.

    Derived from the row count at insert time; two concurrent inserts can
    draw the same number, which the unique index turns into a ConflictError.
    """
    prefix = current_app.config.get('INVOICE_NUMBER_PREFIX', 'INV-')
    count = db.session.query(func.count(Invoice.id)).scalar() or 0
    return f"{prefix}{count + 1:06d}"


def apply_items(invoice: Invoice, lines) -> Invoice:
    """Replace the invoice's lines and recompute every total from scratch."""
    lines = normalize_items(lines)
    totals = compute_invoice_totals(lines, _tax_rate())
    invoice.items = lines
    invoice.subtotal = totals['subtotal']
    invoice.tax = totals['tax']
    invoice.total = totals['total']
    return invoice


def get_invoice(invoice_id) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFoundError('Invoice not found')
    return invoice


def _new_invoice(appointment: Appointment, lines, additional_charges=None) -> Invoice:
    fee = _appointment_fee()
    invoice = Invoice(
        invoice_number=generate_invoice_number(),
        appointment_id=appointment.id,
        patient_id=appointment.patient_id,
        doctor_id=appointment.doctor_id,
        appointment_fee=fee,
        status='pending',
    )
    apply_items(invoice, [{'description': APPOINTMENT_FEE_LABEL, 'amount': fee}] + list(lines))
    invoice.additional_charges = additional_charges or []
    return invoice


def auto_create_invoice_on_approval(appointment: Appointment, actor) -> Optional[Invoice]:
    """
    Bill an appointment that an admin has just approved.

    Returns None without raising when the actor is not an admin or the
    appointment already has an invoice.
    """
    if actor is None or actor.role != 'admin':
        return None

    if Invoice.query.filter_by(appointment_id=appointment.id).first():
        logger.info("Invoice already exists for appointment %s, skipping", appointment.id)
        return None

    invoice = _new_invoice(appointment, [])
    db.session.add(invoice)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost the race against a concurrent approval; the unique appointment_id keeps one invoice
        db.session.rollback()
        logger.warning("Concurrent invoice creation for appointment %s, skipping", appointment.id)
        return None

    log_audit('invoice', 'create', user_id=actor.id, entity_id=invoice.id,
              details={'appointment_id': appointment.id, 'trigger': 'approval', 'total': invoice.total})
    logger.info("Invoice %s created for appointment %s on approval", invoice.invoice_number, appointment.id)
    return invoice


def generate_invoice(appointment_id, additional_charges, actor) -> Invoice:
    """Create the invoice for an appointment, with optional extra lines."""
    scope_for(actor, 'generate_invoice')

    appointment = db.session.get(Appointment, appointment_id) if appointment_id is not None else None
    if not appointment:
        raise NotFoundError('Appointment not found')
    authorize(actor, 'generate_invoice', appointment)

    extra = normalize_items(additional_charges or [])

    if Invoice.query.filter_by(appointment_id=appointment.id).first():
        raise ConflictError('Invoice already exists for this appointment')

    invoice = _new_invoice(appointment, extra, additional_charges=extra)
    db.session.add(invoice)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('Invoice already exists for this appointment')

    log_audit('invoice', 'create', user_id=actor.id, entity_id=invoice.id,
              details={'appointment_id': appointment.id, 'total': invoice.total})
    logger.info("Invoice %s generated for appointment %s by user %s",
                invoice.invoice_number, appointment.id, actor.id)
    return invoice


def add_charges(invoice_id, new_items, actor) -> Invoice:
    """Append lines to an invoice and recompute its totals in full."""
    scope_for(actor, 'add_invoice_charge')

    lines = normalize_items(new_items)
    if not lines:
        raise ValidationError('charges must be a non-empty list')

    invoice = get_invoice(invoice_id)
    authorize(actor, 'add_invoice_charge', invoice)

    apply_items(invoice, invoice.items + lines)
    invoice.additional_charges = normalize_items(invoice.additional_charges) + lines
    db.session.commit()

    log_audit('invoice', 'add_charges', user_id=actor.id, entity_id=invoice.id,
              details={'charges': lines, 'total': invoice.total})
    return invoice


def set_invoice_status(invoice_id, status, payment_date, actor) -> Invoice:
    scope_for(actor, 'set_invoice_status')

    if status not in INVOICE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(INVOICE_STATUSES)}")
    paid_at = parse_datetime(payment_date, 'paymentDate')
    if status == 'paid' and paid_at is None:
        raise ValidationError('paymentDate is required when status is paid')

    invoice = get_invoice(invoice_id)
    invoice.status = status
    if status == 'paid':
        invoice.payment_date = paid_at
    db.session.commit()

    log_audit('invoice', 'status', user_id=actor.id, entity_id=invoice.id,
              details={'status': status, 'payment_date': paid_at})
    return invoice


def view_invoice(invoice_id, actor) -> Invoice:
    scope_for(actor, 'view_records')
    invoice = get_invoice(invoice_id)
    authorize(actor, 'view_records', invoice)
    return invoice


def list_patient_invoices(patient_id, actor):
    """Invoices of one patient, newest first."""
    scope_for(actor, 'view_records')
    patient = db.session.get(Patient, patient_id)
    if not patient:
        raise NotFoundError('Patient not found')
    authorize(actor, 'view_records', patient)
    return (Invoice.query.filter_by(patient_id=patient.id)
            .order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .all())
