import json

from hms.extensions import db
from .base import TimestampMixin, iso, money

INVOICE_STATUSES = ('pending', 'paid', 'overdue')


def _load_lines(raw):
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return []
    return data if isinstance(data, list) else []


class Invoice(db.Model, TimestampMixin):
    """
    Invoice for one appointment.

    Line items live in ``items_json`` as a list of ``{description, amount}``
    dicts (amounts serialised as strings so no precision is lost).
    ``subtotal``/``tax``/``total`` are always recomputed from the full item
    list by ``hms.services.billing.compute_invoice_totals``.
    """

    __tablename__ = 'invoices'

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(20), unique=True, nullable=False, index=True)

    # At most one invoice per appointment
    appointment_id = db.Column(db.Integer, db.ForeignKey('appointments.id'), unique=True, nullable=False)
    patient_id = db.Column(db.Integer, db.ForeignKey('patients.id'), nullable=False, index=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey('doctors.id'), nullable=False, index=True)

    items_json = db.Column(db.Text, nullable=False, default='[]')
    additional_charges_json = db.Column(db.Text, nullable=False, default='[]')

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    appointment_fee = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.String(20), nullable=False, default='pending', index=True)
    payment_date = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    appointment = db.relationship('Appointment', back_populates='invoice')
    patient = db.relationship('Patient')
    doctor = db.relationship('Doctor')

    @property
    def items(self):
        return _load_lines(self.items_json)

    @items.setter
    def items(self, lines):
        self.items_json = _dump_lines(lines)

    @property
    def additional_charges(self):
        return _load_lines(self.additional_charges_json)

    @additional_charges.setter
    def additional_charges(self, lines):
        self.additional_charges_json = _dump_lines(lines)

    def to_dict(self):
        return {
            'id': self.id,
            'invoice_number': self.invoice_number,
            'appointment_id': self.appointment_id,
            'patient_id': self.patient_id,
            'patient_name': self.patient.name if self.patient else None,
            'doctor_id': self.doctor_id,
            'doctor_name': self.doctor.name if self.doctor else None,
            'items': [_line_to_dict(line) for line in self.items],
            'additional_charges': [_line_to_dict(line) for line in self.additional_charges],
            'subtotal': money(self.subtotal),
            'tax': money(self.tax),
            'total': money(self.total),
            'appointment_fee': money(self.appointment_fee),
            'status': self.status,
            'payment_date': iso(self.payment_date),
            'notes': self.notes,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Invoice {self.invoice_number} - {self.status}>"


def _dump_lines(lines):
    return json.dumps(
        [{'description': line['description'], 'amount': str(line['amount'])} for line in lines],
        ensure_ascii=False,
    )


def _line_to_dict(line):
    return {'description': line.get('description'), 'amount': float(line.get('amount') or 0)}
