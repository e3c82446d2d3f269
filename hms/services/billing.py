"""
Billing Calculator
Pure money arithmetic for discharge bills and appointment invoices.
"""
import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List

from hms.errors import ValidationError

CENT = Decimal("0.01")
DEFAULT_TAX_RATE = Decimal("0.10")
SECONDS_PER_DAY = 86400


def money2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_amount(value: Any, field: str = "amount") -> Decimal:
    """
    Parse a non-negative monetary amount.

    Accepts ints, floats, Decimals and numeric strings; booleans, NaN,
    infinities, negative values and anything else raise ValidationError.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{field} must not be negative")
    return amount


def days_between(start, end) -> int:
    """Whole days from start to end, rounded up, never less than 1."""
    if start is None or end is None:
        raise ValidationError("Both admit and release dates are required")
    if end < start:
        raise ValidationError("Release date cannot be before admit date")
    seconds = (end - start).total_seconds()
    return max(1, math.ceil(seconds / SECONDS_PER_DAY))


def compute_discharge_total(daily_room_rate, days_spent, medicine_cost, doctor_fee, other_charge) -> Dict[str, Decimal]:
    rate = to_amount(daily_room_rate, "roomCharge")
    days = to_amount(days_spent, "daySpent")
    if days != days.to_integral_value():
        raise ValidationError("daySpent must be a whole number")
    medicine = to_amount(medicine_cost, "medicineCost")
    fee = to_amount(doctor_fee, "doctorFee")
    other = to_amount(other_charge, "otherCharge")

    room_charge = money2(rate * days)
    total = money2(room_charge + medicine + fee + other)
    return {"room_charge": room_charge, "total": total}


def normalize_items(items: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Validate invoice lines into ``{description, amount: Decimal}`` dicts."""
    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        raise ValidationError("charges must be a list")

    lines = []
    for idx, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"Item {idx}: must be an object with description and amount")
        description = item.get("description")
        if not isinstance(description, str) or not description.strip():
            raise ValidationError(f"Item {idx}: description is required")
        amount = to_amount(item.get("amount"), f"Item {idx}: amount")
        lines.append({"description": description.strip(), "amount": amount})
    return lines


def compute_invoice_totals(items, tax_rate=DEFAULT_TAX_RATE) -> Dict[str, Decimal]:
    """
    Totals for a full item list. Always called with every line of the
    invoice, never with a delta.
    """
    lines = normalize_items(items)
    subtotal = money2(sum((line["amount"] for line in lines), Decimal("0")))
    tax = money2(subtotal * Decimal(str(tax_rate)))
    return {"subtotal": subtotal, "tax": tax, "total": subtotal + tax}
