"""
PDF Generation Utilities using ReportLab
"""
import io
import logging
from decimal import Decimal

from flask import current_app
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

logger = logging.getLogger(__name__)

BRAND_COLOR = colors.HexColor('#0066cc')


def format_currency(amount, symbol='$'):
    """Fixed two-decimal currency, e.g. $1,250.00"""
    value = Decimal(str(amount or 0)).quantize(Decimal('0.01'))
    return f"{symbol}{value:,.2f}"


def _date(value):
    return value.strftime('%d-%m-%Y') if value else 'N/A'


def discharge_bill_sections(detail, symbol='$'):
    """
    Text content of a discharge bill, in print order.

    Returns a list of (section title, [(label, value), ...]). The PDF and
    any plain-text rendering are built from this, so both show the same
    figures as the stored DischargeDetail.
    """
    return [
        ('Patient Information', [
            ('Patient Name:', detail.patient_name),
            ('Address:', detail.address),
            ('Mobile:', detail.mobile),
            ('Symptoms:', detail.symptoms),
        ]),
        ('Doctor', [
            ('Assigned Doctor:', detail.doctor_name),
        ]),
        ('Stay', [
            ('Admit Date:', _date(detail.admit_date)),
            ('Release Date:', _date(detail.release_date)),
            ('Days Spent:', str(detail.day_spent)),
        ]),
        ('Bill Details', [
            (f'Room Charge ({detail.day_spent} days @ {format_currency(detail.daily_room_rate, symbol)}):',
             format_currency(detail.room_charge, symbol)),
            ('Medicine Cost:', format_currency(detail.medicine_cost, symbol)),
            ('Doctor Fee:', format_currency(detail.doctor_fee, symbol)),
            ('Other Charges:', format_currency(detail.other_charge, symbol)),
            ('TOTAL:', format_currency(detail.total, symbol)),
        ]),
    ]


def render_discharge_bill_pdf(detail, hospital_name=None, symbol=None):
    """
    Build the discharge bill PDF in memory and return its bytes.

    Output is byte-for-byte reproducible for the same DischargeDetail.
    """
    if hospital_name is None:
        hospital_name = current_app.config.get('HOSPITAL_NAME', 'Hospital')
    if symbol is None:
        symbol = current_app.config.get('CURRENCY_SYMBOL', '$')

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=A4,
        leftMargin=2*cm, rightMargin=2*cm, topMargin=2*cm, bottomMargin=2*cm,
        title=f"Hospital Bill - {detail.patient_name}",
        author=hospital_name,
        invariant=1,
    )
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        name='BillTitle',
        parent=styles['Heading1'],
        fontSize=20,
        textColor=BRAND_COLOR,
        spaceAfter=6,
        alignment=1,
    )
    heading_style = ParagraphStyle(
        name='SectionHeading',
        parent=styles['Heading2'],
        fontSize=13,
        textColor=BRAND_COLOR,
        spaceAfter=6,
    )
    normal = styles['Normal']
    story = []

    # Header
    story.append(Paragraph("HOSPITAL BILL", title_style))
    story.append(Paragraph(hospital_name, ParagraphStyle(name='Hospital', parent=normal, alignment=1)))
    story.append(Paragraph(f"Bill No: DIS-{detail.id:06d}", ParagraphStyle(name='BillNo', parent=normal, alignment=1)))
    story.append(Spacer(1, 16))

    for title, rows in discharge_bill_sections(detail, symbol):
        story.append(Paragraph(title, heading_style))
        is_bill = title == 'Bill Details'
        table = Table([list(row) for row in rows], colWidths=[10*cm, 6*cm] if is_bill else [5*cm, 11*cm])
        style = [
            ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#f5f5f5')),
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ]
        if is_bill:
            style += [
                ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
                ('BACKGROUND', (0, -1), (-1, -1), BRAND_COLOR),
                ('TEXTCOLOR', (0, -1), (-1, -1), colors.white),
                ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
                ('FONTSIZE', (0, -1), (-1, -1), 12),
            ]
        table.setStyle(TableStyle(style))
        story.append(table)
        story.append(Spacer(1, 14))

    story.append(Spacer(1, 20))
    story.append(Paragraph(
        "<i>This is a computer-generated bill and does not require a signature.</i>",
        ParagraphStyle(name='Footer', parent=normal, fontSize=9, textColor=colors.grey, alignment=1)
    ))
    doc.build(story)

    pdf = buffer.getvalue()
    logger.info("Discharge bill PDF rendered for discharge %s (%d bytes)", detail.id, len(pdf))
    return pdf
