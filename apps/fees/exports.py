# fees/exports.py

"""
File exports for fee reports:
- Outstanding fees CSV (one row per unpaid fee)
- Outstanding fees Excel workbook (one row per student)
- Statement of account PDF for a single student
"""

from django.http import HttpResponse
from io import BytesIO
from decimal import Decimal
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from fees.balances import aggregate_balances, net_owing
from fees.stats import get_outstanding_fees, get_outstanding_report
from core.utils import format_money, generate_csv_response, get_center_today

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')

OUTSTANDING_CSV_HEADERS = [
    'Student Name', 'Student Number', 'Phone', 'Fee Type', 'Month',
    'Amount Due', 'Amount Paid', 'Balance',
]

OUTSTANDING_EXCEL_HEADERS = [
    'Student Name', 'Student Number', 'Phone', 'Parent', 'Fees',
    'Total Due', 'Total Paid', 'Outstanding', 'Credit', 'Amount Owing',
]


# =============================================================================
# CSV
# =============================================================================

def outstanding_fees_csv(center, year=None, month=None, fee_type=None):
    """CSV download of every fee with a balance still owing."""
    rows = []
    total = ZERO

    for fee in get_outstanding_fees(center, year, month, fee_type):
        if fee.balance <= ZERO:
            continue
        total += fee.balance
        student = fee.student
        rows.append([
            student.full_name,
            student.student_number or '',
            student.contact_phone,
            fee.get_fee_type_display(),
            fee.month_label,
            format_money(fee.amount_due, center),
            format_money(fee.amount_paid, center),
            format_money(fee.balance, center),
        ])

    rows.append([])
    rows.append(['Total Outstanding', '', '', '', '', '', '', format_money(total, center)])

    filename = f"outstanding_fees_{get_center_today(center):%Y%m%d}.csv"
    logger.info(f"Exported {len(rows) - 2} outstanding fee row(s) for {center.name}")
    return generate_csv_response(rows, filename, OUTSTANDING_CSV_HEADERS)


# =============================================================================
# EXCEL
# =============================================================================

def outstanding_fees_excel(center, year=None, month=None, fee_type=None, search=None):
    """Excel workbook of students who owe money, largest balance first."""
    report = get_outstanding_report(center, year, month, fee_type, search)

    wb = Workbook()
    ws = wb.active
    ws.title = "Outstanding Fees"

    ws.append(OUTSTANDING_EXCEL_HEADERS)
    for cell in ws[1]:
        cell.fill = PatternFill(start_color='4472C4', end_color='4472C4', fill_type='solid')
        cell.font = Font(bold=True, color='FFFFFF')
        cell.alignment = Alignment(horizontal='center')

    for row in report['rows']:
        ws.append([
            row['full_name'],
            row['student_number'],
            row['phone'],
            row['parent_name'],
            row['fee_count'],
            float(row['total_due']),
            float(row['total_paid']),
            float(row['outstanding']),
            float(row['credit_balance']),
            float(row['net_owing']),
        ])

    ws.append([])
    ws.append([
        'Total', '', '', '', '', '', '',
        float(report['total_outstanding']), '', float(report['total_net_owing']),
    ])
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)

    for column in 'FGHIJ':
        for cell in ws[column][1:]:
            cell.number_format = '#,##0.00'

    ws.column_dimensions['A'].width = 30
    ws.column_dimensions['D'].width = 25

    response = HttpResponse(
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
    response['Content-Disposition'] = (
        f'attachment; filename="outstanding_fees_{get_center_today(center):%Y%m%d}.xlsx"'
    )

    wb.save(response)
    return response


# =============================================================================
# STATEMENT OF ACCOUNT
# =============================================================================

def build_statement_pdf(student, fees=None):
    """
    Statement of account for one student.

    Lists every fee, the totals, the student's credit and the amount owing
    after credit, with the center's banking details for payment.

    Returns:
        bytes: PDF document
    """
    from fees.models import StudentFee

    center = student.center

    if fees is None:
        fees = list(
            StudentFee.objects.unscoped().filter(student=student).order_by('fee_month', 'fee_type')
        )

    balance = aggregate_balances(fees, {student.pk: student.credit_balance}).get(student.pk)
    total_due = balance.total_due if balance else ZERO
    total_paid = balance.total_paid if balance else ZERO
    outstanding = balance.outstanding if balance else ZERO
    owing = net_owing(balance) if balance else ZERO

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=f"Statement - {student.full_name}")
    elements = []

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'StatementTitle',
        parent=styles['Heading1'],
        fontSize=20,
        textColor=colors.HexColor('#1a1a1a'),
        spaceAfter=12,
        alignment=TA_CENTER
    )

    elements.append(Paragraph(center.name, title_style))
    contact = ' | '.join(value for value in [center.address, center.phone, center.email] if value)
    if contact:
        elements.append(Paragraph(contact, styles['Normal']))
    elements.append(Spacer(1, 12))

    elements.append(Paragraph('Statement of Account', styles['Heading2']))
    elements.append(Paragraph(f"Student: {student.full_name}", styles['Normal']))
    if student.student_number:
        elements.append(Paragraph(f"Student Number: {student.student_number}", styles['Normal']))
    if student.parent_name:
        elements.append(Paragraph(f"Parent/Guardian: {student.parent_name}", styles['Normal']))
    elements.append(Paragraph(f"Date: {get_center_today(center):%d %B %Y}", styles['Normal']))
    elements.append(Spacer(1, 12))

    data = [['Month', 'Fee Type', 'Amount Due', 'Amount Paid', 'Balance', 'Status']]
    for fee in fees:
        data.append([
            fee.month_label,
            fee.get_fee_type_display(),
            format_money(fee.amount_due, center),
            format_money(fee.amount_paid, center),
            format_money(fee.balance, center),
            fee.get_status_display(),
        ])
    if len(data) == 1:
        data.append(['No fees recorded', '', '', '', '', ''])

    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#4472C4')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('ALIGN', (2, 0), (4, -1), 'RIGHT'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
    ]))
    elements.append(table)
    elements.append(Spacer(1, 16))

    totals = [
        ['Total Due', format_money(total_due, center)],
        ['Total Paid', format_money(total_paid, center)],
        ['Outstanding', format_money(outstanding, center)],
    ]
    if student.credit_balance > 0:
        totals.append(['Credit Available', format_money(student.credit_balance, center)])
    totals.append(['Amount Owing', format_money(owing, center)])

    totals_table = Table(totals, colWidths=[120, 100], hAlign='RIGHT')
    totals_table.setStyle(TableStyle([
        ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('LINEABOVE', (0, -1), (-1, -1), 1, colors.black),
    ]))
    elements.append(totals_table)

    if center.bank_name or center.account_number:
        elements.append(Spacer(1, 20))
        elements.append(Paragraph('Banking Details', styles['Heading3']))
        for label, value in [
            ('Bank', center.bank_name),
            ('Account Number', center.account_number),
            ('Branch Code', center.branch_code),
            ('Reference', student.payment_reference),
        ]:
            if value:
                elements.append(Paragraph(f"{label}: {value}", styles['Normal']))

    doc.build(elements)
    return buffer.getvalue()


def statement_pdf_response(student):
    pdf = build_statement_pdf(student)

    slug = (student.student_number or student.full_name).replace(' ', '_')
    response = HttpResponse(pdf, content_type='application/pdf')
    response['Content-Disposition'] = (
        f'attachment; filename="statement_{slug}_{get_center_today(student.center):%Y%m%d}.pdf"'
    )
    return response
