# tests/test_exports.py

from datetime import date
from decimal import Decimal
from io import BytesIO

import pytest
from openpyxl import load_workbook

from fees.exports import (
    OUTSTANDING_CSV_HEADERS, build_statement_pdf,
    outstanding_fees_csv, outstanding_fees_excel, statement_pdf_response,
)

pytestmark = pytest.mark.django_db

D = Decimal


@pytest.fixture
def owing(student, make_fee):
    make_fee(student, date(2025, 1, 1), '800.00', amount_paid='300.00')
    make_fee(student, date(2025, 2, 1), '800.00')
    make_fee(student, date(2025, 3, 1), '800.00', amount_paid='800.00')
    return student


def test_outstanding_csv_has_one_row_per_unpaid_fee(center, owing):
    response = outstanding_fees_csv(center)
    lines = response.content.decode().splitlines()

    assert response['Content-Type'] == 'text/csv; charset=utf-8'
    assert lines[0] == ','.join(f'"{header}"' for header in OUTSTANDING_CSV_HEADERS)
    assert lines[1] == (
        '"Thabo Nkosi","BM-001","082 111 2222","Tuition","January 2025",'
        '"R 800.00","R 300.00","R 500.00"'
    )
    assert lines[2].startswith('"Thabo Nkosi","BM-001","082 111 2222","Tuition","February 2025"')
    assert lines[-1].endswith('"R 1,300.00"')
    assert not any('March 2025' in line for line in lines)


def test_outstanding_excel(center, owing):
    response = outstanding_fees_excel(center)

    workbook = load_workbook(BytesIO(response.content))
    sheet = workbook['Outstanding Fees']

    assert sheet['A1'].value == 'Student Name'
    assert sheet['A2'].value == 'Thabo Nkosi'
    assert sheet['E2'].value == 2
    assert sheet['H2'].value == 1300.0
    assert sheet['J2'].value == 1300.0
    assert response['Content-Disposition'].startswith('attachment; filename="outstanding_fees_')


def test_statement_pdf(owing):
    owing.credit_balance = D('100.00')
    owing.save()

    pdf = build_statement_pdf(owing)

    assert pdf.startswith(b'%PDF')


def test_statement_for_student_without_fees(center, make_student):
    newcomer = make_student(center, 'New Student')

    response = statement_pdf_response(newcomer)

    assert response['Content-Type'] == 'application/pdf'
    assert 'statement_New_Student_' in response['Content-Disposition']
    assert response.content.startswith(b'%PDF')
