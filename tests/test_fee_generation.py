# tests/test_fee_generation.py

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from fees.models import StudentFee
from fees.services import FeeGenerationService
from fees.utils import add_months, month_range, parse_month, tuition_due_date
from students.models import StudentSubject

pytestmark = pytest.mark.django_db


class TestMonthHelpers:

    def test_month_range_is_inclusive(self):
        assert month_range(date(2025, 11, 15), date(2026, 2, 1)) == [
            date(2025, 11, 1), date(2025, 12, 1), date(2026, 1, 1), date(2026, 2, 1),
        ]

    def test_month_range_end_before_start(self):
        assert month_range(date(2025, 5, 1), date(2025, 3, 1)) == []

    def test_add_months_across_years(self):
        assert add_months(date(2025, 12, 20), 1) == date(2026, 1, 1)
        assert add_months(date(2025, 1, 1), -1) == date(2024, 12, 1)

    @pytest.mark.parametrize('value, expected', [
        ('2025-03', date(2025, 3, 1)),
        ('2025-03-19', date(2025, 3, 1)),
        (date(2025, 3, 19), date(2025, 3, 1)),
    ])
    def test_parse_month(self, value, expected):
        assert parse_month(value) == expected

    @pytest.mark.parametrize('value', ['2025', 'March 2025', '2025-13'])
    def test_parse_month_rejects(self, value):
        with pytest.raises(ValueError):
            parse_month(value)

    def test_tuition_due_on_the_seventh(self):
        assert tuition_due_date(date(2025, 4, 1)) == date(2025, 4, 7)

    def test_plan_months(self):
        assert FeeGenerationService.plan_months('2025-01', '2025-03') == [
            date(2025, 1, 1), date(2025, 2, 1), date(2025, 3, 1),
        ]
        with pytest.raises(ValidationError):
            FeeGenerationService.plan_months('2025-03', '2025-01')


class TestGenerateMonthlyFees:

    def test_tuition_is_sum_of_active_subjects(self, student):
        created = FeeGenerationService.generate_monthly_fees(student, '2025-01', '2025-03')

        fees = StudentFee.objects.filter(student=student).order_by('fee_month')
        assert created == 3
        assert [fee.amount_due for fee in fees] == [Decimal('800.00')] * 3
        assert [fee.due_date for fee in fees] == [date(2025, 1, 7), date(2025, 2, 7), date(2025, 3, 7)]
        assert {fee.status for fee in fees} == {'unpaid'}
        assert {fee.center_id for fee in fees} == {student.center_id}

    def test_inactive_enrollments_are_not_billed(self, student, maths):
        StudentSubject.objects.filter(student=student, subject=maths).update(is_active=False)

        FeeGenerationService.generate_monthly_fees(student, '2025-01', '2025-01')

        assert StudentFee.objects.get(student=student).amount_due == Decimal('300.00')

    def test_existing_months_are_not_duplicated(self, student):
        FeeGenerationService.generate_monthly_fees(student, '2025-01', '2025-02')

        created = FeeGenerationService.generate_monthly_fees(student, '2025-01', '2025-04')

        assert created == 2
        assert StudentFee.objects.filter(student=student).count() == 4

    def test_registration_fee_does_not_block_tuition(self, student):
        FeeGenerationService.create_registration_fee(student, '250', month='2025-01')

        created = FeeGenerationService.generate_monthly_fees(student, '2025-01', '2025-01')

        assert created == 1
        assert StudentFee.objects.filter(student=student, fee_month=date(2025, 1, 1)).count() == 2

    def test_no_enrollments_creates_nothing(self, center, make_student):
        lonely = make_student(center, 'No Subjects')

        assert FeeGenerationService.generate_monthly_fees(lonely, '2025-01', '2025-06') == 0
        assert not StudentFee.objects.filter(student=lonely).exists()


class TestGenerateForAllStudents:

    def test_only_active_students(self, center, student, make_student, maths):
        make_student(center, 'Zanele Dube', subjects=[maths])
        make_student(center, 'Gone Student', subjects=[maths], status='withdrawn')

        result = FeeGenerationService.generate_for_all_students(center, '2025-02', '2025-02')

        assert result == {
            'success': True,
            'students_processed': 2,
            'total_fees_generated': 2,
            'errors': [],
        }

    def test_other_centers_untouched(self, center, other_center, student, make_student, make_subject):
        art = make_subject(other_center, 'Art', '200.00')
        outsider = make_student(other_center, 'Outsider', subjects=[art])

        FeeGenerationService.generate_for_all_students(center, '2025-02', '2025-02')

        assert not StudentFee.objects.filter(student=outsider).exists()


class TestRegistrationFee:

    def test_creates_registration_fee(self, student):
        fee = FeeGenerationService.create_registration_fee(student, Decimal('250.00'), month='2025-01')

        assert fee.fee_type == 'registration'
        assert fee.amount_due == Decimal('250.00')
        assert fee.status == 'unpaid'

    def test_rejects_non_positive_amount(self, student):
        with pytest.raises(ValidationError):
            FeeGenerationService.create_registration_fee(student, 0)

    def test_rejects_duplicate(self, student):
        FeeGenerationService.create_registration_fee(student, 250, month='2025-01')

        with pytest.raises(ValidationError):
            FeeGenerationService.create_registration_fee(student, 250, month='2025-01')
