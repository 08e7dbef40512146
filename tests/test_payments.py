# tests/test_payments.py

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from fees.models import Payment, PaymentAllocation, PaymentReversal, StudentFee
from fees.services import PaymentService
from students.models import Student
from utils.models import AuditLog

pytestmark = pytest.mark.django_db

D = Decimal


@pytest.fixture
def three_months(student, make_fee):
    return [
        make_fee(student, date(2025, 1, 1), '800.00'),
        make_fee(student, date(2025, 2, 1), '800.00'),
        make_fee(student, date(2025, 3, 1), '800.00'),
    ]


def reload(instance):
    instance.refresh_from_db()
    return instance


class TestRecordPayment:

    def test_allocates_oldest_month_first(self, student, three_months):
        result = PaymentService.record_payment(student, D('1000.00'), payment_date=date(2025, 3, 2))

        january, february, march = [reload(fee) for fee in three_months]
        assert (january.amount_paid, january.status) == (D('800.00'), 'paid')
        assert (february.amount_paid, february.status) == (D('200.00'), 'partial')
        assert (march.amount_paid, march.status) == (D('0.00'), 'unpaid')

        assert [a['amount_allocated'] for a in result['allocations']] == [D('800.00'), D('200.00')]
        assert result['remaining_credit'] == D('0.00')
        assert PaymentAllocation.objects.filter(payment=result['payment']).count() == 2

    def test_partially_paid_fee_only_takes_its_balance(self, student, make_fee):
        fee = make_fee(student, date(2025, 1, 1), '800.00', amount_paid='500.00')

        result = PaymentService.record_payment(student, D('300.00'))

        assert reload(fee).status == 'paid'
        assert result['allocations'][0]['amount_allocated'] == D('300.00')

    def test_excess_becomes_credit(self, student, make_fee):
        make_fee(student, date(2025, 1, 1), '800.00')

        result = PaymentService.record_payment(student, D('1000.00'))

        assert result['remaining_credit'] == D('200.00')
        assert reload(result['payment']).credit_added == D('200.00')
        assert reload(student).credit_balance == D('200.00')

    def test_payment_without_fees_is_all_credit(self, student):
        result = PaymentService.record_payment(student, D('150.00'))

        assert result['allocations'] == []
        assert reload(student).credit_balance == D('150.00')

    @pytest.mark.parametrize('amount', [D('0'), D('-5'), 'abc'])
    def test_rejects_non_positive_amount(self, student, amount):
        with pytest.raises(ValidationError):
            PaymentService.record_payment(student, amount)

        assert not Payment.objects.exists()

    def test_payment_numbers_are_sequential_per_year(self, student):
        first = PaymentService.record_payment(student, D('10'), payment_date=date(2025, 5, 1))['payment']
        second = PaymentService.record_payment(student, D('10'), payment_date=date(2025, 6, 1))['payment']
        next_year = PaymentService.record_payment(student, D('10'), payment_date=date(2026, 1, 5))['payment']

        assert first.payment_number == 'PMT-2025-0001'
        assert second.payment_number == 'PMT-2025-0002'
        assert next_year.payment_number == 'PMT-2026-0001'

    def test_paid_registration_fee_marks_student(self, student, make_fee):
        make_fee(student, date(2025, 1, 1), '250.00', fee_type='registration')

        PaymentService.record_payment(student, D('250.00'))

        student = reload(student)
        assert student.registration_fee_paid is True
        assert student.registration_fee_paid_date is not None

    def test_partly_paid_registration_fee_does_not_mark_student(self, student, make_fee):
        make_fee(student, date(2025, 1, 1), '250.00', fee_type='registration')

        PaymentService.record_payment(student, D('100.00'))

        assert reload(student).registration_fee_paid is False


class TestReversePayment:

    def test_restores_fees_and_records_reversal(self, student, three_months, user):
        payment = PaymentService.record_payment(student, D('1000.00'))['payment']

        reversal = PaymentService.reverse_payment(payment, 'Bounced EFT', reversed_by=user)

        payment = reload(payment)
        assert payment.status == 'reversed'
        assert '[REVERSED]' in payment.notes
        assert 'Bounced EFT' in payment.notes

        for fee in three_months:
            fee = reload(fee)
            assert fee.amount_paid == D('0.00')
            assert fee.status == 'unpaid'

        assert reversal.amount == D('1000.00')
        assert reversal.reversed_by == user
        assert PaymentReversal.objects.get(original_payment=payment) == reversal

        entry = AuditLog.objects.get(entity_type='payment', entity_id=str(payment.pk))
        assert entry.action == 'REVERSE'
        assert entry.new_values['reason'] == 'Bounced EFT'
        assert entry.user_id == str(user.pk)

    def test_removes_credit_created_by_payment(self, student, make_fee):
        make_fee(student, date(2025, 1, 1), '800.00')
        payment = PaymentService.record_payment(student, D('1000.00'))['payment']

        PaymentService.reverse_payment(payment, 'Duplicate capture')

        assert reload(student).credit_balance == D('0.00')

    def test_reversing_never_drops_fee_below_zero(self, student, make_fee):
        fee = make_fee(student, date(2025, 1, 1), '800.00')
        payment = PaymentService.record_payment(student, D('500.00'))['payment']
        StudentFee.objects.filter(pk=fee.pk).update(amount_paid=D('100.00'))

        PaymentService.reverse_payment(payment, 'Correction')

        assert reload(fee).amount_paid == D('0.00')

    def test_reversal_unmarks_registration(self, student, make_fee):
        make_fee(student, date(2025, 1, 1), '250.00', fee_type='registration')
        payment = PaymentService.record_payment(student, D('250.00'))['payment']

        PaymentService.reverse_payment(payment, 'Cheque returned')

        assert reload(student).registration_fee_paid is False

    def test_cannot_reverse_twice(self, student, three_months):
        payment = PaymentService.record_payment(student, D('100.00'))['payment']
        PaymentService.reverse_payment(payment, 'First')

        with pytest.raises(ValidationError, match='already been reversed'):
            PaymentService.reverse_payment(payment, 'Second')

        assert PaymentReversal.objects.count() == 1

    def test_reason_required(self, student, three_months):
        payment = PaymentService.record_payment(student, D('100.00'))['payment']

        with pytest.raises(ValidationError):
            PaymentService.reverse_payment(payment, '')

    def test_reversed_payment_frees_fees_for_next_payment(self, student, three_months):
        first = PaymentService.record_payment(student, D('800.00'))['payment']
        PaymentService.reverse_payment(first, 'Wrong student')

        PaymentService.record_payment(student, D('800.00'))

        assert reload(three_months[0]).status == 'paid'
        assert Student.objects.get(pk=student.pk).credit_balance == D('0.00')
