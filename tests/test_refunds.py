# tests/test_refunds.py

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from fees.models import Refund
from fees.services import PaymentService, RefundService
from utils.models import AuditLog

pytestmark = pytest.mark.django_db

D = Decimal


@pytest.fixture
def payment(student, make_fee):
    make_fee(student, date(2025, 1, 1), '800.00')
    return PaymentService.record_payment(student, D('500.00'))['payment']


def test_partial_refund(payment, user):
    refund = RefundService.process_refund(payment, D('200.00'), 'overpayment', processed_by=user)

    assert refund.amount == D('200.00')
    assert refund.student_id == payment.student_id
    assert refund.processed_by == user
    assert RefundService.remaining_refundable(payment) == D('300.00')


def test_refunds_may_not_exceed_payment(payment):
    RefundService.process_refund(payment, D('460.00'), 'overpayment')

    with pytest.raises(ValidationError) as excinfo:
        RefundService.process_refund(payment, D('50.00'), 'overpayment')

    assert excinfo.value.messages == ['Refund amount cannot exceed R 40.00 (remaining refundable amount)']


def test_fully_refunded_payment(payment):
    RefundService.process_refund(payment, D('500.00'), 'duplicate')

    with pytest.raises(ValidationError, match='already been fully refunded'):
        RefundService.process_refund(payment, D('1.00'), 'duplicate')


@pytest.mark.parametrize('amount', [D('0'), D('-10'), None])
def test_amount_must_be_positive(payment, amount):
    with pytest.raises(ValidationError, match='Valid refund amount'):
        RefundService.process_refund(payment, amount, 'overpayment')


def test_unknown_reason(payment):
    with pytest.raises(ValidationError):
        RefundService.process_refund(payment, D('10.00'), 'changed_mind')


def test_other_reason_needs_notes(payment):
    with pytest.raises(ValidationError, match='Notes are required'):
        RefundService.process_refund(payment, D('10.00'), 'other', notes='   ')

    refund = RefundService.process_refund(payment, D('10.00'), 'other', notes='Goodwill gesture')
    assert refund.reason_notes == 'Goodwill gesture'


def test_payment_from_another_center(payment, other_center):
    with pytest.raises(ValidationError, match='does not belong'):
        RefundService.process_refund(payment, D('10.00'), 'overpayment', center=other_center)

    assert not Refund.objects.exists()


def test_reversed_payment_cannot_be_refunded(payment):
    PaymentService.reverse_payment(payment, 'Bounced')

    with pytest.raises(ValidationError):
        RefundService.process_refund(payment, D('10.00'), 'overpayment')


def test_withdrawal_updates_student_status(payment, student):
    refund = RefundService.process_refund(
        payment, D('500.00'), 'withdrawal', update_student_status=True
    )

    student.refresh_from_db()
    assert student.status == 'withdrawn'
    assert refund.student_status_updated is True


def test_refund_is_audited(payment, user):
    refund = RefundService.process_refund(payment, D('75.00'), 'service_issue', processed_by=user)

    entry = AuditLog.objects.get(entity_type='refund', entity_id=str(refund.pk))
    assert entry.action == 'CREATE'
    assert entry.center_id == payment.center_id
    assert entry.new_values['amount'] == '75.00'
    assert entry.new_values['original_payment_id'] == str(payment.pk)
