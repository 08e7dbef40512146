# fees/services.py

"""
Core Fee Operations

- FeeGenerationService: monthly tuition and registration fee records
- PaymentService: recording payments, FIFO allocation, reversals
- RefundService: refunds against earlier payments

Services raise django.core.exceptions.ValidationError for rule violations
and run their writes in a single transaction.
"""

from decimal import Decimal
from django.db import transaction
from django.db.models import F, Sum
from django.core.exceptions import ValidationError
import logging

from fees.models import StudentFee, Payment, PaymentAllocation, PaymentReversal, Refund
from fees.balances import PAID, classify_fee
from fees.utils import month_range, tuition_due_date, parse_month
from students.models import Student, StudentSubject
from core.utils import first_of_month, get_center_today, get_center_current_time, format_money, safe_decimal
from utils.audit import log_action

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


# =============================================================================
# FEE GENERATION SERVICE
# =============================================================================

class FeeGenerationService:
    """
    Creates billing-period fee records. Never creates a second record for
    the same student, month and fee type.
    """

    @staticmethod
    def plan_months(start_month, end_month):
        """First-of-month dates from start to end, inclusive."""
        start = parse_month(start_month)
        end = parse_month(end_month)
        if end < start:
            raise ValidationError("End month cannot be before start month")
        return month_range(start, end)

    @staticmethod
    def get_monthly_tuition(student):
        """Sum of the monthly fees of the student's active subject enrollments."""
        total = StudentSubject.objects.unscoped().filter(
            student=student,
            is_active=True
        ).aggregate(total=Sum('subject__monthly_fee'))['total']
        return total or ZERO

    @staticmethod
    @transaction.atomic
    def generate_monthly_fees(student, start_month, end_month):
        """
        Generate tuition fees for a student for every month in the range.

        Args:
            student: Student instance
            start_month: date or 'YYYY-MM'
            end_month: date or 'YYYY-MM'

        Returns:
            int: number of fee records created
        """
        months = FeeGenerationService.plan_months(start_month, end_month)
        monthly_tuition = FeeGenerationService.get_monthly_tuition(student)

        if monthly_tuition <= 0:
            logger.debug(f"No billable enrollments for {student.full_name}")
            return 0

        existing = set(
            StudentFee.objects.unscoped().filter(
                student=student,
                fee_type='tuition',
                fee_month__in=months
            ).values_list('fee_month', flat=True)
        )

        new_fees = [
            StudentFee(
                center_id=student.center_id,
                student=student,
                fee_month=month,
                fee_type='tuition',
                amount_due=monthly_tuition,
                amount_paid=ZERO,
                due_date=tuition_due_date(month),
            )
            for month in months
            if month not in existing
        ]

        # save() rather than bulk_create so audit fields and status are set
        for fee in new_fees:
            fee.save()

        if new_fees:
            logger.info(
                f"Generated {len(new_fees)} tuition fee(s) for {student.full_name} "
                f"at {monthly_tuition}/month"
            )

        return len(new_fees)

    @staticmethod
    def generate_for_all_students(center, start_month, end_month):
        """
        Generate tuition fees for every active student of a center.

        A failure for one student is recorded and does not stop the run.

        Returns:
            dict: success, students_processed, total_fees_generated, errors
        """
        months = FeeGenerationService.plan_months(start_month, end_month)
        students = Student.objects.unscoped().filter(center=center, status='active')

        total_generated = 0
        processed = 0
        errors = []

        for student in students:
            processed += 1
            try:
                total_generated += FeeGenerationService.generate_monthly_fees(
                    student, months[0], months[-1]
                )
            except Exception as e:
                logger.error(f"Fee generation failed for student {student.pk}: {e}", exc_info=True)
                errors.append(f"Student {student.full_name}: {e}")

        logger.info(
            f"Bulk fee generation for {center.name}: {total_generated} fee(s) "
            f"for {processed} student(s), {len(errors)} error(s)"
        )

        return {
            'success': len(errors) == 0,
            'students_processed': processed,
            'total_fees_generated': total_generated,
            'errors': errors,
        }

    @staticmethod
    @transaction.atomic
    def create_registration_fee(student, amount, month=None):
        """
        Create the one-off registration fee for a student.

        Raises:
            ValidationError: non-positive amount, or a registration fee
                already exists for that month
        """
        amount = safe_decimal(amount)
        if amount <= 0:
            raise ValidationError("Registration fee must be positive")

        fee_month = parse_month(month) if month else first_of_month(get_center_today(student.center))

        if StudentFee.objects.unscoped().filter(
            student=student, fee_month=fee_month, fee_type='registration'
        ).exists():
            raise ValidationError(
                f"A registration fee for {fee_month:%B %Y} already exists for {student.full_name}"
            )

        fee = StudentFee(
            center_id=student.center_id,
            student=student,
            fee_month=fee_month,
            fee_type='registration',
            amount_due=amount,
            due_date=get_center_today(student.center),
        )
        fee.save()

        logger.info(f"Created registration fee of {amount} for {student.full_name}")
        return fee


# =============================================================================
# PAYMENT SERVICE
# =============================================================================

class PaymentService:
    """Recording payments and applying them to outstanding fees."""

    @staticmethod
    @transaction.atomic
    def record_payment(student, amount, payment_method='cash', payment_date=None,
                       reference_number='', notes=''):
        """
        Record a payment and allocate it to the student's oldest fees first.
        Whatever cannot be allocated is added to the student's credit balance.

        Returns:
            dict: payment, allocations, remaining_credit

        Raises:
            ValidationError: if amount is not positive
        """
        amount = safe_decimal(amount)
        if amount <= 0:
            raise ValidationError("Payment amount must be positive")

        payment = Payment(
            center_id=student.center_id,
            student=student,
            amount=amount,
            payment_method=payment_method,
            payment_date=payment_date or get_center_today(student.center),
            reference_number=reference_number or '',
            notes=notes or '',
        )
        payment.save()

        result = PaymentService.allocate_payment(payment)

        if result['remaining_credit'] > 0:
            Student.objects.unscoped().filter(pk=student.pk).update(
                credit_balance=F('credit_balance') + result['remaining_credit']
            )
            payment.credit_added = result['remaining_credit']
            payment.save(update_fields=['credit_added'])
            logger.info(
                f"Added {result['remaining_credit']} credit to {student.full_name} "
                f"from payment {payment.payment_number}"
            )

        logger.info(
            f"Recorded payment {payment.payment_number} of {amount} for {student.full_name} "
            f"across {len(result['allocations'])} fee(s)"
        )

        return {
            'payment': payment,
            'allocations': result['allocations'],
            'remaining_credit': result['remaining_credit'],
        }

    @staticmethod
    @transaction.atomic
    def allocate_payment(payment):
        """
        Allocate a payment across the student's unpaid and partially paid
        fees, oldest month first (FIFO). Each fee receives at most its
        remaining balance.

        Returns:
            dict: allocations (list of {'fee_id', 'month', 'amount_allocated'}),
                  remaining_credit
        """
        remaining = payment.amount
        allocations = []

        outstanding_fees = (
            StudentFee.objects.unscoped()
            .select_for_update()
            .filter(student_id=payment.student_id)
            .exclude(status=PAID)
            .order_by('fee_month', 'created_at')
        )

        for fee in outstanding_fees:
            if remaining <= 0:
                break

            allocation_amount = min(remaining, fee.balance)
            if allocation_amount <= 0:
                continue

            fee.amount_paid += allocation_amount
            fee.save()

            PaymentAllocation.objects.create(
                center_id=payment.center_id,
                payment=payment,
                fee=fee,
                amount=allocation_amount,
            )

            if fee.fee_type == 'registration' and fee.status == PAID:
                Student.objects.unscoped().filter(pk=payment.student_id).update(
                    registration_fee_paid=True,
                    registration_fee_paid_date=get_center_current_time(),
                )
                logger.info(f"Registration fee settled for student {payment.student_id}")

            allocations.append({
                'fee_id': fee.pk,
                'month': fee.fee_month,
                'amount_allocated': allocation_amount,
            })
            remaining -= allocation_amount

            logger.debug(f"Allocated {allocation_amount} of {payment.payment_number} to fee {fee.pk}")

        return {
            'allocations': allocations,
            'remaining_credit': remaining,
        }

    @staticmethod
    @transaction.atomic
    def reverse_payment(payment, reason, reversed_by=None):
        """
        Undo a payment: mark it reversed, take its allocations back off the
        fees it paid, and remove any credit it created.

        Returns:
            PaymentReversal instance

        Raises:
            ValidationError: missing reason, or payment already reversed
        """
        if not reason:
            raise ValidationError("Reversal reason is required")

        payment = Payment.objects.unscoped().select_for_update().get(pk=payment.pk)

        if payment.is_reversed:
            raise ValidationError("Payment has already been reversed")

        now = get_center_current_time(payment.center)

        payment.status = 'reversed'
        payment.notes = f"{payment.notes}\n\n[REVERSED] {now.isoformat()}: {reason}".strip()
        payment.save(update_fields=['status', 'notes', 'updated_at'])

        for allocation in payment.allocations.select_related('fee'):
            fee = allocation.fee
            fee.amount_paid = max(ZERO, fee.amount_paid - allocation.amount)
            fee.save()

            if fee.fee_type == 'registration' and classify_fee(fee.amount_due, fee.amount_paid) != PAID:
                Student.objects.unscoped().filter(pk=payment.student_id).update(
                    registration_fee_paid=False,
                    registration_fee_paid_date=None,
                )

        if payment.credit_added > 0:
            student = Student.objects.unscoped().select_for_update().get(pk=payment.student_id)
            student.credit_balance = max(ZERO, student.credit_balance - payment.credit_added)
            student.save(update_fields=['credit_balance', 'updated_at'])

        reversal = PaymentReversal(
            center_id=payment.center_id,
            original_payment=payment,
            student_id=payment.student_id,
            amount=payment.amount,
            reason=reason,
            reversed_by=reversed_by,
            reversed_at=now,
        )
        reversal.save()

        log_action(
            'REVERSE',
            payment,
            user=reversed_by,
            old_values={'status': 'completed'},
            new_values={'status': 'reversed', 'reason': reason, 'amount': payment.amount},
        )

        logger.info(f"Reversed payment {payment.payment_number}: {reason}")
        return reversal


# =============================================================================
# REFUND SERVICE
# =============================================================================

class RefundService:
    """Refunds against earlier payments."""

    @staticmethod
    def remaining_refundable(payment):
        """Payment amount less everything already refunded against it."""
        refunded = Refund.objects.unscoped().filter(
            original_payment=payment
        ).aggregate(total=Sum('amount'))['total'] or ZERO
        return payment.amount - refunded

    @staticmethod
    @transaction.atomic
    def process_refund(payment, amount, reason, processed_by=None, notes='',
                       update_student_status=False, center=None):
        """
        Refund part or all of a payment.

        Args:
            payment: Payment being refunded
            amount: Refund amount
            reason: One of Refund.REASON_CHOICES
            processed_by: Acting user
            notes: Required when reason is 'other'
            update_student_status: Mark the student withdrawn
            center: Center the request was made for; must own the payment

        Returns:
            Refund instance

        Raises:
            ValidationError: on any rule violation
        """
        amount = safe_decimal(amount)
        if amount <= 0:
            raise ValidationError("Valid refund amount is required")

        valid_reasons = {choice for choice, _ in Refund.REASON_CHOICES}
        if reason not in valid_reasons:
            raise ValidationError("Refund reason is required")

        if reason == 'other' and not (notes or '').strip():
            raise ValidationError('Notes are required when reason is "Other"')

        payment = Payment.objects.unscoped().select_for_update().select_related(
            'center', 'student'
        ).get(pk=payment.pk)

        if center is not None and payment.center_id != center.pk:
            raise ValidationError("Payment does not belong to this center")

        if payment.is_reversed:
            raise ValidationError("A reversed payment cannot be refunded")

        remaining = RefundService.remaining_refundable(payment)
        if amount > remaining:
            if remaining <= 0:
                raise ValidationError("This payment has already been fully refunded")
            raise ValidationError(
                f"Refund amount cannot exceed {format_money(remaining, payment.center)} "
                f"(remaining refundable amount)"
            )

        refund = Refund(
            center_id=payment.center_id,
            student_id=payment.student_id,
            original_payment=payment,
            amount=amount,
            reason=reason,
            reason_notes=notes or '',
            student_status_updated=bool(update_student_status),
            processed_by=processed_by,
            refund_date=get_center_current_time(payment.center),
        )
        refund.save()

        if update_student_status:
            student = payment.student
            student.status = 'withdrawn'
            student.save(update_fields=['status', 'updated_at'])
            logger.info(f"Student {student.full_name} marked withdrawn by refund {refund.pk}")

        log_action(
            'CREATE',
            refund,
            user=processed_by,
            new_values={
                'amount': amount,
                'reason': reason,
                'reason_notes': notes,
                'original_payment_id': payment.pk,
                'student_id': payment.student_id,
                'student_status_updated': bool(update_student_status),
            },
        )

        logger.info(f"Refunded {amount} of payment {payment.payment_number} ({reason})")
        return refund
