# fees/models.py

"""
Student Fee Management Models

- StudentFee: one billing period's obligation for one student
- Payment / PaymentAllocation: money received and where it was applied
- PaymentReversal: record of a payment that was undone
- Refund: money returned against an earlier payment

All rows are owned by a center (see utils.models.CenterScopedModel).
"""

from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator
from decimal import Decimal
import logging

from utils.models import CenterScopedModel
from students.models import Student
from fees.balances import PAYMENT_STATUS_CHOICES, UNPAID, classify_fee

logger = logging.getLogger(__name__)


# =============================================================================
# STUDENT FEE
# =============================================================================

class StudentFee(CenterScopedModel):
    """
    A monthly tuition or one-off registration charge.

    status is denormalized from amount_due / amount_paid for filtering and
    is re-derived on every save.
    """

    FEE_TYPE_CHOICES = [
        ('tuition', 'Tuition'),
        ('registration', 'Registration'),
    ]

    student = models.ForeignKey(
        Student,
        verbose_name="Student",
        on_delete=models.CASCADE,
        related_name='fees'
    )
    fee_month = models.DateField(
        "Fee Month",
        db_index=True,
        help_text="First day of the billed month"
    )
    fee_type = models.CharField(
        "Fee Type",
        max_length=20,
        choices=FEE_TYPE_CHOICES,
        default='tuition',
        db_index=True
    )
    amount_due = models.DecimalField(
        "Amount Due",
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    amount_paid = models.DecimalField(
        "Amount Paid",
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    status = models.CharField(
        "Status",
        max_length=10,
        choices=PAYMENT_STATUS_CHOICES,
        default=UNPAID,
        db_index=True
    )
    due_date = models.DateField("Due Date", null=True, blank=True)

    class Meta:
        verbose_name = "Student Fee"
        verbose_name_plural = "Student Fees"
        ordering = ['fee_month', 'fee_type']
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'fee_month', 'fee_type'],
                name='unique_fee_per_student_month_type'
            ),
        ]
        indexes = [
            models.Index(fields=['center', 'status']),
            models.Index(fields=['student', 'fee_month']),
        ]

    def __str__(self):
        return f"{self.student.full_name} - {self.get_fee_type_display()} {self.fee_month:%B %Y}"

    @property
    def balance(self):
        return self.amount_due - self.amount_paid

    @property
    def month_label(self):
        return self.fee_month.strftime('%B %Y')

    def refresh_status(self):
        self.status = classify_fee(self.amount_due, self.amount_paid)
        return self.status


# =============================================================================
# PAYMENTS
# =============================================================================

class Payment(CenterScopedModel):
    """Money received from or on behalf of a student."""

    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('bank_transfer', 'Bank Transfer'),
        ('card', 'Card'),
        ('other', 'Other'),
    ]

    STATUS_CHOICES = [
        ('completed', 'Completed'),
        ('reversed', 'Reversed'),
    ]

    student = models.ForeignKey(
        Student,
        verbose_name="Student",
        on_delete=models.PROTECT,
        related_name='payments'
    )
    payment_number = models.CharField("Payment Number", max_length=30, blank=True, db_index=True)
    amount = models.DecimalField(
        "Amount",
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    payment_method = models.CharField(
        "Payment Method",
        max_length=20,
        choices=PAYMENT_METHOD_CHOICES,
        default='cash'
    )
    payment_date = models.DateField("Payment Date", db_index=True)
    reference_number = models.CharField("Reference Number", max_length=100, blank=True)
    status = models.CharField(
        "Status",
        max_length=10,
        choices=STATUS_CHOICES,
        default='completed',
        db_index=True
    )
    credit_added = models.DecimalField(
        "Credit Added",
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Part of the payment left unallocated and added to the student's credit"
    )
    notes = models.TextField("Notes", blank=True)

    class Meta:
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        ordering = ['-payment_date', '-created_at']

    def __str__(self):
        return f"{self.payment_number or self.pk} - {self.amount}"

    @property
    def is_reversed(self):
        return self.status == 'reversed'


class PaymentAllocation(CenterScopedModel):
    """Portion of a payment applied to one fee."""

    payment = models.ForeignKey(
        Payment,
        verbose_name="Payment",
        on_delete=models.CASCADE,
        related_name='allocations'
    )
    fee = models.ForeignKey(
        StudentFee,
        verbose_name="Fee",
        on_delete=models.CASCADE,
        related_name='allocations'
    )
    amount = models.DecimalField("Amount", max_digits=12, decimal_places=2)

    class Meta:
        verbose_name = "Payment Allocation"
        verbose_name_plural = "Payment Allocations"
        ordering = ['fee__fee_month']

    def __str__(self):
        return f"{self.amount} → {self.fee}"


class PaymentReversal(CenterScopedModel):
    """Audit record of a reversed payment."""

    original_payment = models.OneToOneField(
        Payment,
        verbose_name="Original Payment",
        on_delete=models.CASCADE,
        related_name='reversal'
    )
    student = models.ForeignKey(
        Student,
        verbose_name="Student",
        on_delete=models.CASCADE,
        related_name='payment_reversals'
    )
    amount = models.DecimalField("Amount", max_digits=12, decimal_places=2)
    reason = models.TextField("Reason")
    reversed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        verbose_name="Reversed By",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    reversed_at = models.DateTimeField("Reversed At")

    class Meta:
        verbose_name = "Payment Reversal"
        verbose_name_plural = "Payment Reversals"
        ordering = ['-reversed_at']

    def __str__(self):
        return f"Reversal of {self.original_payment}"


# =============================================================================
# REFUNDS
# =============================================================================

class Refund(CenterScopedModel):
    """Money returned to a student against an earlier payment."""

    REASON_CHOICES = [
        ('withdrawal', 'Student Withdrawal'),
        ('overpayment', 'Overpayment'),
        ('duplicate', 'Duplicate Payment'),
        ('service_issue', 'Service Issue'),
        ('other', 'Other'),
    ]

    student = models.ForeignKey(
        Student,
        verbose_name="Student",
        on_delete=models.PROTECT,
        related_name='refunds'
    )
    original_payment = models.ForeignKey(
        Payment,
        verbose_name="Original Payment",
        on_delete=models.PROTECT,
        related_name='refunds'
    )
    amount = models.DecimalField(
        "Amount",
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    reason = models.CharField("Reason", max_length=20, choices=REASON_CHOICES)
    reason_notes = models.TextField("Notes", blank=True)
    student_status_updated = models.BooleanField("Student Withdrawn", default=False)
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        verbose_name="Processed By",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    refund_date = models.DateTimeField("Refund Date", db_index=True)

    class Meta:
        verbose_name = "Refund"
        verbose_name_plural = "Refunds"
        ordering = ['-refund_date']

    def __str__(self):
        return f"Refund {self.amount} to {self.student.full_name}"
