# students/models.py

from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import logging

from utils.models import CenterScopedModel

logger = logging.getLogger(__name__)


class Student(CenterScopedModel):
    """Core model for student information"""

    # -------------------------------------------------------------------------
    # CHOICE FIELDS
    # -------------------------------------------------------------------------

    STATUS_CHOICES = (
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('withdrawn', 'Withdrawn'),
        ('graduated', 'Graduated'),
    )

    # -------------------------------------------------------------------------
    # IDENTIFICATION & CONTACT
    # -------------------------------------------------------------------------

    full_name = models.CharField("Full Name", max_length=200)
    student_number = models.CharField("Student Number", max_length=30, blank=True, null=True)
    phone = models.CharField("Phone", max_length=30, blank=True)
    email = models.EmailField("Email", blank=True)

    parent_name = models.CharField("Parent/Guardian Name", max_length=200, blank=True)
    parent_phone = models.CharField("Parent/Guardian Phone", max_length=30, blank=True)
    parent_email = models.EmailField("Parent/Guardian Email", blank=True)

    status = models.CharField(
        "Status",
        max_length=10,
        choices=STATUS_CHOICES,
        default='active',
        db_index=True
    )

    # -------------------------------------------------------------------------
    # FINANCIAL
    # -------------------------------------------------------------------------

    credit_balance = models.DecimalField(
        "Credit Balance",
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Prepaid or refunded credit available to offset future fees"
    )
    registration_fee_paid = models.BooleanField("Registration Fee Paid", default=False)
    registration_fee_paid_date = models.DateTimeField("Registration Fee Paid On", null=True, blank=True)

    class Meta:
        verbose_name = "Student"
        verbose_name_plural = "Students"
        ordering = ['full_name']
        constraints = [
            models.UniqueConstraint(
                fields=['center', 'student_number'],
                name='unique_student_number_per_center'
            ),
        ]

    def __str__(self):
        if self.student_number:
            return f"{self.full_name} ({self.student_number})"
        return self.full_name

    @property
    def contact_phone(self):
        return self.phone or self.parent_phone or ''

    @property
    def payment_reference(self):
        """Reference printed on statements for bank deposits."""
        return self.student_number or self.full_name


class Subject(CenterScopedModel):
    """A subject offered by the center, billed monthly per enrolled student."""

    name = models.CharField("Subject Name", max_length=100)
    monthly_fee = models.DecimalField(
        "Monthly Fee",
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    is_active = models.BooleanField("Active", default=True)

    class Meta:
        verbose_name = "Subject"
        verbose_name_plural = "Subjects"
        ordering = ['name']

    def __str__(self):
        return self.name


class StudentSubject(CenterScopedModel):
    """Enrollment of a student in a subject."""

    student = models.ForeignKey(
        Student,
        verbose_name="Student",
        on_delete=models.CASCADE,
        related_name='subject_enrollments'
    )
    subject = models.ForeignKey(
        Subject,
        verbose_name="Subject",
        on_delete=models.CASCADE,
        related_name='enrollments'
    )
    enrolled_date = models.DateField("Enrolled On")
    is_active = models.BooleanField("Active", default=True, db_index=True)

    class Meta:
        verbose_name = "Subject Enrollment"
        verbose_name_plural = "Subject Enrollments"
        constraints = [
            models.UniqueConstraint(fields=['student', 'subject'], name='unique_student_subject'),
        ]

    def __str__(self):
        return f"{self.student.full_name} - {self.subject.name}"
