# students/services.py
"""
Business logic services for student management.
Handles registration, which spans students, subscriptions and fees.
"""

from django.db import transaction
from django.core.exceptions import ValidationError
from django.db.models import Q
import logging

from .models import Student, Subject, StudentSubject
from core.services import SubscriptionLimitService
from core.utils import get_center_today, safe_decimal

logger = logging.getLogger(__name__)

STUDENT_FIELDS = [
    'full_name', 'student_number', 'phone', 'email',
    'parent_name', 'parent_phone', 'parent_email',
]


# =============================================================================
# STUDENT SERVICES
# =============================================================================

class StudentService:
    """Registration and lookup of students."""

    @staticmethod
    @transaction.atomic
    def register_student(center, data, subject_ids=(), registration_fee=None):
        """
        Register a new student with the center.

        Args:
            center (Center): Owning center
            data (dict): Student details; full_name is required
            subject_ids (iterable): Subjects to enroll the student in
            registration_fee (Decimal, optional): Creates a registration fee
                record when positive

        Returns:
            Student

        Raises:
            ValidationError: plan student limit reached, missing name,
                duplicate student number or unknown subject
        """
        from fees.services import FeeGenerationService

        SubscriptionLimitService.enforce_student_limit(center)

        full_name = (data.get('full_name') or '').strip()
        if not full_name:
            raise ValidationError("Student name is required")

        student_number = (data.get('student_number') or '').strip() or None
        if student_number and Student.objects.unscoped().filter(
            center=center, student_number=student_number
        ).exists():
            raise ValidationError(f"Student number {student_number} is already in use")

        subject_ids = list(subject_ids or [])
        subjects = list(
            Subject.objects.unscoped().filter(center=center, pk__in=subject_ids, is_active=True)
        )
        if len(subjects) != len(set(subject_ids)):
            raise ValidationError("One or more subjects were not found")

        values = {field: (data.get(field) or '').strip() for field in STUDENT_FIELDS}
        values['full_name'] = full_name
        values['student_number'] = student_number

        student = Student(center=center, status='active', **values)
        student.full_clean(exclude=['center', 'created_at', 'updated_at'])
        student.save()

        enrolled_date = get_center_today(center)
        for subject in subjects:
            StudentSubject.objects.create(
                center=center,
                student=student,
                subject=subject,
                enrolled_date=enrolled_date,
            )

        if safe_decimal(registration_fee) > 0:
            FeeGenerationService.create_registration_fee(student, registration_fee)

        logger.info(
            f"Registered student {student.full_name} at {center.name} "
            f"with {len(subjects)} subject(s)"
        )
        return student

    @staticmethod
    def search(queryset, query):
        """Case-insensitive match on name, student number, phone or parent phone."""
        query = (query or '').strip()
        if not query:
            return queryset

        return queryset.filter(
            Q(full_name__icontains=query) |
            Q(student_number__icontains=query) |
            Q(phone__icontains=query) |
            Q(parent_phone__icontains=query)
        )
