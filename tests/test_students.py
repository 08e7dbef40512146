# tests/test_students.py

from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from fees.models import StudentFee
from students.models import Student, StudentSubject
from students.services import StudentService

pytestmark = pytest.mark.django_db


class TestRegisterStudent:

    def test_registers_with_subjects_and_fee(self, center, maths, science):
        student = StudentService.register_student(
            center,
            {'full_name': '  Naledi Khumalo ', 'student_number': 'BM-200', 'parent_phone': '082 000 0000'},
            subject_ids=[maths.pk, science.pk],
            registration_fee=Decimal('250.00'),
        )

        assert student.full_name == 'Naledi Khumalo'
        assert student.status == 'active'
        assert StudentSubject.objects.filter(student=student, is_active=True).count() == 2

        fee = StudentFee.objects.get(student=student)
        assert fee.fee_type == 'registration'
        assert fee.amount_due == Decimal('250.00')

    def test_without_registration_fee(self, center):
        student = StudentService.register_student(center, {'full_name': 'Sipho Ndlovu'})

        assert student.student_number is None
        assert not StudentFee.objects.filter(student=student).exists()

    def test_name_required(self, center):
        with pytest.raises(ValidationError):
            StudentService.register_student(center, {'full_name': '   '})

    def test_duplicate_student_number(self, center, student):
        with pytest.raises(ValidationError, match='already in use'):
            StudentService.register_student(center, {'full_name': 'Copy', 'student_number': 'BM-001'})

    def test_same_number_in_another_center(self, other_center, student):
        copy = StudentService.register_student(other_center, {'full_name': 'Copy', 'student_number': 'BM-001'})

        assert copy.center_id == other_center.pk

    def test_subject_from_another_center(self, other_center, maths):
        with pytest.raises(ValidationError):
            StudentService.register_student(other_center, {'full_name': 'Sipho'}, subject_ids=[maths.pk])

        assert not Student.objects.filter(center=other_center).exists()

    def test_student_limit_enforced(self, make_center, make_student):
        center = make_center(name='Tiny', subscription_tier='micro')
        for index in range(15):
            make_student(center, f"Student {index}")

        with pytest.raises(ValidationError, match='Student limit reached'):
            StudentService.register_student(center, {'full_name': 'One Too Many'})


class TestSearch:

    @pytest.mark.parametrize('query, expected', [
        ('THABO', ['Thabo Nkosi']),
        ('bm-001', ['Thabo Nkosi']),
        ('083 333', ['Thabo Nkosi']),
        ('', ['Thabo Nkosi', 'Zanele Dube']),
        ('xyz', []),
    ])
    def test_search(self, center, student, make_student, query, expected):
        make_student(center, 'Zanele Dube')

        results = StudentService.search(Student.objects.order_by('full_name'), query)

        assert [s.full_name for s in results] == expected
