# tests/conftest.py

from decimal import Decimal
from datetime import date

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache

from centerdesk.managers import clear_current_center
from utils.context import clear_request_context


@pytest.fixture(autouse=True)
def clean_thread_state():
    """Center scope, request context and the user→center cache are per test."""
    cache.clear()
    clear_current_center()
    clear_request_context()
    yield
    clear_current_center()
    clear_request_context()


@pytest.fixture
def make_center(db):
    from core.models import Center

    def _make_center(name='Bright Minds Tutoring', **kwargs):
        defaults = {
            'phone': '011 555 0100',
            'email': 'office@brightminds.example',
            'bank_name': 'First National Bank',
            'account_number': '62812345678',
            'branch_code': '250655',
            'subscription_tier': 'standard',
        }
        defaults.update(kwargs)
        return Center.objects.create(name=name, **defaults)

    return _make_center


@pytest.fixture
def center(make_center):
    return make_center()


@pytest.fixture
def other_center(make_center):
    return make_center(name='Northside Learning')


@pytest.fixture
def make_subject(db):
    from students.models import Subject

    def _make_subject(center, name='Mathematics', monthly_fee='500.00', **kwargs):
        return Subject.objects.create(center=center, name=name, monthly_fee=Decimal(monthly_fee), **kwargs)

    return _make_subject


@pytest.fixture
def make_student(db):
    from students.models import Student, StudentSubject

    def _make_student(center, full_name='Thabo Nkosi', subjects=(), **kwargs):
        student = Student.objects.create(center=center, full_name=full_name, **kwargs)
        for subject in subjects:
            StudentSubject.objects.create(
                center=center,
                student=student,
                subject=subject,
                enrolled_date=date(2025, 1, 10),
            )
        return student

    return _make_student


@pytest.fixture
def maths(center, make_subject):
    return make_subject(center, 'Mathematics', '500.00')


@pytest.fixture
def science(center, make_subject):
    return make_subject(center, 'Physical Science', '300.00')


@pytest.fixture
def student(center, make_student, maths, science):
    return make_student(
        center,
        'Thabo Nkosi',
        subjects=[maths, science],
        student_number='BM-001',
        phone='082 111 2222',
        parent_name='Lerato Nkosi',
        parent_phone='083 333 4444',
    )


@pytest.fixture
def make_fee(db):
    from fees.models import StudentFee

    def _make_fee(student, month, amount_due, amount_paid='0.00', fee_type='tuition'):
        return StudentFee.objects.create(
            center=student.center,
            student=student,
            fee_month=month,
            fee_type=fee_type,
            amount_due=Decimal(amount_due),
            amount_paid=Decimal(amount_paid),
        )

    return _make_fee


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(username='admin@brightminds', password='secret-pass-123')


@pytest.fixture
def staff(center, user):
    from core.models import StaffMember

    return StaffMember.objects.create(center=center, user=user, full_name='Office Admin', role='center_admin')


@pytest.fixture
def staff_client(client, user, staff):
    client.force_login(user)
    return client
