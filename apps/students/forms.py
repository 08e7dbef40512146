# students/forms.py

"""
Student Forms
- Registration of a new student with subject enrollments
"""

from django import forms
from decimal import Decimal
import logging

from .models import Student, Subject

logger = logging.getLogger(__name__)


class StudentRegistrationForm(forms.ModelForm):
    """New student, the subjects they take and an optional registration fee."""

    subjects = forms.ModelMultipleChoiceField(
        queryset=Subject.objects.none(),
        required=False,
        widget=forms.CheckboxSelectMultiple()
    )
    registration_fee = forms.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal('0.00'),
        required=False,
        widget=forms.NumberInput(attrs={'class': 'form-control', 'step': '0.01'})
    )

    class Meta:
        model = Student
        fields = [
            'full_name', 'student_number', 'phone', 'email',
            'parent_name', 'parent_phone', 'parent_email',
        ]
        widgets = {
            'full_name': forms.TextInput(attrs={'class': 'form-control'}),
            'student_number': forms.TextInput(attrs={'class': 'form-control'}),
            'phone': forms.TextInput(attrs={'class': 'form-control'}),
            'email': forms.EmailInput(attrs={'class': 'form-control'}),
            'parent_name': forms.TextInput(attrs={'class': 'form-control'}),
            'parent_phone': forms.TextInput(attrs={'class': 'form-control'}),
            'parent_email': forms.EmailInput(attrs={'class': 'form-control'}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.fields['subjects'].queryset = Subject.objects.filter(is_active=True).order_by('name')
