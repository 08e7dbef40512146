# fees/forms.py

"""
Fee Management Forms

Validate the payloads posted to the fee endpoints:
- Recording and reversing payments
- Refunds
- Bulk fee generation

Querysets go through the center-scoped managers, so a form built while a
center is active only offers that center's students and payments.
"""

from django import forms
from django.core.exceptions import ValidationError
from decimal import Decimal
import logging

from fees.models import Payment, Refund
from fees.utils import parse_month
from students.models import Student
from core.utils import get_center_today

logger = logging.getLogger(__name__)


# =============================================================================
# PAYMENT FORMS
# =============================================================================

class PaymentForm(forms.ModelForm):
    """Form for recording student payments"""

    class Meta:
        model = Payment
        fields = [
            'student', 'amount', 'payment_method', 'payment_date',
            'reference_number', 'notes'
        ]
        widgets = {
            'student': forms.Select(attrs={'class': 'form-control'}),
            'amount': forms.NumberInput(attrs={
                'class': 'form-control',
                'step': '0.01'
            }),
            'payment_method': forms.Select(attrs={'class': 'form-control'}),
            'payment_date': forms.DateInput(attrs={
                'class': 'form-control',
                'type': 'date'
            }),
            'reference_number': forms.TextInput(attrs={
                'class': 'form-control',
                'placeholder': 'Deposit or receipt reference'
            }),
            'notes': forms.Textarea(attrs={
                'class': 'form-control',
                'rows': 2
            }),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.fields['student'].queryset = Student.objects.filter(
            status='active'
        ).order_by('full_name')

        self.fields['payment_date'].required = False
        self.fields['reference_number'].required = False
        self.fields['notes'].required = False

    def clean_amount(self):
        amount = self.cleaned_data.get('amount')
        if amount is None or amount <= 0:
            raise ValidationError("Payment amount must be positive")
        return amount

    def clean_payment_date(self):
        payment_date = self.cleaned_data.get('payment_date')
        if payment_date and payment_date > get_center_today():
            raise ValidationError("Payment date cannot be in the future")
        return payment_date


class PaymentReversalForm(forms.Form):
    """Reason for reversing a payment"""

    reason = forms.CharField(
        max_length=500,
        widget=forms.Textarea(attrs={
            'class': 'form-control',
            'rows': 3,
            'placeholder': 'Why is this payment being reversed?'
        })
    )

    def clean_reason(self):
        reason = self.cleaned_data.get('reason', '').strip()
        if not reason:
            raise ValidationError("Reversal reason is required")
        return reason


# =============================================================================
# REFUND FORM
# =============================================================================

class RefundForm(forms.Form):
    """Form for refunding part or all of a payment"""

    payment = forms.ModelChoiceField(
        queryset=Payment.objects.none(),
        widget=forms.Select(attrs={'class': 'form-control'})
    )
    amount = forms.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal('0.01'),
        widget=forms.NumberInput(attrs={
            'class': 'form-control',
            'step': '0.01'
        })
    )
    reason = forms.ChoiceField(
        choices=Refund.REASON_CHOICES,
        widget=forms.Select(attrs={'class': 'form-control'})
    )
    reason_notes = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={
            'class': 'form-control',
            'rows': 3,
            'placeholder': 'Required when the reason is "Other"'
        })
    )
    update_student_status = forms.BooleanField(
        required=False,
        help_text="Mark the student as withdrawn"
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.fields['payment'].queryset = Payment.objects.filter(
            status='completed'
        ).select_related('student')

    def clean(self):
        cleaned_data = super().clean()

        if cleaned_data.get('reason') == 'other' and not cleaned_data.get('reason_notes', '').strip():
            self.add_error('reason_notes', 'Notes are required when reason is "Other"')

        return cleaned_data


# =============================================================================
# FEE GENERATION FORM
# =============================================================================

class BulkFeeGenerationForm(forms.Form):
    """Generate monthly tuition for a range of months"""

    start_month = forms.CharField(
        max_length=10,
        widget=forms.TextInput(attrs={'class': 'form-control', 'type': 'month'})
    )
    end_month = forms.CharField(
        max_length=10,
        widget=forms.TextInput(attrs={'class': 'form-control', 'type': 'month'})
    )
    student = forms.ModelChoiceField(
        queryset=Student.objects.none(),
        required=False,
        help_text="Leave empty to generate for every active student",
        widget=forms.Select(attrs={'class': 'form-control'})
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.fields['student'].queryset = Student.objects.filter(
            status='active'
        ).order_by('full_name')

    def _clean_month(self, field):
        value = self.cleaned_data.get(field)
        try:
            return parse_month(value)
        except (TypeError, ValueError):
            raise ValidationError("Enter a month as YYYY-MM")

    def clean_start_month(self):
        return self._clean_month('start_month')

    def clean_end_month(self):
        return self._clean_month('end_month')

    def clean(self):
        cleaned_data = super().clean()

        start_month = cleaned_data.get('start_month')
        end_month = cleaned_data.get('end_month')
        if start_month and end_month and end_month < start_month:
            raise ValidationError("End month cannot be before start month")

        return cleaned_data
