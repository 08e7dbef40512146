# fees/utils.py

"""
Fee Management Utility Functions

Contains:
- Reference number generation
- Billing month helpers
- Payload validation
"""

from django.db import transaction
from decimal import Decimal
from datetime import date
import logging

from core.utils import safe_decimal, get_center_today

logger = logging.getLogger(__name__)

PAYMENT_PREFIX = 'PMT'

# Tuition falls due on this day of the billed month
TUITION_DUE_DAY = 7


# =============================================================================
# REFERENCE NUMBER GENERATION
# =============================================================================

def generate_payment_number(center, payment_date=None):
    """
    Next payment number for a center, numbered per year.
    Format: PMT-2025-0001 (wider than four digits once past 9999).

    Returns:
        str: Unique payment number
    """
    from fees.models import Payment

    year = (payment_date or get_center_today(center)).year
    search_prefix = f"{PAYMENT_PREFIX}-{year}-"

    with transaction.atomic():
        numbers = (
            Payment.objects.unscoped()
            .select_for_update()
            .filter(center=center, payment_number__startswith=search_prefix)
            .values_list('payment_number', flat=True)
        )

        last_number = 0
        for payment_number in numbers:
            try:
                last_number = max(last_number, int(payment_number.split('-')[-1]))
            except (ValueError, IndexError):
                continue

    return f"{search_prefix}{last_number + 1:04d}"


# =============================================================================
# BILLING MONTHS
# =============================================================================

def add_months(value, months):
    """First day of the month `months` after value's month."""
    month_index = value.year * 12 + (value.month - 1) + months
    return date(month_index // 12, month_index % 12 + 1, 1)


def month_range(start, end):
    """
    First-of-month dates from start's month to end's month, inclusive.

    Example:
        >>> month_range(date(2025, 3, 15), date(2025, 5, 1))
        [date(2025, 3, 1), date(2025, 4, 1), date(2025, 5, 1)]
    """
    current = date(start.year, start.month, 1)
    last = date(end.year, end.month, 1)

    months = []
    while current <= last:
        months.append(current)
        current = add_months(current, 1)
    return months


def tuition_due_date(fee_month):
    return fee_month.replace(day=TUITION_DUE_DAY)


def parse_month(value):
    """
    Parse 'YYYY-MM' or 'YYYY-MM-DD' into the first of that month.

    Raises:
        ValueError: for anything else
    """
    if isinstance(value, date):
        return value.replace(day=1)

    parts = str(value).strip().split('-')
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid month: {value!r}")

    year, month = int(parts[0]), int(parts[1])
    return date(year, month, 1)


# =============================================================================
# VALIDATION UTILITIES
# =============================================================================

def validate_payment_data(payment_data):
    """
    Validate payment data before recording.

    Returns:
        dict: {'valid': bool, 'errors': list of str, 'warnings': list of str}
    """
    errors = []
    warnings = []

    amount = safe_decimal(payment_data.get('amount'), default=None)
    if amount is None or amount <= 0:
        errors.append("Payment amount must be positive")

    if not payment_data.get('payment_method'):
        errors.append("Payment method is required")

    if not payment_data.get('student'):
        errors.append("Student is required")

    payment_date = payment_data.get('payment_date')
    if payment_date and payment_date > get_center_today():
        errors.append("Payment date cannot be in the future")

    outstanding = payment_data.get('outstanding')
    if amount is not None and outstanding is not None and amount > Decimal(outstanding):
        warnings.append(
            f"Payment amount ({amount}) exceeds outstanding fees ({outstanding}). "
            f"Excess will be added to the student's credit."
        )

    return {
        'valid': len(errors) == 0,
        'errors': errors,
        'warnings': warnings
    }
