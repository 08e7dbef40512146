# fees/stats.py

"""
Reporting functions for student fees.
Provides outstanding balances, center-wide summaries, monthly payment status
and monthly collections. Balances are always derived from fee records via
fees.balances, never read from a stored total.
"""

from django.db.models import Count, Q, Sum
from datetime import date
from decimal import Decimal
from itertools import islice
import logging

from fees.balances import (
    PAID, PARTIAL, UNPAID,
    aggregate_balances, merge_balances, classify, net_owing,
    rank_by_outstanding_descending, summarize_fees,
)
from core.utils import calculate_percentage, get_center_today

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')

# Fee rows aggregated per pass when building the outstanding report
REPORT_BATCH_SIZE = 2000

NO_FEES = 'no_fees'


def _batched(iterable, size):
    iterator = iter(iterable)
    while True:
        batch = list(islice(iterator, size))
        if not batch:
            return
        yield batch


def _matches_search(student, query):
    query = query.lower()
    candidates = [
        student.full_name,
        student.student_number,
        student.phone,
        student.parent_phone,
    ]
    return any(value and query in value.lower() for value in candidates)


# =============================================================================
# OUTSTANDING FEES
# =============================================================================

def get_outstanding_fees(center, year=None, month=None, fee_type=None):
    """
    Unpaid and partially paid fees of the center's active students.

    Args:
        center: Center instance
        year, month (int, optional): Restrict to one billing month; both are
            required for the filter to apply
        fee_type (str, optional): 'tuition' or 'registration'

    Returns:
        QuerySet of StudentFee, oldest month first
    """
    from fees.models import StudentFee

    fees = StudentFee.objects.unscoped().filter(
        center=center,
        student__status='active',
    ).exclude(status=PAID).select_related('student')

    if year and month:
        fees = fees.filter(fee_month=date(int(year), int(month), 1))

    if fee_type:
        fees = fees.filter(fee_type=fee_type)

    return fees.order_by('student__full_name', 'fee_month', 'fee_type')


def get_outstanding_report(center, year=None, month=None, fee_type=None, search=None):
    """
    Students who owe money, largest outstanding first.

    Args:
        center: Center instance
        year, month (int, optional): Restrict to one billing month
        fee_type (str, optional): Restrict to one fee type
        search (str, optional): Case-insensitive match on name, student
            number, phone or parent phone

    Returns:
        dict: rows (list of dicts, one per student), total_outstanding,
              total_net_owing, student_count
    """
    from students.models import Student

    students = {
        student.pk: student
        for student in Student.objects.unscoped().filter(center=center, status='active')
    }
    credit_balances = {pk: student.credit_balance for pk, student in students.items()}

    fees = get_outstanding_fees(center, year, month, fee_type)

    balances = {}
    for batch in _batched(fees.iterator(chunk_size=REPORT_BATCH_SIZE), REPORT_BATCH_SIZE):
        balances = merge_balances(balances, aggregate_balances(batch, credit_balances))

    rows = []
    for balance in rank_by_outstanding_descending(balances):
        if balance.outstanding <= ZERO:
            continue

        student = students.get(balance.student_id)
        if student is None:
            continue

        if search and not _matches_search(student, search):
            continue

        row = balance.as_dict()
        row.update({
            'full_name': student.full_name,
            'student_number': student.student_number or '',
            'phone': student.contact_phone or '',
            'parent_name': student.parent_name or '',
            'payment_reference': student.payment_reference,
            'fee_count': balance.fee_count,
        })
        rows.append(row)

    report = {
        'rows': rows,
        'total_outstanding': sum((row['outstanding'] for row in rows), ZERO),
        'total_net_owing': sum((row['net_owing'] for row in rows), ZERO),
        'student_count': len(rows),
    }

    logger.debug(
        f"Outstanding report for {center.name}: {report['student_count']} student(s), "
        f"{report['total_outstanding']} outstanding"
    )
    return report


# =============================================================================
# CENTER SUMMARY
# =============================================================================

def get_fee_summary(center):
    """
    Center-wide fee totals.

    Returns:
        dict: summarize_fees() output plus collection_rate, total_credit and
              active_students
    """
    from fees.models import StudentFee
    from students.models import Student

    fees = StudentFee.objects.unscoped().filter(center=center).only(
        'student', 'fee_type', 'amount_due', 'amount_paid', 'status'
    )
    summary = summarize_fees(fees)

    active = Student.objects.unscoped().filter(center=center, status='active').aggregate(
        count=Count('id'),
        credit=Sum('credit_balance'),
    )

    summary.update({
        'collection_rate': calculate_percentage(summary['total_paid'], summary['total_due']),
        'total_credit': active['credit'] or ZERO,
        'active_students': active['count'],
    })
    return summary


# =============================================================================
# MONTHLY STATUS
# =============================================================================

def get_monthly_payment_status(center, year=None, month=None):
    """
    Bucket every active student by the payment status of one month's fees.

    Students with no fee for the month land in 'no_fees', which is kept
    apart from 'paid'.

    Returns:
        dict: month (date), counts ({status: int}), students ({status: list})
    """
    from fees.models import StudentFee
    from students.models import Student

    if not (year and month):
        today = get_center_today(center)
        year, month = today.year, today.month
    fee_month = date(int(year), int(month), 1)

    students = list(
        Student.objects.unscoped().filter(center=center, status='active').order_by('full_name')
    )
    fees = StudentFee.objects.unscoped().filter(
        center=center,
        fee_month=fee_month,
        student__status='active',
    )
    balances = aggregate_balances(fees)

    buckets = {PAID: [], PARTIAL: [], UNPAID: [], NO_FEES: []}

    for student in students:
        balance = balances.get(student.pk)
        status = classify(balance) if balance is not None else None

        buckets[status or NO_FEES].append({
            'student_id': student.pk,
            'full_name': student.full_name,
            'total_due': balance.total_due if balance else ZERO,
            'total_paid': balance.total_paid if balance else ZERO,
            'outstanding': balance.outstanding if balance else ZERO,
            'net_owing': net_owing(balance) if balance else ZERO,
        })

    return {
        'month': fee_month,
        'counts': {status: len(entries) for status, entries in buckets.items()},
        'students': buckets,
    }


# =============================================================================
# MONTHLY COLLECTIONS
# =============================================================================

def get_monthly_collection_summary(center, year=None, month=None):
    """
    Payments received during one calendar month, reversed payments excluded.

    Returns:
        dict: month, total, count, cash, bank_transfer, other, refunds,
              net_collected
    """
    from fees.models import Payment, Refund

    if not (year and month):
        today = get_center_today(center)
        year, month = today.year, today.month
    year, month = int(year), int(month)

    totals = Payment.objects.unscoped().filter(
        center=center,
        payment_date__year=year,
        payment_date__month=month,
    ).exclude(status='reversed').aggregate(
        total=Sum('amount'),
        count=Count('id'),
        cash=Sum('amount', filter=Q(payment_method='cash')),
        bank_transfer=Sum('amount', filter=Q(payment_method='bank_transfer')),
        other=Sum('amount', filter=~Q(payment_method__in=['cash', 'bank_transfer'])),
    )

    refunds = Refund.objects.unscoped().filter(
        center=center,
        refund_date__year=year,
        refund_date__month=month,
    ).aggregate(total=Sum('amount'))['total'] or ZERO

    total = totals['total'] or ZERO

    return {
        'month': date(year, month, 1),
        'total': total,
        'count': totals['count'],
        'cash': totals['cash'] or ZERO,
        'bank_transfer': totals['bank_transfer'] or ZERO,
        'other': totals['other'] or ZERO,
        'refunds': refunds,
        'net_collected': total - refunds,
    }
