# fees/balances.py

"""
Outstanding-balance aggregation.

Pure functions over fee records that are already in memory: no queries,
no I/O, no exceptions for well-typed input. A "fee record" is anything
exposing student_id, amount_due and amount_paid (StudentFee instances,
FeeRecord values, or StudentBalance values being re-aggregated).

All arithmetic is Decimal. Outstanding may be negative (overpayment) and
is never clamped here; credit is only netted by net_owing().
"""

from decimal import Decimal
import logging

logger = logging.getLogger(__name__)

ZERO = Decimal('0')

# Payment status labels
PAID = 'paid'
PARTIAL = 'partial'
UNPAID = 'unpaid'

PAYMENT_STATUS_CHOICES = [
    (PAID, 'Paid'),
    (PARTIAL, 'Partial'),
    (UNPAID, 'Unpaid'),
]


def _to_decimal(value):
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


class FeeRecord:
    """
    Plain in-memory fee record, for callers that do not hold model instances
    (imports, API payloads, tests).
    """

    __slots__ = ('student_id', 'amount_due', 'amount_paid', 'period', 'fee_type')

    def __init__(self, student_id, amount_due, amount_paid=ZERO, period=None, fee_type='tuition'):
        self.student_id = student_id
        self.amount_due = _to_decimal(amount_due)
        self.amount_paid = _to_decimal(amount_paid)
        self.period = period
        self.fee_type = fee_type

    @property
    def balance(self):
        return self.amount_due - self.amount_paid

    @property
    def status(self):
        return classify_fee(self.amount_due, self.amount_paid)

    def __repr__(self):
        return (
            f"FeeRecord(student_id={self.student_id!r}, period={self.period!r}, "
            f"fee_type={self.fee_type!r}, due={self.amount_due}, paid={self.amount_paid})"
        )


class StudentBalance:
    """
    Totals of one student's fee records. Derived on every read, never stored.

    credit_balance is tracked independently on the student and is not part
    of outstanding.
    """

    __slots__ = ('student_id', 'total_due', 'total_paid', 'credit_balance', 'fee_count')

    def __init__(self, student_id, total_due=ZERO, total_paid=ZERO, credit_balance=ZERO, fee_count=0):
        self.student_id = student_id
        self.total_due = _to_decimal(total_due)
        self.total_paid = _to_decimal(total_paid)
        self.credit_balance = _to_decimal(credit_balance)
        self.fee_count = fee_count

    @property
    def outstanding(self):
        return self.total_due - self.total_paid

    # Lets a balance be fed back into aggregate_balances as a synthetic record
    @property
    def amount_due(self):
        return self.total_due

    @property
    def amount_paid(self):
        return self.total_paid

    def add(self, amount_due, amount_paid):
        self.total_due += _to_decimal(amount_due)
        self.total_paid += _to_decimal(amount_paid)
        self.fee_count += 1

    def as_dict(self):
        return {
            'student_id': self.student_id,
            'total_due': self.total_due,
            'total_paid': self.total_paid,
            'outstanding': self.outstanding,
            'credit_balance': self.credit_balance,
            'net_owing': net_owing(self),
            'status': classify(self),
        }

    def __eq__(self, other):
        if not isinstance(other, StudentBalance):
            return NotImplemented
        return (
            self.student_id == other.student_id
            and self.total_due == other.total_due
            and self.total_paid == other.total_paid
            and self.credit_balance == other.credit_balance
        )

    def __repr__(self):
        return (
            f"StudentBalance(student_id={self.student_id!r}, due={self.total_due}, "
            f"paid={self.total_paid}, outstanding={self.outstanding})"
        )


# =============================================================================
# AGGREGATION
# =============================================================================

def aggregate_balances(records, credit_balances=None):
    """
    Group fee records by student and total them.

    Args:
        records: Iterable of fee records, in any order.
        credit_balances (dict, optional): student_id -> credit, copied onto
            the resulting balances untouched.

    Returns:
        dict: student_id -> StudentBalance, one entry per student seen, in
        order of first appearance. Students absent from the input are absent
        from the result.
    """
    balances = {}
    credit_balances = credit_balances or {}

    for record in records:
        balance = balances.get(record.student_id)
        if balance is None:
            balance = StudentBalance(
                record.student_id,
                credit_balance=credit_balances.get(record.student_id, ZERO),
            )
            balances[record.student_id] = balance
        balance.add(record.amount_due, record.amount_paid)

    return balances


def merge_balances(*mappings):
    """
    Combine aggregations of disjoint batches of records.

    merge_balances(aggregate_balances(a), aggregate_balances(b)) has the same
    totals as aggregate_balances(a + b). Credit is taken from the first
    mapping that knows the student.
    """
    merged = {}

    for mapping in mappings:
        for student_id, balance in mapping.items():
            target = merged.get(student_id)
            if target is None:
                merged[student_id] = StudentBalance(
                    student_id,
                    total_due=balance.total_due,
                    total_paid=balance.total_paid,
                    credit_balance=balance.credit_balance,
                    fee_count=balance.fee_count,
                )
            else:
                target.total_due += balance.total_due
                target.total_paid += balance.total_paid
                target.fee_count += balance.fee_count

    return merged


# =============================================================================
# CLASSIFICATION
# =============================================================================

def classify(balance):
    """
    Payment status of a student balance.

    Returns:
        'paid'    total due > 0 and nothing outstanding
        'unpaid'  nothing paid and something outstanding
        'partial' something paid and something outstanding
        None      no fees (total due is zero); not the same as paid
    """
    if balance.total_due == ZERO:
        return None

    if balance.outstanding <= ZERO:
        return PAID

    if balance.total_paid <= ZERO:
        return UNPAID

    return PARTIAL


def classify_fee(amount_due, amount_paid):
    """
    Status stored on a single fee record.

    A fee is paid once amount_paid reaches amount_due, so a zero-amount fee
    is paid as soon as it exists.
    """
    amount_due = _to_decimal(amount_due)
    amount_paid = _to_decimal(amount_paid)

    if amount_paid >= amount_due:
        return PAID
    if amount_paid > ZERO:
        return PARTIAL
    return UNPAID


def net_owing(balance):
    """
    Amount the student still has to pay after applying their credit.
    Never negative.
    """
    return max(ZERO, balance.outstanding - balance.credit_balance)


# =============================================================================
# PRESENTATION
# =============================================================================

def rank_by_outstanding_descending(balances):
    """
    Order balances by outstanding amount, largest first.

    Accepts a mapping (values are ranked) or any iterable of balances.
    The sort is stable: equal amounts keep their input order.
    """
    if hasattr(balances, 'values'):
        balances = balances.values()
    return sorted(balances, key=lambda balance: balance.outstanding, reverse=True)


def summarize_fees(records):
    """
    Center-wide fee totals.

    Registration fees are reported on their own; every other fee type is
    counted as tuition. Status counts use each record's own status.

    Returns:
        dict: total_due, total_paid, total_outstanding, by_type, by_status
    """
    summary = {
        'total_due': ZERO,
        'total_paid': ZERO,
        'total_outstanding': ZERO,
        'by_type': {
            'registration': {'due': ZERO, 'paid': ZERO, 'outstanding': ZERO},
            'tuition': {'due': ZERO, 'paid': ZERO, 'outstanding': ZERO},
        },
        'by_status': {PAID: 0, PARTIAL: 0, UNPAID: 0},
    }

    for record in records:
        due = _to_decimal(record.amount_due)
        paid = _to_decimal(record.amount_paid)
        outstanding = due - paid

        summary['total_due'] += due
        summary['total_paid'] += paid
        summary['total_outstanding'] += outstanding

        fee_type = 'registration' if getattr(record, 'fee_type', None) == 'registration' else 'tuition'
        bucket = summary['by_type'][fee_type]
        bucket['due'] += due
        bucket['paid'] += paid
        bucket['outstanding'] += outstanding

        status = getattr(record, 'status', None) or classify_fee(due, paid)
        if status not in summary['by_status']:
            status = UNPAID
        summary['by_status'][status] += 1

    return summary
