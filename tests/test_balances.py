# tests/test_balances.py

from decimal import Decimal

import pytest

from fees.balances import (
    PAID, PARTIAL, UNPAID,
    FeeRecord, StudentBalance,
    aggregate_balances, merge_balances, classify, classify_fee, net_owing,
    rank_by_outstanding_descending, summarize_fees,
)

D = Decimal


def record(student, due, paid='0', **kwargs):
    return FeeRecord(student, D(due), D(paid), **kwargs)


@pytest.fixture
def mixed_records():
    return [
        record('A', '300', '300', period='2025-01'),
        record('A', '100', '0', period='2025-02'),
        record('B', '200', '50', period='2025-01'),
    ]


# =============================================================================
# AGGREGATION
# =============================================================================

class TestAggregateBalances:

    def test_groups_and_totals_per_student(self, mixed_records):
        balances = aggregate_balances(mixed_records)

        assert set(balances) == {'A', 'B'}
        assert balances['A'].total_due == D('400')
        assert balances['A'].total_paid == D('300')
        assert balances['A'].outstanding == D('100')
        assert balances['B'].total_due == D('200')
        assert balances['B'].total_paid == D('50')
        assert balances['B'].outstanding == D('150')

    def test_fully_paid_single_record(self):
        balances = aggregate_balances([record('C', '500', '500')])

        assert balances['C'].outstanding == D('0')
        assert classify(balances['C']) == PAID

    def test_empty_input_gives_empty_mapping(self):
        assert aggregate_balances([]) == {}

    def test_students_absent_from_input_are_absent(self, mixed_records):
        assert 'Z' not in aggregate_balances(mixed_records)

    def test_outstanding_is_conserved(self, mixed_records):
        balances = aggregate_balances(mixed_records)

        total_outstanding = sum((b.outstanding for b in balances.values()), D('0'))
        expected = sum((r.amount_due - r.amount_paid for r in mixed_records), D('0'))

        assert total_outstanding == expected

    def test_zero_due_records_still_contribute(self):
        balances = aggregate_balances([record('A', '0', '0'), record('A', '150', '0')])

        assert balances['A'].fee_count == 2
        assert balances['A'].total_due == D('150')

    def test_overpayment_passes_through_unclamped(self):
        balances = aggregate_balances([record('A', '100', '160')])

        assert balances['A'].outstanding == D('-60')

    def test_decimal_arithmetic_has_no_float_drift(self):
        records = [record('A', '0.10', '0')] * 3

        assert aggregate_balances(records)['A'].total_due == D('0.30')

    def test_accepts_numeric_strings_and_ints(self):
        balances = aggregate_balances([FeeRecord('A', 250, '100.50')])

        assert balances['A'].outstanding == D('149.50')

    def test_first_seen_order_is_kept(self):
        records = [record('B', '10'), record('A', '10'), record('B', '10')]

        assert list(aggregate_balances(records)) == ['B', 'A']

    def test_credit_is_copied_not_netted(self):
        balances = aggregate_balances([record('A', '400', '100')], {'A': D('50')})

        assert balances['A'].credit_balance == D('50')
        assert balances['A'].outstanding == D('300')

    def test_reaggregating_balances_is_idempotent(self, mixed_records):
        once = aggregate_balances(mixed_records)
        twice = aggregate_balances(once.values())

        assert twice == once

    def test_splittable_across_batches(self, mixed_records):
        first, second = mixed_records[:1], mixed_records[1:]

        merged = merge_balances(aggregate_balances(first), aggregate_balances(second))

        assert merged == aggregate_balances(mixed_records)
        assert merged['A'].fee_count == 2

    def test_merge_does_not_mutate_inputs(self):
        left = aggregate_balances([record('A', '100')])
        right = aggregate_balances([record('A', '50')])

        merge_balances(left, right)

        assert left['A'].total_due == D('100')


# =============================================================================
# CLASSIFICATION
# =============================================================================

class TestClassify:

    @pytest.mark.parametrize('due, paid, expected', [
        ('400', '300', PARTIAL),
        ('200', '50', PARTIAL),
        ('500', '500', PAID),
        ('500', '0', UNPAID),
        ('100', '160', PAID),
    ])
    def test_status(self, due, paid, expected):
        assert classify(StudentBalance('A', D(due), D(paid))) == expected

    def test_no_fees_is_not_paid(self):
        assert classify(StudentBalance('A')) is None

    def test_worked_example_classification(self, mixed_records):
        balances = aggregate_balances(mixed_records)

        assert {sid: classify(b) for sid, b in balances.items()} == {'A': PARTIAL, 'B': PARTIAL}

    def test_every_balance_gets_exactly_one_status(self):
        amounts = [D('0'), D('50'), D('100'), D('150')]
        for due in amounts:
            for paid in amounts:
                status = classify(StudentBalance('A', due, paid))
                if due == 0:
                    assert status is None
                else:
                    assert status in (PAID, PARTIAL, UNPAID)

    @pytest.mark.parametrize('due, paid, expected', [
        ('100', '100', PAID),
        ('100', '120', PAID),
        ('100', '40', PARTIAL),
        ('100', '0', UNPAID),
        ('0', '0', PAID),
    ])
    def test_classify_fee(self, due, paid, expected):
        assert classify_fee(due, paid) == expected

    def test_fee_record_status(self):
        assert record('A', '100', '40').status == PARTIAL


# =============================================================================
# NET OWING
# =============================================================================

class TestNetOwing:

    def test_credit_reduces_amount_owing(self):
        assert net_owing(StudentBalance('A', D('400'), D('100'), D('50'))) == D('250')

    def test_never_negative(self):
        assert net_owing(StudentBalance('A', D('100'), D('0'), D('300'))) == D('0')
        assert net_owing(StudentBalance('A', D('100'), D('150'))) == D('0')

    def test_as_dict_includes_net_owing_and_status(self):
        data = StudentBalance('A', D('400'), D('100'), D('50')).as_dict()

        assert data['outstanding'] == D('300')
        assert data['net_owing'] == D('250')
        assert data['status'] == PARTIAL


# =============================================================================
# RANKING
# =============================================================================

class TestRank:

    def test_largest_outstanding_first(self, mixed_records):
        ranked = rank_by_outstanding_descending(aggregate_balances(mixed_records))

        assert [b.student_id for b in ranked] == ['B', 'A']
        assert [b.outstanding for b in ranked] == [D('150'), D('100')]

    def test_ties_keep_input_order(self):
        balances = [
            StudentBalance('first', D('100')),
            StudentBalance('big', D('300')),
            StudentBalance('second', D('100')),
            StudentBalance('third', D('100')),
        ]

        ranked = rank_by_outstanding_descending(balances)

        assert [b.student_id for b in ranked] == ['big', 'first', 'second', 'third']

    def test_negative_outstanding_sorts_last(self):
        balances = [StudentBalance('over', D('100'), D('200')), StudentBalance('owes', D('50'))]

        assert [b.student_id for b in rank_by_outstanding_descending(balances)] == ['owes', 'over']

    def test_empty(self):
        assert rank_by_outstanding_descending({}) == []


# =============================================================================
# SUMMARY
# =============================================================================

def test_summarize_fees_splits_registration_from_tuition():
    records = [
        record('A', '250', '250', fee_type='registration'),
        record('A', '500', '200'),
        record('B', '500', '0', fee_type='tuition'),
    ]

    summary = summarize_fees(records)

    assert summary['total_due'] == D('1250')
    assert summary['total_paid'] == D('450')
    assert summary['total_outstanding'] == D('800')
    assert summary['by_type']['registration'] == {'due': D('250'), 'paid': D('250'), 'outstanding': D('0')}
    assert summary['by_type']['tuition']['outstanding'] == D('800')
    assert summary['by_status'] == {PAID: 1, PARTIAL: 1, UNPAID: 1}


def test_summarize_fees_empty():
    summary = summarize_fees([])

    assert summary['total_due'] == D('0')
    assert summary['by_status'] == {PAID: 0, PARTIAL: 0, UNPAID: 0}
