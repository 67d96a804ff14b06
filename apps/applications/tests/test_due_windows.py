"""
Due-window projection and ledger tests.
"""

from datetime import date, datetime, timezone as dt_timezone

from apps.applications.services.allocation import AllocationResult, PaymentRecord
from apps.applications.services.due_windows import (
    ChargeLine,
    compute_due_windows,
    move_in_coverage,
    next_unpaid_rent,
)
from apps.applications.services.ledger import build_ledger

from .helpers import scenario_plan


TODAY = date(2024, 12, 1)
MOVE_IN = date(2025, 1, 1)


def line(code, remaining, due_date, bucket='upfront', amount=None):
    amount = amount if amount is not None else remaining
    return ChargeLine(
        charge_key=f'app-1:{bucket}:{code}',
        bucket=bucket,
        code=code,
        label=code,
        amount_cents=amount,
        priority_index=0,
        due_date=due_date,
        posted_cents=amount - remaining,
        pending_cents=0,
        remaining_cents=remaining,
    )


def upfront_payment(amount, status='succeeded'):
    return PaymentRecord(
        id='p1', kind='upfront', status=status, amount_cents=amount,
        created_at=datetime(2024, 12, 1, tzinfo=dt_timezone.utc),
    )


# ============================================================================
# WINDOWS
# ============================================================================

class TestDueWindows:

    def test_overdue_lines_are_due_now(self):
        windows = compute_due_windows([line('key_fee', 5000, date(2024, 11, 30))], today=TODAY)
        assert windows.due_now_cents == 5000

    def test_threshold_remainders_are_due_now(self):
        windows = compute_due_windows([], threshold_remainders=(9500, None, 0), today=TODAY)
        assert windows.due_now_cents == 9500

    def test_move_in_items_due_on_move_in_date(self):
        lines = [
            line('key_fee', 5000, MOVE_IN),
            line('security_deposit', 200000, MOVE_IN, bucket='deposit'),
        ]
        windows = compute_due_windows(lines, move_in_date=MOVE_IN, today=TODAY)

        assert windows.due_before_move_in_cents == 5000
        # Deposit is not a move-in item and is more than 30 days out
        assert windows.due_next_30_cents == 0
        assert windows.later_cents == 200000

    def test_next_thirty_days_and_later(self):
        lines = [
            line('rent:2024-12', 1000, date(2024, 12, 31), bucket='rent'),
            line('rent:2025-01', 2000, date(2025, 1, 1), bucket='rent'),
            line('rent:2025-02', 3000, None, bucket='rent'),
        ]
        windows = compute_due_windows(lines, today=TODAY)

        assert windows.due_next_30_cents == 1000
        assert windows.later_cents == 5000

    def test_each_line_counted_once(self):
        lines = [line('key_fee', 5000, TODAY)]
        windows = compute_due_windows(lines, move_in_date=TODAY, today=TODAY)

        assert windows.due_now_cents == 5000
        assert windows.due_before_move_in_cents == 0
        assert windows.due_next_30_cents == 0
        assert windows.later_cents == 0

    def test_paid_lines_are_ignored(self):
        windows = compute_due_windows([line('key_fee', 0, TODAY, amount=5000)], today=TODAY)
        assert windows == compute_due_windows([], today=TODAY)


class TestRentAndCoverage:

    def test_next_unpaid_rent(self):
        lines = [
            line('rent:2025-03', 200000, date(2025, 3, 1), bucket='rent'),
            line('rent:2025-02', 0, date(2025, 2, 1), bucket='rent', amount=200000),
        ]
        nxt = next_unpaid_rent(lines)

        assert nxt.ym == '2025-03'
        assert nxt.remaining_cents == 200000

    def test_no_unpaid_rent(self):
        assert next_unpaid_rent([line('key_fee', 5000, TODAY)]) is None

    def test_coverage_flags(self):
        lines = [line('first_month', 0, TODAY, amount=1000), line('last_month', 1, TODAY)]
        assert move_in_coverage(lines) == (True, False)

    def test_missing_lines_are_not_covered(self):
        assert move_in_coverage([]) == (False, False)


# ============================================================================
# LEDGER
# ============================================================================

class TestLedger:

    def test_partial_upfront_payment(self):
        ledger = build_ledger(
            'app-1',
            plan=scenario_plan(),
            payments=[upfront_payment(205000)],
            today=TODAY,
        )

        assert ledger['gross_upfront_cents'] == 405000
        assert ledger['gross_deposit_cents'] == 200000
        assert ledger['due_upfront_cents'] == 200000
        assert ledger['due_deposit_cents'] == 200000
        assert ledger['allocated'] == {'upfront': 205000, 'deposit': 0, 'rent': 0}
        assert ledger['first_covered'] is True
        assert ledger['last_covered'] is False
        assert ledger['next_rent']['ym'] == '2025-02'

        windows = ledger['windows']
        assert windows['due_now_cents'] == 0
        assert windows['due_next_30_cents'] == 200000
        assert windows['later_cents'] == 200000 + 10 * 200000
        assert windows['move_in_date'] == MOVE_IN

        assert ledger['countersign']['upfront_min_remaining_cents'] is None
        assert ledger['countersign']['upfront_met'] is None
        assert ledger['quick_amounts'] == {'upfront': [100000, 200000], 'deposit': [200000]}

    def test_countersign_thresholds(self):
        ledger = build_ledger(
            'app-1',
            plan=scenario_plan(),
            countersign={'upfront_min_cents': 300000, 'deposit_min_cents': 50000},
            payments=[upfront_payment(205000)],
            today=TODAY,
        )
        countersign = ledger['countersign']

        assert countersign['upfront_min_remaining_cents'] == 95000
        assert countersign['deposit_min_remaining_cents'] == 50000
        assert countersign['upfront_met'] is False
        assert countersign['deposit_met'] is False
        assert ledger['windows']['due_now_cents'] == 145000
        assert ledger['quick_amounts']['deposit'] == [50000]

    def test_pending_payment_counts_toward_threshold(self):
        ledger = build_ledger(
            'app-1',
            plan=scenario_plan(),
            countersign={'upfront_min_cents': 5000},
            payments=[upfront_payment(5000, status='processing')],
            today=TODAY,
        )
        key_fee = ledger['charges'][0]

        assert key_fee['code'] == 'key_fee'
        assert key_fee['posted_cents'] == 0
        assert key_fee['pending_cents'] == 5000
        assert key_fee['remaining_cents'] == 0
        assert ledger['countersign']['upfront_met'] is True

    def test_legacy_application(self):
        ledger = build_ledger(
            'app-1',
            legacy_upfronts={'key': 5000, 'first': 150000, 'last': 0, 'security': 100000},
            move_in_date=MOVE_IN,
            today=TODAY,
        )

        assert [c['code'] for c in ledger['charges']] == ['key_fee', 'first_month', 'security_deposit']
        assert ledger['next_rent'] is None
        assert ledger['last_covered'] is False

    def test_empty_application(self):
        ledger = build_ledger('app-1', today=TODAY)

        assert ledger['charges'] == []
        assert ledger['quick_amounts'] == {'upfront': [], 'deposit': []}
