"""
Charge construction tests.

Pure functions: no database access needed.
"""

from datetime import date, datetime

from apps.applications.services.charges import (
    LegacyUpfronts,
    PaymentPlan,
    UNLISTED_PRIORITY,
    build_charges,
    parse_date,
    safe_cents,
)

from .helpers import scenario_plan


APP_ID = 'app-1'


def codes(charges):
    return [charge.code for charge in charges]


class TestStructuredPlan:

    def test_twelve_month_lease_with_first_and_last_upfront(self):
        """First and last month are paid upfront, so rent lines cover months 2 to 11."""
        charges = build_charges(APP_ID, plan=PaymentPlan.from_dict(scenario_plan()))
        by_code = {charge.code: charge for charge in charges}

        assert by_code['key_fee'].amount_cents == 5000
        assert by_code['first_month'].amount_cents == 200000
        assert by_code['last_month'].amount_cents == 200000
        assert by_code['security_deposit'].amount_cents == 200000

        rent = [charge for charge in charges if charge.is_rent]
        assert [charge.code for charge in rent] == [f'rent:2025-{m:02d}' for m in range(2, 12)]
        assert all(charge.amount_cents == 200000 for charge in rent)
        assert len(charges) == 14

    def test_buckets_and_keys(self):
        charges = build_charges(APP_ID, plan=PaymentPlan.from_dict(scenario_plan()))
        by_code = {charge.code: charge for charge in charges}

        assert by_code['key_fee'].bucket == 'upfront'
        assert by_code['first_month'].bucket == 'upfront'
        assert by_code['security_deposit'].bucket == 'deposit'
        assert by_code['rent:2025-02'].bucket == 'rent'
        assert by_code['key_fee'].charge_key == 'app-1:upfront:key_fee'
        assert by_code['rent:2025-02'].charge_key == 'app-1:rent:rent:2025-02'

    def test_due_dates(self):
        """Move-in items fall due the day before move-in, the deposit on move-in."""
        charges = build_charges(APP_ID, plan=PaymentPlan.from_dict(scenario_plan()))
        by_code = {charge.code: charge for charge in charges}

        assert by_code['key_fee'].due_date == date(2024, 12, 31)
        assert by_code['first_month'].due_date == date(2024, 12, 31)
        assert by_code['security_deposit'].due_date == date(2025, 1, 1)
        assert by_code['rent:2025-05'].due_date == date(2025, 5, 1)

    def test_default_priority(self):
        charges = build_charges(APP_ID, plan=PaymentPlan.from_dict(scenario_plan()))
        by_code = {charge.code: charge for charge in charges}

        assert by_code['key_fee'].priority_index == 0
        assert by_code['first_month'].priority_index == 1
        assert by_code['last_month'].priority_index == 2
        assert by_code['security_deposit'].priority_index == 3
        assert by_code['rent:2025-02'].priority_index == 2001

    def test_custom_priority_and_unlisted_codes(self):
        raw = scenario_plan()
        raw['priority'] = ['last_month', 'first_month']
        charges = build_charges(APP_ID, plan=PaymentPlan.from_dict(raw))
        by_code = {charge.code: charge for charge in charges}

        assert by_code['last_month'].priority_index == 0
        assert by_code['first_month'].priority_index == 1
        assert by_code['key_fee'].priority_index == UNLISTED_PRIORITY
        assert by_code['security_deposit'].priority_index == UNLISTED_PRIORITY

    def test_first_month_not_required_gets_rent_line(self):
        raw = scenario_plan()
        raw['require_first_before_move_in'] = False
        charges = build_charges(APP_ID, plan=PaymentPlan.from_dict(raw))

        assert 'first_month' not in codes(charges)
        assert 'rent:2025-01' in codes(charges)
        assert 'rent:2025-12' not in codes(charges)

    def test_rent_wraps_into_next_year(self):
        raw = scenario_plan()
        raw['start_date'] = '2025-11-15'
        raw['term_months'] = 4
        raw['require_first_before_move_in'] = False
        raw['require_last_before_move_in'] = False
        charges = build_charges(APP_ID, plan=PaymentPlan.from_dict(raw))

        assert [c.code for c in charges if c.is_rent] == [
            'rent:2025-11', 'rent:2025-12', 'rent:2026-01', 'rent:2026-02',
        ]

    def test_zero_and_malformed_amounts_are_dropped(self):
        raw = scenario_plan()
        raw['upfront_totals'] = {'first_cents': 'abc', 'last_cents': -10, 'key_cents': None}
        raw['security_cents'] = 0
        raw['monthly_rent_cents'] = None
        charges = build_charges(APP_ID, plan=PaymentPlan.from_dict(raw))

        assert charges == []

    def test_every_charge_is_positive(self):
        raw = scenario_plan()
        raw['upfront_totals']['key_cents'] = 0
        charges = build_charges(APP_ID, plan=PaymentPlan.from_dict(raw))

        assert charges
        assert all(charge.amount_cents > 0 for charge in charges)

    def test_start_date_falls_back_to_move_in_date(self):
        raw = scenario_plan()
        del raw['start_date']
        charges = build_charges(
            APP_ID,
            plan=PaymentPlan.from_dict(raw),
            move_in_date=date(2025, 3, 1),
        )
        by_code = {charge.code: charge for charge in charges}

        assert by_code['key_fee'].due_date == date(2025, 2, 28)
        assert by_code['security_deposit'].due_date == date(2025, 3, 1)
        # Without a plan start date there is no rent schedule
        assert not [c for c in charges if c.is_rent]

    def test_output_is_deterministic(self):
        plan = PaymentPlan.from_dict(scenario_plan())
        assert build_charges(APP_ID, plan=plan) == build_charges(APP_ID, plan=plan)


class TestLegacyUpfronts:

    def test_plan_without_upfront_totals_is_not_structured(self):
        assert PaymentPlan.from_dict({'monthly_rent_cents': 1000}) is None
        assert PaymentPlan.from_dict(None) is None

    def test_four_flat_charges(self):
        legacy = LegacyUpfronts.from_dict({'key': 5000, 'first': 150000, 'last': 150000, 'security': 100000})
        charges = build_charges(APP_ID, legacy_upfronts=legacy, move_in_date=date(2025, 6, 1))

        assert codes(charges) == ['key_fee', 'first_month', 'last_month', 'security_deposit']
        assert [c.priority_index for c in charges] == [0, 1, 2, 3]
        assert charges[0].due_date == date(2025, 5, 31)
        assert charges[3].due_date == date(2025, 6, 1)

    def test_missing_legacy_amounts(self):
        legacy = LegacyUpfronts.from_dict({'first': 150000})
        charges = build_charges(APP_ID, legacy_upfronts=legacy)

        assert codes(charges) == ['first_month']
        assert charges[0].due_date is None

    def test_nothing_configured(self):
        assert build_charges(APP_ID) == []


class TestSafeCents:

    def test_coercion(self):
        assert safe_cents('1200') == 1200
        assert safe_cents(99.9) == 99
        assert safe_cents(-5) == 0
        assert safe_cents('n/a') == 0
        assert safe_cents(None) == 0
        assert safe_cents(True) == 0


class TestParseDate:

    def test_accepted_forms(self):
        assert parse_date('2025-01-01') == date(2025, 1, 1)
        assert parse_date('2025-01-01T09:30:00Z') == date(2025, 1, 1)
        assert parse_date(datetime(2025, 1, 1, 9, 30)) == date(2025, 1, 1)
        assert parse_date(date(2025, 1, 1)) == date(2025, 1, 1)

    def test_missing_or_malformed(self):
        assert parse_date(None) is None
        assert parse_date('') is None
        assert parse_date('next tuesday') is None
