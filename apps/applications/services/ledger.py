"""
Ledger assembly.

Combines charge construction, payment allocation, threshold evaluation
and the due-window projection into the single breakdown the tenant and
landlord portals display. Pure: callers pass materialized data in and get
plain dictionaries out, ready for JSON serialization.

Example:
    Building a ledger for an application::

        ledger = build_ledger(
            app_id=str(application.id),
            plan=application.payment_plan,
            legacy_upfronts=application.upfronts,
            move_in_date=application.move_in_date,
            countersign=application.countersign,
            payments=payment_records,
            today=date.today(),
        )
        print(ledger['windows']['due_now_cents'])
"""

from datetime import date
from typing import Iterable, Mapping, Optional

from ..models import ChargeBucket
from .allocation import PaymentRecord, allocate_payments
from .charges import LegacyUpfronts, PaymentPlan, SECURITY_DEPOSIT, build_charges
from .due_windows import build_charge_lines, compute_due_windows, move_in_coverage, next_unpaid_rent
from .thresholds import (
    bucket_allocated_totals,
    resolve_thresholds,
    round_to_dollar,
    threshold_remaining,
)


MIN_TOP_UP_CENTS = 100000


def _quick_amounts(upfront_remaining, deposit_remaining, upfront_threshold, deposit_threshold):
    """Payment amounts the portal offers as one-click buttons."""
    min_top_up = round_to_dollar(min(upfront_remaining, MIN_TOP_UP_CENTS))
    upfront_all = round_to_dollar(max(0, upfront_remaining))
    if upfront_threshold is not None:
        upfront_beyond_min = round_to_dollar(max(0, upfront_remaining - upfront_threshold))
    else:
        upfront_beyond_min = 0

    if deposit_threshold is not None:
        deposit_min = round_to_dollar(max(0, min(deposit_remaining, deposit_threshold)))
    else:
        deposit_min = round_to_dollar(max(0, deposit_remaining))

    upfront = []
    for amount in (min_top_up, upfront_beyond_min, upfront_all):
        if amount > 0 and amount not in upfront:
            upfront.append(amount)

    return {
        'upfront': upfront,
        'deposit': [deposit_min] if deposit_min > 0 else [],
    }


def build_ledger(
    app_id: str,
    plan: Optional[Mapping] = None,
    legacy_upfronts: Optional[Mapping] = None,
    move_in_date: Optional[date] = None,
    countersign: Optional[Mapping] = None,
    payments: Iterable[PaymentRecord] = (),
    today: Optional[date] = None,
) -> dict:
    """
    Build the full payment breakdown for one application.

    Returns:
        dict: containing
            - charges (list[dict]): per-charge posted/pending/remaining
            - due_upfront_cents / due_deposit_cents: unpaid totals (rent excluded)
            - gross_upfront_cents / gross_deposit_cents: totals before payments
            - allocated (dict): allocated cents per bucket
            - countersign (dict): thresholds, remainders and met flags
            - windows (dict): due-window totals
            - next_rent (dict | None), first_covered, last_covered
            - quick_amounts (dict): authorized one-click payment amounts
    """
    today = today or date.today()
    structured = PaymentPlan.from_dict(plan)
    charges = build_charges(
        app_id,
        plan=structured,
        legacy_upfronts=LegacyUpfronts.from_dict(legacy_upfronts),
        move_in_date=move_in_date,
    )
    allocation = allocate_payments(charges, list(payments))
    lines = build_charge_lines(charges, allocation)

    upfront = ChargeBucket.UPFRONT.value
    deposit = ChargeBucket.DEPOSIT.value

    gross = {upfront: 0, deposit: 0}
    due = {upfront: 0, deposit: 0}
    for line in lines:
        if line.bucket in gross:
            gross[line.bucket] += line.amount_cents
            due[line.bucket] += line.remaining_cents

    allocated = bucket_allocated_totals(charges, allocation)
    # Deposit threshold counts the security deposit line only
    deposit_allocated = sum(
        min(line.amount_cents, line.posted_cents + line.pending_cents)
        for line in lines if line.code == SECURITY_DEPOSIT
    )

    thresholds = resolve_thresholds(countersign, plan)
    upfront_remaining = threshold_remaining(thresholds[upfront], allocated[upfront])
    deposit_remaining = threshold_remaining(thresholds[deposit], deposit_allocated)

    resolved_move_in = (structured.start_date if structured else None) or move_in_date
    windows = compute_due_windows(
        lines,
        threshold_remainders=(upfront_remaining, deposit_remaining),
        move_in_date=resolved_move_in,
        today=today,
    )

    next_rent = next_unpaid_rent(lines)
    first_covered, last_covered = move_in_coverage(lines)

    return {
        'charges': [line.to_dict() for line in lines],
        'due_upfront_cents': due[upfront],
        'due_deposit_cents': due[deposit],
        'gross_upfront_cents': gross[upfront],
        'gross_deposit_cents': gross[deposit],
        'allocated': allocated,
        'countersign': {
            'upfront_min_threshold_cents': thresholds[upfront],
            'upfront_min_remaining_cents': upfront_remaining,
            'deposit_min_threshold_cents': thresholds[deposit],
            'deposit_min_remaining_cents': deposit_remaining,
            'upfront_met': None if upfront_remaining is None else upfront_remaining <= 0,
            'deposit_met': None if deposit_remaining is None else deposit_remaining <= 0,
        },
        'windows': {
            'due_now_cents': windows.due_now_cents,
            'due_before_move_in_cents': windows.due_before_move_in_cents,
            'due_next_30_cents': windows.due_next_30_cents,
            'later_cents': windows.later_cents,
            'move_in_date': windows.move_in_date,
        },
        'next_rent': None if next_rent is None else {
            'ym': next_rent.ym,
            'due_date': next_rent.due_date,
            'amount_cents': next_rent.amount_cents,
            'remaining_cents': next_rent.remaining_cents,
        },
        'first_covered': first_covered,
        'last_covered': last_covered,
        'quick_amounts': _quick_amounts(
            due[upfront], due[deposit], thresholds[upfront], thresholds[deposit]
        ),
    }
