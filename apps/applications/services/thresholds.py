"""
Countersign threshold evaluation.

A countersign threshold is the minimum amount that must be allocated to a
bucket before the lease may move past ``min_due``. Totals stay in integer
cents; only the displayed remainders are rounded to whole dollars.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..models import ChargeBucket
from .allocation import AllocationResult
from .charges import Charge, safe_cents


@dataclass(frozen=True)
class MinRule:
    bucket: str
    min_cents: int


def derive_min_rules(upfront_threshold_cents=None, deposit_threshold_cents=None) -> List[MinRule]:
    """Build one rule per positive threshold (upfront first, then deposit)."""
    rules = []
    upfront = safe_cents(upfront_threshold_cents)
    deposit = safe_cents(deposit_threshold_cents)
    if upfront > 0:
        rules.append(MinRule(bucket=ChargeBucket.UPFRONT.value, min_cents=upfront))
    if deposit > 0:
        rules.append(MinRule(bucket=ChargeBucket.DEPOSIT.value, min_cents=deposit))
    return rules


def resolve_thresholds(countersign: Optional[Mapping], plan: Optional[Mapping]) -> Dict[str, Optional[int]]:
    """
    Resolve the configured thresholds per bucket.

    Countersign overrides on the application win over plan values. A bucket
    with nothing configured maps to None (as opposed to an explicit 0).
    """
    countersign = countersign if isinstance(countersign, Mapping) else {}
    plan = plan if isinstance(plan, Mapping) else {}

    def pick(override_key, plan_key):
        raw = countersign.get(override_key)
        if raw is None:
            raw = plan.get(plan_key)
        if raw is None:
            return None
        try:
            float(raw)
        except (TypeError, ValueError):
            return None
        return safe_cents(raw)

    return {
        ChargeBucket.UPFRONT.value: pick('upfront_min_cents', 'countersign_upfront_threshold_cents'),
        ChargeBucket.DEPOSIT.value: pick('deposit_min_cents', 'countersign_deposit_threshold_cents'),
    }


def bucket_allocated_totals(charges: Iterable[Charge], allocation: AllocationResult) -> Dict[str, int]:
    """Sum ``min(amount, posted + pending)`` per bucket."""
    totals = {bucket.value: 0 for bucket in ChargeBucket}
    for charge in charges:
        allocated = min(charge.amount_cents, allocation.allocated_for(charge.charge_key))
        totals[charge.bucket] = totals.get(charge.bucket, 0) + allocated
    return totals


def countersign_minimum_satisfied(
    rules: Optional[Sequence[MinRule]],
    totals: Optional[Mapping[str, int]],
) -> bool:
    """
    Check that every configured rule is met.

    An empty rule list means "not ready" and returns False. The
    ``system_min_ready`` transition treats empty rules the other way round
    (it skips straight to countersigned), and both behaviors are kept.
    """
    if not rules:
        return False
    totals = totals or {}
    return all(safe_cents(totals.get(rule.bucket)) >= safe_cents(rule.min_cents) for rule in rules)


def round_up_to_dollar(cents: int) -> int:
    return -(-int(cents) // 100) * 100


def round_to_dollar(cents: int) -> int:
    """Round half-up to the nearest whole dollar, in cents."""
    return ((int(cents) + 50) // 100) * 100


def threshold_remaining(threshold_cents: Optional[int], allocated_cents: int) -> Optional[int]:
    """Amount still needed to meet a threshold, rounded up to whole dollars for display."""
    if threshold_cents is None:
        return None
    return round_up_to_dollar(max(0, threshold_cents - allocated_cents))
