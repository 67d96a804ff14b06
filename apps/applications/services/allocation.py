"""
Payment allocation.

Distributes an application's payment history across its charges:
oldest payment first, charges in fixed priority order, each payment kind
restricted to the buckets it may fund. Nothing is persisted; the result is
recomputed on every read and is identical for identical input.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from ..models import ChargeBucket, PaymentKind, PaymentStatus
from .charges import Charge
from .exceptions import UnknownPaymentKindError


logger = logging.getLogger(__name__)


ALLOCATING_STATUSES = frozenset({PaymentStatus.SUCCEEDED, PaymentStatus.PROCESSING})

# Upfront money spills over into rent once the move-in items are covered.
_KIND_BUCKETS: Dict[str, FrozenSet[str]] = {
    PaymentKind.DEPOSIT: frozenset({ChargeBucket.DEPOSIT}),
    PaymentKind.RENT: frozenset({ChargeBucket.RENT}),
    PaymentKind.UPFRONT: frozenset({ChargeBucket.UPFRONT, ChargeBucket.RENT}),
    PaymentKind.OPERATING: frozenset({ChargeBucket.UPFRONT, ChargeBucket.RENT}),
    PaymentKind.FEE: frozenset(),
}


def normalize_payment_kind(kind) -> FrozenSet[str]:
    """
    Map a payment kind to the set of charge buckets it may fund.

    Raises:
        UnknownPaymentKindError: If ``kind`` is outside the known domain.
    """
    key = str(kind or '').strip().lower()
    try:
        return _KIND_BUCKETS[key]
    except KeyError:
        raise UnknownPaymentKindError(f"Unknown payment kind: {kind!r}")


@dataclass(frozen=True)
class PaymentRecord:
    """Materialized payment history row."""

    id: str
    kind: str
    status: str
    amount_cents: int
    created_at: Optional[datetime] = None


@dataclass
class AllocationResult:
    posted: Dict[str, int] = field(default_factory=dict)
    pending: Dict[str, int] = field(default_factory=dict)

    def posted_for(self, charge_key: str) -> int:
        return self.posted.get(charge_key, 0)

    def pending_for(self, charge_key: str) -> int:
        return self.pending.get(charge_key, 0)

    def allocated_for(self, charge_key: str) -> int:
        return self.posted_for(charge_key) + self.pending_for(charge_key)


def order_charges(charges: Iterable[Charge]) -> List[Charge]:
    return sorted(charges, key=lambda c: (c.priority_index, c.code))


def order_payments(payments: Iterable[PaymentRecord]) -> List[PaymentRecord]:
    # Payments without a timestamp go first; identical timestamps break on id.
    return sorted(
        payments,
        key=lambda p: (p.created_at is not None, p.created_at or 0, str(p.id)),
    )


def allocate_payments(
    charges: Sequence[Charge],
    payments: Iterable[PaymentRecord],
) -> AllocationResult:
    """
    Greedy FIFO allocation of payments over priority-ordered charges.

    Only succeeded payments post; processing payments are held as pending.
    A charge never receives more than its amount because each take is
    bounded by the charge's open amount.

    Args:
        charges: Charges from ``build_charges``.
        payments: Payment history for the same application.

    Returns:
        AllocationResult: posted and pending cents per charge key.
    """
    ordered_charges = order_charges(charges)
    result = AllocationResult()

    for payment in order_payments(payments):
        if payment.status not in ALLOCATING_STATUSES:
            continue

        try:
            allowed = normalize_payment_kind(payment.kind)
        except UnknownPaymentKindError:
            logger.warning(
                "Skipping payment %s with unknown kind %r", payment.id, payment.kind
            )
            continue
        if not allowed:
            continue

        remaining = max(0, int(payment.amount_cents or 0))
        if remaining <= 0:
            continue

        target = result.posted if payment.status == PaymentStatus.SUCCEEDED else result.pending

        for charge in ordered_charges:
            if remaining <= 0:
                break
            if charge.bucket not in allowed:
                continue

            open_cents = charge.amount_cents - result.allocated_for(charge.charge_key)
            if open_cents <= 0:
                continue

            take = min(open_cents, remaining)
            target[charge.charge_key] = target.get(charge.charge_key, 0) + take
            remaining -= take

    return result
