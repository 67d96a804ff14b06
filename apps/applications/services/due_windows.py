"""
Due-window projection.

Buckets each charge's unallocated remainder into presentation windows
(due now, due before move-in, due in the next 30 days, later) and derives
the next unpaid rent line and the first/last month coverage flags. This is
a read-only projection; it never drives a state transition.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional, Sequence

from .allocation import AllocationResult
from .charges import Charge, FIRST_MONTH, LAST_MONTH, MOVE_IN_CODES, RENT_PREFIX


DUE_SOON_DAYS = 30


@dataclass(frozen=True)
class ChargeLine:
    """A charge together with what has been allocated against it."""

    charge_key: str
    bucket: str
    code: str
    label: str
    amount_cents: int
    priority_index: int
    due_date: Optional[date]
    posted_cents: int
    pending_cents: int
    remaining_cents: int

    def to_dict(self) -> dict:
        return {
            'charge_key': self.charge_key,
            'bucket': self.bucket,
            'code': self.code,
            'label': self.label,
            'amount_cents': self.amount_cents,
            'priority_index': self.priority_index,
            'due_date': self.due_date,
            'posted_cents': self.posted_cents,
            'pending_cents': self.pending_cents,
            'remaining_cents': self.remaining_cents,
        }


@dataclass(frozen=True)
class DueWindows:
    due_now_cents: int = 0
    due_before_move_in_cents: int = 0
    due_next_30_cents: int = 0
    later_cents: int = 0
    move_in_date: Optional[date] = None


@dataclass(frozen=True)
class NextRent:
    ym: str
    due_date: Optional[date]
    amount_cents: int
    remaining_cents: int


def build_charge_lines(charges: Iterable[Charge], allocation: AllocationResult) -> List[ChargeLine]:
    lines = []
    for charge in charges:
        posted = max(0, allocation.posted_for(charge.charge_key))
        pending = max(0, allocation.pending_for(charge.charge_key))
        lines.append(ChargeLine(
            charge_key=charge.charge_key,
            bucket=charge.bucket,
            code=charge.code,
            label=charge.label,
            amount_cents=charge.amount_cents,
            priority_index=charge.priority_index,
            due_date=charge.due_date,
            posted_cents=posted,
            pending_cents=pending,
            remaining_cents=max(0, charge.amount_cents - posted - pending),
        ))
    return lines


def compute_due_windows(
    lines: Sequence[ChargeLine],
    threshold_remainders: Iterable[Optional[int]] = (),
    move_in_date: Optional[date] = None,
    today: Optional[date] = None,
) -> DueWindows:
    """
    Bucket unpaid remainders into presentation windows.

    Passes run in order and a line counts in the first window it matches:

    1. unmet countersign-threshold remainders are due now
    2. lines due today or earlier are due now
    3. move-in items due on the (future) move-in date are due before move-in
    4. lines due within the next 30 days
    5. everything else unpaid is later

    Args:
        lines: Charge lines from ``build_charge_lines``.
        threshold_remainders: Display remainders of unmet countersign
            thresholds (None entries are ignored).
        move_in_date: Lease move-in date, if known.
        today: Reference date (defaults to ``date.today()``).

    Returns:
        DueWindows: Totals in cents per window.
    """
    today = today or date.today()
    due_soon_limit = today + timedelta(days=DUE_SOON_DAYS)

    due_now = sum(r for r in threshold_remainders if r)
    due_before_move_in = 0
    due_next_30 = 0
    seen = set()

    unpaid = [line for line in lines if line.remaining_cents > 0]

    for line in unpaid:
        if line.due_date and line.due_date <= today:
            due_now += line.remaining_cents
            seen.add(line.charge_key)

    for line in unpaid:
        if line.charge_key in seen or line.code not in MOVE_IN_CODES:
            continue
        if move_in_date and line.due_date == move_in_date and line.due_date > today:
            due_before_move_in += line.remaining_cents
            seen.add(line.charge_key)

    for line in unpaid:
        if line.charge_key in seen:
            continue
        if line.due_date and today < line.due_date <= due_soon_limit:
            due_next_30 += line.remaining_cents
            seen.add(line.charge_key)

    later = sum(line.remaining_cents for line in unpaid if line.charge_key not in seen)

    return DueWindows(
        due_now_cents=due_now,
        due_before_move_in_cents=due_before_move_in,
        due_next_30_cents=due_next_30,
        later_cents=later,
        move_in_date=move_in_date,
    )


def next_unpaid_rent(lines: Iterable[ChargeLine]) -> Optional[NextRent]:
    """Earliest rent line that still has a remainder."""
    rent_lines = sorted(
        (line for line in lines if line.code.startswith(RENT_PREFIX)),
        key=lambda line: (line.due_date is None, line.due_date or date.min),
    )
    for line in rent_lines:
        if line.remaining_cents > 0:
            return NextRent(
                ym=line.code[len(RENT_PREFIX):],
                due_date=line.due_date,
                amount_cents=line.amount_cents,
                remaining_cents=line.remaining_cents,
            )
    return None


def move_in_coverage(lines: Iterable[ChargeLine]):
    """Return ``(first_covered, last_covered)``; a missing line is not covered."""
    by_code = {line.code: line for line in lines}
    first = by_code.get(FIRST_MONTH)
    last = by_code.get(LAST_MONTH)
    return (
        first is not None and first.remaining_cents <= 0,
        last is not None and last.remaining_cents <= 0,
    )
