"""
Charge construction.

Turns an application's lease payment plan into the ordered list of line
items ("charges") the household owes. Charges are derived on every read
and never stored, so they always reflect the current plan.

Charge codes:
    key_fee, first_month, last_month   upfront bucket (move-in items)
    security_deposit                   deposit bucket
    rent:YYYY-MM                       rent bucket, one per covered month

Example:
    Building the charges for a twelve month lease::

        from apps.applications.services.charges import PaymentPlan, build_charges

        plan = PaymentPlan.from_dict(application.payment_plan)
        charges = build_charges(str(application.id), plan=plan)
        for charge in charges:
            print(charge.code, charge.amount_cents, charge.due_date)
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Mapping, Optional, Sequence

from ..models import ChargeBucket


KEY_FEE = 'key_fee'
FIRST_MONTH = 'first_month'
LAST_MONTH = 'last_month'
SECURITY_DEPOSIT = 'security_deposit'
RENT_PREFIX = 'rent:'

MOVE_IN_CODES = frozenset({KEY_FEE, FIRST_MONTH, LAST_MONTH})

DEFAULT_PRIORITY = (KEY_FEE, FIRST_MONTH, LAST_MONTH, SECURITY_DEPOSIT)
UNLISTED_PRIORITY = 999
RENT_PRIORITY_BASE = 2000

LABELS = {
    FIRST_MONTH: 'First month',
    LAST_MONTH: 'Last month',
    KEY_FEE: 'Key fee',
    SECURITY_DEPOSIT: 'Security deposit',
}


def safe_cents(value) -> int:
    """Coerce a raw plan amount to non-negative integer cents (0 if malformed)."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        cents = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(cents, 0)


def parse_date(value) -> Optional[date]:
    """Date from a date, datetime or ISO string; None if missing or malformed."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def label_for(code: str) -> str:
    if code in LABELS:
        return LABELS[code]
    if code.startswith(RENT_PREFIX):
        return f"Rent {code[len(RENT_PREFIX):]}"
    return code.replace('_', ' ')


@dataclass(frozen=True)
class Charge:
    charge_key: str
    bucket: str
    code: str
    label: str
    amount_cents: int
    priority_index: int
    due_date: Optional[date] = None

    @property
    def is_rent(self) -> bool:
        return self.code.startswith(RENT_PREFIX)


@dataclass(frozen=True)
class PaymentPlan:
    """Structured lease payment plan, with every amount in cents."""

    monthly_rent_cents: int = 0
    term_months: int = 0
    start_date: Optional[date] = None
    first_cents: int = 0
    last_cents: int = 0
    key_cents: int = 0
    security_cents: int = 0
    require_first_before_move_in: bool = False
    require_last_before_move_in: bool = False
    priority: Sequence[str] = field(default_factory=tuple)
    countersign_upfront_threshold_cents: int = 0
    countersign_deposit_threshold_cents: int = 0

    @classmethod
    def from_dict(cls, raw: Optional[Mapping]) -> Optional['PaymentPlan']:
        """
        Build a plan from its stored JSON form.

        Returns None when there is no structured plan (no ``upfront_totals``),
        which sends charge construction down the legacy path.
        """
        if not raw or not isinstance(raw, Mapping):
            return None
        totals = raw.get('upfront_totals')
        if not isinstance(totals, Mapping):
            return None

        priority = raw.get('priority')
        if not isinstance(priority, (list, tuple)):
            priority = ()

        return cls(
            monthly_rent_cents=safe_cents(raw.get('monthly_rent_cents')),
            term_months=safe_cents(raw.get('term_months')),
            start_date=parse_date(raw.get('start_date')),
            first_cents=safe_cents(totals.get('first_cents')),
            last_cents=safe_cents(totals.get('last_cents')),
            key_cents=safe_cents(totals.get('key_cents')),
            security_cents=safe_cents(raw.get('security_cents', totals.get('security_cents'))),
            require_first_before_move_in=bool(raw.get('require_first_before_move_in')),
            require_last_before_move_in=bool(raw.get('require_last_before_move_in')),
            priority=tuple(str(code) for code in priority),
            countersign_upfront_threshold_cents=safe_cents(
                raw.get('countersign_upfront_threshold_cents')
            ),
            countersign_deposit_threshold_cents=safe_cents(
                raw.get('countersign_deposit_threshold_cents')
            ),
        )

    def priority_of(self, code: str) -> int:
        order = tuple(self.priority) or DEFAULT_PRIORITY
        try:
            return order.index(code)
        except ValueError:
            return UNLISTED_PRIORITY


@dataclass(frozen=True)
class LegacyUpfronts:
    """Flat upfront amounts stored on applications created before payment plans."""

    key_cents: int = 0
    first_cents: int = 0
    last_cents: int = 0
    security_cents: int = 0

    @classmethod
    def from_dict(cls, raw: Optional[Mapping]) -> 'LegacyUpfronts':
        raw = raw if isinstance(raw, Mapping) else {}
        return cls(
            key_cents=safe_cents(raw.get('key')),
            first_cents=safe_cents(raw.get('first')),
            last_cents=safe_cents(raw.get('last')),
            security_cents=safe_cents(raw.get('security')),
        )


class _ChargeList:
    """Collects charges for one application, dropping non-positive amounts."""

    def __init__(self, app_id: str):
        self.app_id = app_id
        self.items: List[Charge] = []

    def push(self, bucket, code, amount, priority_index, due_date=None):
        amount_cents = safe_cents(amount)
        if amount_cents <= 0:
            return
        bucket = str(bucket)
        self.items.append(Charge(
            charge_key=f"{self.app_id}:{bucket}:{code}",
            bucket=bucket,
            code=code,
            label=label_for(code),
            amount_cents=amount_cents,
            priority_index=priority_index,
            due_date=due_date,
        ))


def _add_months(year: int, month: int, offset: int):
    index = (month - 1) + offset
    return year + index // 12, index % 12 + 1


def _add_monthly_rent(charges, plan: PaymentPlan, skip_first: bool, skip_last: bool):
    rent = plan.monthly_rent_cents
    months = plan.term_months
    start = plan.start_date
    if not start or not months or not rent:
        return

    for i in range(months):
        if i == 0 and skip_first:
            continue
        if i == months - 1 and skip_last:
            continue
        year, month = _add_months(start.year, start.month, i)
        code = f"{RENT_PREFIX}{year:04d}-{month:02d}"
        charges.push(
            ChargeBucket.RENT,
            code,
            rent,
            RENT_PRIORITY_BASE + i,
            date(year, month, 1),
        )


def build_charges(
    app_id: str,
    plan: Optional[PaymentPlan] = None,
    legacy_upfronts: Optional[LegacyUpfronts] = None,
    move_in_date: Optional[date] = None,
) -> List[Charge]:
    """
    Derive every charge owed for an application.

    Move-in items (key fee, plus first/last month when required before
    move-in) fall due the day before move-in; the security deposit falls
    due on move-in; rent lines fall due on the 1st of each covered month.
    Months already paid as first/last month upfront get no rent line.

    Args:
        app_id: Application identifier used to build charge keys.
        plan: Structured payment plan, or None for legacy applications.
        legacy_upfronts: Flat amounts used only when ``plan`` is None.
        move_in_date: Fallback move-in date when the plan has no start date.

    Returns:
        list[Charge]: Deterministically ordered charges, all with a
        strictly positive amount.
    """
    charges = _ChargeList(str(app_id))

    if plan is not None:
        move_in = plan.start_date or move_in_date
        pre_move_in = move_in - timedelta(days=1) if move_in else None

        require_first = plan.require_first_before_move_in and plan.first_cents > 0
        require_last = plan.require_last_before_move_in and plan.last_cents > 0

        charges.push(ChargeBucket.UPFRONT, KEY_FEE, plan.key_cents,
                     plan.priority_of(KEY_FEE), pre_move_in)
        if require_first:
            charges.push(ChargeBucket.UPFRONT, FIRST_MONTH, plan.first_cents,
                         plan.priority_of(FIRST_MONTH), pre_move_in)
        if require_last:
            charges.push(ChargeBucket.UPFRONT, LAST_MONTH, plan.last_cents,
                         plan.priority_of(LAST_MONTH), pre_move_in)

        _add_monthly_rent(charges, plan, skip_first=require_first, skip_last=require_last)

        charges.push(ChargeBucket.DEPOSIT, SECURITY_DEPOSIT, plan.security_cents,
                     plan.priority_of(SECURITY_DEPOSIT), move_in)
        return charges.items

    # Legacy: four flat charges, fixed priority, no rent schedule
    legacy = legacy_upfronts or LegacyUpfronts()
    pre_move_in = move_in_date - timedelta(days=1) if move_in_date else None

    charges.push(ChargeBucket.UPFRONT, KEY_FEE, legacy.key_cents, 0, pre_move_in)
    charges.push(ChargeBucket.UPFRONT, FIRST_MONTH, legacy.first_cents, 1, pre_move_in)
    charges.push(ChargeBucket.UPFRONT, LAST_MONTH, legacy.last_cents, 2, pre_move_in)
    charges.push(ChargeBucket.DEPOSIT, SECURITY_DEPOSIT, legacy.security_cents, 3, move_in_date)
    return charges.items
