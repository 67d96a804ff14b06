"""
Application lifecycle state machine.

A pure, guarded transition function over ``ApplicationStatus``. Given the
current status, the requested action, the actor's role and a guard
context, it decides whether the application advances. It never touches the
database; persisting the decision is the caller's job (see
``transitions.apply_transition``).

Lifecycle::

    draft -> submitted -> admin_screened -> approved_high -> terms_set
    terms_set -> min_due -> min_paid -> countersigned -> occupied
    terms_set -> countersigned             (no countersign minimum configured)
    submitted -> rejected | withdrawn

Two entry points are provided:

- ``decide_transition`` returns ``Applied(new_status)`` or
  ``Rejected(reason, message)`` so callers can tell the user why an action
  was refused.
- ``compute_next_state`` returns just the next status; a refused action
  returns the current status unchanged.

Example:
    Submitting a draft once every member has acknowledged::

        ctx = GuardContext(members_ack=True)
        decision = decide_transition('draft', 'submit', 'tenant', ctx)
        if decision.applied:
            print(decision.new_status)   # 'submitted'
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone as dt_timezone
from typing import Callable, Dict, FrozenSet, Mapping, Optional, Sequence, Tuple

from ..models import ActorRole, ApplicationStatus, TERMINAL_STATUSES, TransitionAction
from .charges import parse_date, safe_cents
from .thresholds import MinRule, countersign_minimum_satisfied


REQUIRED_SIGNATURES = 2


@dataclass(frozen=True)
class Terms:
    """Lease terms snapshot captured when terms are set."""

    address_freeform: str = ''
    rent_cents: int = 0
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    unit_id: Optional[str] = None
    deposit_cents: Optional[int] = None
    fees: Tuple[Tuple[str, int], ...] = ()

    @classmethod
    def from_dict(cls, raw: Optional[Mapping]) -> Optional['Terms']:
        if not raw or not isinstance(raw, Mapping):
            return None
        fees = []
        for fee in raw.get('fees') or ():
            if isinstance(fee, Mapping):
                fees.append((str(fee.get('label', '')), safe_cents(fee.get('amount_cents'))))
        deposit = raw.get('deposit_cents')
        return cls(
            address_freeform=str(raw.get('address_freeform') or '').strip(),
            rent_cents=safe_cents(raw.get('rent_cents')),
            start_date=parse_date(raw.get('start_date')),
            end_date=parse_date(raw.get('end_date')),
            unit_id=raw.get('unit_id') or None,
            deposit_cents=None if deposit is None else safe_cents(deposit),
            fees=tuple(fees),
        )

    def to_dict(self) -> dict:
        return {
            'address_freeform': self.address_freeform,
            'rent_cents': self.rent_cents,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'unit_id': self.unit_id,
            'deposit_cents': self.deposit_cents,
            'fees': [{'label': label, 'amount_cents': cents} for label, cents in self.fees],
        }


@dataclass(frozen=True)
class GuardContext:
    """Facts consulted by one transition attempt. Never persisted."""

    members_ack: bool = False
    terms: Optional[Terms] = None
    min_rules: Sequence[MinRule] = field(default_factory=tuple)
    signatures_count: int = 0  # lease sides signed
    payment_totals: Mapping[str, int] = field(default_factory=dict)
    now: Optional[datetime] = None


@dataclass(frozen=True)
class Applied:
    new_status: str
    applied: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Rejected:
    reason: str
    message: str
    applied: bool = field(default=False, init=False)


def terms_are_valid(terms: Optional[Terms]) -> bool:
    return bool(terms) and bool(terms.address_freeform) and terms.rent_cents > 0 and terms.start_date is not None


def lease_started(terms: Optional[Terms], now: Optional[datetime]) -> bool:
    if not terms or not terms.start_date:
        return False
    now = now or datetime.now(dt_timezone.utc)
    start = datetime.combine(terms.start_date, time.min)
    if now.tzinfo is not None:
        start = start.replace(tzinfo=dt_timezone.utc)
    return start <= now


@dataclass(frozen=True)
class _Rule:
    sources: FrozenSet[str]
    roles: FrozenSet[str]
    target: str
    guard: Optional[Callable[[GuardContext], bool]] = None
    guard_reason: str = ''
    guard_message: str = ''


S = ApplicationStatus
A = TransitionAction
R = ActorRole

_RULES: Dict[str, _Rule] = {
    A.SUBMIT: _Rule(
        sources=frozenset({S.DRAFT}),
        roles=frozenset({R.TENANT, R.SYSTEM}),
        target=S.SUBMITTED,
        guard=lambda ctx: ctx.members_ack is True,
        guard_reason='members_not_acknowledged',
        guard_message='Every household member must acknowledge the application before it is submitted.',
    ),
    A.ADMIN_SCREEN: _Rule(
        sources=frozenset({S.SUBMITTED}),
        roles=frozenset({R.ADMIN}),
        target=S.ADMIN_SCREENED,
    ),
    A.APPROVE_HIGH: _Rule(
        sources=frozenset({S.SUBMITTED, S.ADMIN_SCREENED}),
        roles=frozenset({R.MANAGER}),
        target=S.APPROVED_HIGH,
    ),
    A.SET_TERMS: _Rule(
        sources=frozenset({S.APPROVED_HIGH}),
        roles=frozenset({R.ADMIN, R.MANAGER}),
        target=S.TERMS_SET,
        guard=lambda ctx: terms_are_valid(ctx.terms),
        guard_reason='invalid_terms',
        guard_message='Terms need an address, a positive rent and a start date.',
    ),
    # Target depends on min_rules, resolved in decide_transition
    A.SYSTEM_MIN_READY: _Rule(
        sources=frozenset({S.TERMS_SET}),
        roles=frozenset({R.SYSTEM}),
        target=S.MIN_DUE,
    ),
    A.PAYMENT_UPDATED: _Rule(
        sources=frozenset({S.MIN_DUE}),
        roles=frozenset({R.SYSTEM}),
        target=S.MIN_PAID,
        guard=lambda ctx: countersign_minimum_satisfied(ctx.min_rules, ctx.payment_totals),
        guard_reason='minimum_not_met',
        guard_message='The minimum payment required before countersigning has not been received.',
    ),
    A.SIGNATURES_COMPLETED: _Rule(
        sources=frozenset({S.MIN_PAID}),
        roles=frozenset({R.SYSTEM}),
        target=S.COUNTERSIGNED,
        guard=lambda ctx: (ctx.signatures_count or 0) >= REQUIRED_SIGNATURES,
        guard_reason='signatures_incomplete',
        guard_message='The lease needs both tenant and landlord signatures.',
    ),
    A.TICK_CLOCK: _Rule(
        sources=frozenset({S.COUNTERSIGNED}),
        roles=frozenset({R.SYSTEM}),
        target=S.OCCUPIED,
        guard=lambda ctx: lease_started(ctx.terms, ctx.now),
        guard_reason='lease_not_started',
        guard_message='The lease start date has not been reached yet.',
    ),
    A.REJECT: _Rule(
        sources=frozenset({S.SUBMITTED}),
        roles=frozenset({R.MANAGER}),
        target=S.REJECTED,
    ),
    A.WITHDRAW: _Rule(
        sources=frozenset({S.SUBMITTED}),
        roles=frozenset({R.TENANT}),
        target=S.WITHDRAWN,
    ),
}


# UI affordances only; guards are enforced by decide_transition
ALLOWED_ACTIONS: Dict[str, Tuple[str, ...]] = {
    S.DRAFT: (A.SUBMIT,),
    S.SUBMITTED: (A.ADMIN_SCREEN, A.APPROVE_HIGH, A.REJECT, A.WITHDRAW),
    S.ADMIN_SCREENED: (A.APPROVE_HIGH,),
    S.APPROVED_HIGH: (A.SET_TERMS,),
    S.TERMS_SET: (A.SYSTEM_MIN_READY,),
    S.MIN_DUE: (A.PAYMENT_UPDATED,),
    S.MIN_PAID: (A.SIGNATURES_COMPLETED,),
    S.COUNTERSIGNED: (A.TICK_CLOCK,),
    S.OCCUPIED: (),
    S.REJECTED: (),
    S.WITHDRAWN: (),
}


def allowed_actions(status) -> Tuple[str, ...]:
    return tuple(str(action) for action in ALLOWED_ACTIONS.get(str(status), ()))


def decide_transition(current, action, role, ctx: Optional[GuardContext] = None):
    """
    Decide whether ``action`` by ``role`` moves the application on.

    Args:
        current: Current application status.
        action: Requested ``TransitionAction`` value.
        role: Actor role (tenant, admin, manager or system).
        ctx: Guard context for this attempt.

    Returns:
        Applied | Rejected: ``Applied.new_status`` is the status to persist;
        ``Rejected`` carries a reason code and a user-facing message.
    """
    ctx = ctx or GuardContext()
    current = str(current)
    action = str(action)
    role = str(role)

    if current in TERMINAL_STATUSES:
        return Rejected('terminal_state', f"The application is {current} and accepts no further actions.")

    rule = _RULES.get(action)
    if rule is None:
        return Rejected('unknown_action', f"Unknown action: {action}")

    if current not in rule.sources:
        return Rejected('action_not_allowed', f"Action {action} is not available while the application is {current}.")

    if role not in rule.roles:
        return Rejected('role_not_permitted', f"Role {role} may not perform {action}.")

    if action == A.SYSTEM_MIN_READY:
        if len(ctx.min_rules or ()) > 0:
            return Applied(S.MIN_DUE.value)
        # No countersign minimum configured: nothing to collect before signing
        return Applied(S.COUNTERSIGNED.value)

    if rule.guard is not None and not rule.guard(ctx):
        return Rejected(rule.guard_reason, rule.guard_message)

    return Applied(str(rule.target))


def compute_next_state(current, action, role, ctx: Optional[GuardContext] = None) -> str:
    """Return the next status, or ``current`` unchanged when the action is refused."""
    decision = decide_transition(current, action, role, ctx)
    if decision.applied:
        return decision.new_status
    return str(current)
