"""
Lease payment plan management.

Validates the plan a landlord configures for an application and stores it
in the structured form charge construction reads. Plans can be changed
until the application reaches a terminal state.
"""

import re
from datetime import datetime
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.applications.models import Application, ApplicationEvent, ApplicationStatus

from .charges import FIRST_MONTH, KEY_FEE, LAST_MONTH, SECURITY_DEPOSIT, safe_cents
from .exceptions import (
    ApplicationNotFoundError,
    InsufficientPermissionsError,
    InvalidPaymentPlanError,
    PlanLockedError,
)
from .payment_management import reevaluate_payment_gate
from .transitions import actor_label


START_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def build_payment_plan(
    *,
    monthly_rent_cents,
    term_months,
    start_date,
    security_cents=0,
    key_fee_cents=0,
    require_first_before_move_in: bool = False,
    require_last_before_move_in: bool = False,
    countersign_upfront_threshold_cents=0,
    countersign_deposit_threshold_cents=0,
) -> dict:
    """
    Validate plan inputs and return the stored plan document.

    Countersign thresholds are clamped to what can actually be collected
    before signing: required first and last month plus the key fee for the
    upfront bucket, the security deposit for the deposit bucket.

    Raises:
        InvalidPaymentPlanError: ``bad_monthly``, ``bad_start_date`` or
            ``security_gt_monthly``
    """
    monthly = safe_cents(monthly_rent_cents)
    term = max(1, safe_cents(term_months))
    start = str(start_date or '')
    security = safe_cents(security_cents)
    key_fee = safe_cents(key_fee_cents)
    require_first = bool(require_first_before_move_in)
    require_last = bool(require_last_before_move_in)

    if monthly <= 0:
        raise InvalidPaymentPlanError('bad_monthly', 'Monthly rent must be greater than zero')
    if not START_DATE_PATTERN.match(start):
        raise InvalidPaymentPlanError('bad_start_date', 'Start date must be formatted YYYY-MM-DD')
    try:
        datetime.strptime(start, '%Y-%m-%d')
    except ValueError:
        raise InvalidPaymentPlanError('bad_start_date', f"{start} is not a calendar date")
    if security > monthly:
        raise InvalidPaymentPlanError(
            'security_gt_monthly',
            'Security deposit cannot exceed one month of rent',
        )

    first_cents = monthly if require_first else 0
    last_cents = monthly if require_last else 0
    other_upfront = first_cents + last_cents + key_fee

    upfront_threshold = min(safe_cents(countersign_upfront_threshold_cents), other_upfront)
    deposit_threshold = min(safe_cents(countersign_deposit_threshold_cents), security)

    # Collection order for move-in items
    priority = []
    if require_last:
        priority.append(LAST_MONTH)
    if require_first:
        priority.append(FIRST_MONTH)
    if key_fee > 0:
        priority.append(KEY_FEE)
    if security > 0:
        priority.append(SECURITY_DEPOSIT)

    return {
        'monthly_rent_cents': monthly,
        'term_months': term,
        'start_date': start,
        'security_cents': security,
        'key_fee_cents': key_fee,
        'require_first_before_move_in': require_first,
        'require_last_before_move_in': require_last,
        'countersign_upfront_threshold_cents': upfront_threshold,
        'countersign_deposit_threshold_cents': deposit_threshold,
        'upfront_totals': {
            'first_cents': first_cents,
            'last_cents': last_cents,
            'key_cents': key_fee,
            'security_cents': security,
            'other_upfront_cents': other_upfront,
            'total_upfront_cents': other_upfront + security,
        },
        'priority': priority,
    }


def set_payment_plan(
    *,
    application_id: UUID,
    user: User,
    monthly_rent_cents,
    term_months,
    start_date,
    security_cents=0,
    key_fee_cents=0,
    require_first_before_move_in: bool = False,
    require_last_before_move_in: bool = False,
    countersign_upfront_threshold_cents=0,
    countersign_deposit_threshold_cents=0,
    now: Optional[datetime] = None,
) -> Application:
    """
    Store the lease payment plan of an application (admin/manager only).

    Also records the clamped thresholds as countersign overrides and
    appends a ``lease.plan.set`` timeline event. When the application is
    waiting in ``min_due`` the payment gate is re-evaluated against the
    new thresholds.

    Returns:
        Updated Application instance

    Raises:
        ApplicationNotFoundError: If application doesn't exist
        InsufficientPermissionsError: If user is not an admin or manager
        PlanLockedError: If the application is in a terminal state
        InvalidPaymentPlanError: If the plan inputs are invalid
    """
    if not user.is_staff_role:
        raise InsufficientPermissionsError("Only admins and managers can set payment plans")

    plan = build_payment_plan(
        monthly_rent_cents=monthly_rent_cents,
        term_months=term_months,
        start_date=start_date,
        security_cents=security_cents,
        key_fee_cents=key_fee_cents,
        require_first_before_move_in=require_first_before_move_in,
        require_last_before_move_in=require_last_before_move_in,
        countersign_upfront_threshold_cents=countersign_upfront_threshold_cents,
        countersign_deposit_threshold_cents=countersign_deposit_threshold_cents,
    )
    now = now or timezone.now()

    with transaction.atomic():
        try:
            application = (
                Application.objects
                .select_for_update()
                .get(id=application_id)
            )
        except Application.DoesNotExist:
            raise ApplicationNotFoundError(f"Application with ID {application_id} not found")

        if application.is_terminal:
            raise PlanLockedError(
                f"Application is {application.status}; its payment plan can no longer change"
            )

        application.payment_plan = plan
        application.countersign = {
            'upfront_min_cents': plan['countersign_upfront_threshold_cents'],
            'deposit_min_cents': plan['countersign_deposit_threshold_cents'],
        }
        application.save(update_fields=['payment_plan', 'countersign', 'updated_at'])

        ApplicationEvent.objects.create(
            application=application,
            at=now,
            by=actor_label(user),
            event='lease.plan.set',
            meta={
                'require_first': plan['require_first_before_move_in'],
                'require_last': plan['require_last_before_move_in'],
                'upfront_min_cents': plan['countersign_upfront_threshold_cents'],
                'deposit_min_cents': plan['countersign_deposit_threshold_cents'],
            },
        )

    if application.status == ApplicationStatus.MIN_DUE:
        reevaluate_payment_gate(application_id=application.id, now=now)
        application.refresh_from_db()

    return application
