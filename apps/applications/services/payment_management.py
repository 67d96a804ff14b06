"""
Payment history management.

Records payment attempts reported by the payment processor and keeps
their status current. Every change re-evaluates the countersign payment
gate, so an application waiting in ``min_due`` moves on as soon as enough
money has been allocated.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.applications.models import (
    Application,
    ApplicationEvent,
    ApplicationStatus,
    Payment,
    PaymentStatus,
    TransitionAction,
)

from .allocation import normalize_payment_kind
from .exceptions import (
    ApplicationNotFoundError,
    InsufficientPermissionsError,
    PaymentNotFoundError,
)
from .transitions import actor_label, try_system_action


logger = logging.getLogger(__name__)


def reevaluate_payment_gate(*, application_id: UUID, now: Optional[datetime] = None) -> bool:
    """
    Fire ``payment_updated`` when the application waits in ``min_due``.

    Returns:
        True if the application advanced
    """
    status = (
        Application.objects
        .filter(pk=application_id)
        .values_list('status', flat=True)
        .first()
    )
    if status != ApplicationStatus.MIN_DUE:
        return False
    return try_system_action(
        application_id=application_id,
        action=TransitionAction.PAYMENT_UPDATED,
        now=now,
    )


def record_payment(
    *,
    application_id: UUID,
    user: User,
    kind: str,
    amount_cents: int,
    status: str = PaymentStatus.SUCCEEDED,
    external_reference: str = '',
    created_at: Optional[datetime] = None,
) -> Payment:
    """
    Record a payment against an application (admin/manager only).

    Args:
        application_id: UUID of the application
        user: Staff user recording the payment
        kind: ``PaymentKind`` value
        amount_cents: Positive amount in cents
        status: Initial ``PaymentStatus`` (default succeeded)
        external_reference: Processor reference (e.g. payment intent id)
        created_at: When the payment was made (defaults to now)

    Returns:
        Created Payment instance

    Raises:
        ApplicationNotFoundError: If application doesn't exist
        InsufficientPermissionsError: If user is not staff
        UnknownPaymentKindError: If kind is not a known payment kind
    """
    if not user.is_staff_role:
        raise InsufficientPermissionsError("Only admins and managers can record payments")

    normalize_payment_kind(kind)
    now = timezone.now()

    with transaction.atomic():
        try:
            application = Application.objects.get(id=application_id)
        except Application.DoesNotExist:
            raise ApplicationNotFoundError(f"Application with ID {application_id} not found")

        payment = Payment.objects.create(
            application=application,
            kind=str(kind).strip().lower(),
            status=status,
            amount_cents=amount_cents,
            external_reference=external_reference,
            created_at=created_at or now,
        )

        ApplicationEvent.objects.create(
            application=application,
            at=now,
            by=actor_label(user),
            event='payment.recorded',
            meta={
                'payment_id': str(payment.id),
                'kind': payment.kind,
                'status': payment.status,
                'amount_cents': payment.amount_cents,
            },
        )

    logger.info(
        "Recorded %s payment %s of %sc on application %s",
        payment.kind, payment.id, payment.amount_cents, application.id,
    )

    reevaluate_payment_gate(application_id=application.id)
    return payment


def update_payment_status(
    *,
    payment_id: UUID,
    status: str,
    user: Optional[User] = None,
) -> Payment:
    """
    Move a payment to a new processor status.

    A payment that fails or is returned simply stops counting on the next
    allocation; nothing already allocated is stored anywhere.

    Raises:
        PaymentNotFoundError: If payment doesn't exist
        InsufficientPermissionsError: If a non-staff user attempts the update
    """
    if user is not None and not user.is_staff_role:
        raise InsufficientPermissionsError("Only admins and managers can update payments")

    now = timezone.now()

    with transaction.atomic():
        try:
            payment = (
                Payment.objects
                .select_for_update()
                .get(id=payment_id)
            )
        except Payment.DoesNotExist:
            raise PaymentNotFoundError(f"Payment with ID {payment_id} not found")

        previous = payment.status
        if previous == status:
            return payment

        payment.status = status
        payment.save(update_fields=['status', 'updated_at'])

        ApplicationEvent.objects.create(
            application_id=payment.application_id,
            at=now,
            by=actor_label(user),
            event='payment.status',
            meta={
                'payment_id': str(payment.id),
                'from': previous,
                'to': status,
            },
        )

    reevaluate_payment_gate(application_id=payment.application_id)
    return payment


def get_application_payments(*, application_id: UUID) -> QuerySet:
    """Payment history of an application, oldest first."""
    return Payment.objects.filter(application_id=application_id).order_by('created_at', 'id')
