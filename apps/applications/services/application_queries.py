"""
Application read helpers.

Loading, access checks and the per-application ledger. Everything here is
read-only; state changes live in the management modules.
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db.models import Prefetch, QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.applications.models import Application, ApplicationMember, Payment

from .allocation import PaymentRecord, allocate_payments
from .charges import LegacyUpfronts, PaymentPlan, build_charges
from .exceptions import ApplicationNotFoundError, NotMemberError
from .ledger import build_ledger
from .thresholds import bucket_allocated_totals


def get_application(*, application_id: UUID) -> Application:
    """
    Get an application by ID.

    Raises:
        ApplicationNotFoundError: If the application doesn't exist
    """
    try:
        return Application.objects.get(id=application_id)
    except (Application.DoesNotExist, ValidationError):
        raise ApplicationNotFoundError(f"Application with ID {application_id} not found")


def get_application_for_user(*, application_id: UUID, user: User) -> Application:
    """
    Get an application the user may see.

    Staff (admins and managers) see every application; tenants only the
    ones they are a household member of.

    Raises:
        ApplicationNotFoundError: If the application doesn't exist
        NotMemberError: If a tenant is not a member of the application
    """
    try:
        application = (
            Application.objects
            .select_related('created_by')
            .prefetch_related(
                Prefetch('members', queryset=ApplicationMember.objects.select_related('user'))
            )
            .get(id=application_id)
        )
    except (Application.DoesNotExist, ValidationError):
        raise ApplicationNotFoundError(f"Application with ID {application_id} not found")

    if not user.is_staff_role and not application.has_member(user):
        raise NotMemberError("You are not a member of this application")

    return application


def list_applications_for_user(*, user: User, status: Optional[str] = None) -> QuerySet:
    """Applications visible to ``user``, newest first."""
    queryset = Application.objects.select_related('created_by')
    if not user.is_staff_role:
        queryset = queryset.filter(members__user=user).distinct()
    if status:
        queryset = queryset.filter(status=status)
    return queryset.order_by('-created_at')


def payment_records_for(application: Application) -> List[PaymentRecord]:
    """Materialize the payment history of an application for allocation."""
    return [
        PaymentRecord(
            id=str(payment.id),
            kind=payment.kind,
            status=payment.status,
            amount_cents=payment.amount_cents,
            created_at=payment.created_at,
        )
        for payment in Payment.objects.filter(application=application).order_by('created_at', 'id')
    ]


def bucket_totals_for(application: Application) -> dict:
    """Allocated cents per bucket, from the current plan and payments."""
    charges = build_charges(
        str(application.id),
        plan=PaymentPlan.from_dict(application.payment_plan),
        legacy_upfronts=LegacyUpfronts.from_dict(application.upfronts),
        move_in_date=application.move_in_date,
    )
    allocation = allocate_payments(charges, payment_records_for(application))
    return bucket_allocated_totals(charges, allocation)


def get_application_ledger(*, application: Application, today: Optional[date] = None) -> dict:
    """Full payment breakdown for an application (see ``build_ledger``)."""
    return build_ledger(
        app_id=str(application.id),
        plan=application.payment_plan,
        legacy_upfronts=application.upfronts,
        move_in_date=application.move_in_date,
        countersign=application.countersign,
        payments=payment_records_for(application),
        today=today or timezone.localdate(),
    )
