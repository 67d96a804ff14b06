"""
Lease signature management.

Records tenant and landlord signatures while the lease is out for
signing. Signing twice is a no-op; once both sides have signed,
``signatures_completed`` is fired as a system action.
"""

from datetime import datetime
from typing import Optional, Tuple
from uuid import UUID

from django.db import transaction, IntegrityError
from django.utils import timezone

from apps.accounts.models import User
from apps.applications.models import (
    Application,
    ApplicationEvent,
    ApplicationStatus,
    LeaseSignature,
    TransitionAction,
)

from .exceptions import ApplicationNotFoundError, NotMemberError, SigningClosedError
from .transitions import actor_label, try_system_action


SIGNING_STATUSES = frozenset({
    ApplicationStatus.TERMS_SET,
    ApplicationStatus.MIN_DUE,
    ApplicationStatus.MIN_PAID,
})


def record_signature(
    *,
    application_id: UUID,
    user: User,
    now: Optional[datetime] = None,
) -> Tuple[LeaseSignature, bool]:
    """
    Record ``user``'s lease signature.

    Tenants must be household members; admins and managers sign for the
    landlord side. Signatures are accepted once terms are set and until
    the lease is countersigned.

    Returns:
        (signature, created) where ``created`` is False when the user had
        already signed

    Raises:
        ApplicationNotFoundError: If application doesn't exist
        NotMemberError: If a tenant signs an application they don't belong to
        SigningClosedError: If the application is not out for signing
    """
    now = now or timezone.now()

    with transaction.atomic():
        try:
            application = Application.objects.get(id=application_id)
        except Application.DoesNotExist:
            raise ApplicationNotFoundError(f"Application with ID {application_id} not found")

        if not user.is_staff_role and not application.has_member(user):
            raise NotMemberError("Only household members can sign this lease")

        existing = LeaseSignature.objects.filter(application=application, signer=user).first()
        if existing is not None:
            return existing, False

        if application.status not in SIGNING_STATUSES:
            raise SigningClosedError(
                f"The lease cannot be signed while the application is {application.status}"
            )

        try:
            with transaction.atomic():
                signature = LeaseSignature.objects.create(
                    application=application,
                    signer=user,
                    signed_at=now,
                )
        except IntegrityError:
            # Concurrent duplicate signature
            return LeaseSignature.objects.get(application=application, signer=user), False

        ApplicationEvent.objects.create(
            application=application,
            at=now,
            by=actor_label(user),
            event='lease.signed',
            meta={'signer_role': str(user.role)},
        )

    if application.status == ApplicationStatus.MIN_PAID:
        try_system_action(
            application_id=application.id,
            action=TransitionAction.SIGNATURES_COMPLETED,
            now=now,
        )

    return signature, True
