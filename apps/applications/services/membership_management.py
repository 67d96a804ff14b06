"""
Household membership management.

Creating applications with their primary applicant, adding co-applicants,
and recording each member's acknowledgement. ``submit`` requires every
member to have acknowledged.
"""

from typing import Optional
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.applications.models import (
    Application,
    ApplicationEvent,
    ApplicationMember,
    ApplicationStatus,
    MemberRole,
)

from .exceptions import (
    ApplicationNotFoundError,
    InsufficientPermissionsError,
    MembershipClosedError,
    NotMemberError,
)
from .transitions import actor_label


@transaction.atomic
def create_application(
    *,
    user: User,
    property_label: str = '',
    move_in_date=None,
    upfronts: Optional[dict] = None,
) -> Application:
    """
    Create a draft application with ``user`` as primary applicant.

    Args:
        user: Applicant creating the application
        property_label: Free-form label of the property applied for
        move_in_date: Desired move-in date (legacy fallback for the plan)
        upfronts: Legacy flat upfront amounts (key, first, last, security)

    Returns:
        Created Application instance
    """
    application = Application.objects.create(
        property_label=property_label,
        move_in_date=move_in_date,
        upfronts=upfronts or {},
        created_by=user,
    )

    ApplicationMember.objects.create(
        application=application,
        user=user,
        role=MemberRole.PRIMARY,
    )

    ApplicationEvent.objects.create(
        application=application,
        at=timezone.now(),
        by=actor_label(user),
        event='application.created',
        to_status=application.status,
    )

    return application


@transaction.atomic
def add_member(*, application_id: UUID, user: User, added_by: User) -> ApplicationMember:
    """
    Add a co-applicant to a draft application.

    Raises:
        ApplicationNotFoundError: If application doesn't exist
        InsufficientPermissionsError: If ``added_by`` is not the primary applicant
        MembershipClosedError: If the application is no longer a draft
    """
    try:
        application = (
            Application.objects
            .select_for_update()
            .get(id=application_id)
        )
    except Application.DoesNotExist:
        raise ApplicationNotFoundError(f"Application with ID {application_id} not found")

    is_primary = application.members.filter(user=added_by, role=MemberRole.PRIMARY).exists()
    if not is_primary:
        raise InsufficientPermissionsError("Only the primary applicant can add household members")

    if application.status != ApplicationStatus.DRAFT:
        raise MembershipClosedError("Household members can only be added while the application is a draft")

    try:
        with transaction.atomic():
            member = ApplicationMember.objects.create(
                application=application,
                user=user,
                role=MemberRole.CO_APPLICANT,
            )
    except IntegrityError:
        member = ApplicationMember.objects.get(application=application, user=user)

    return member


@transaction.atomic
def acknowledge_membership(*, application_id: UUID, user: User) -> ApplicationMember:
    """
    Record that ``user`` has acknowledged the application.

    Acknowledging twice keeps the first timestamp.

    Raises:
        ApplicationNotFoundError: If application doesn't exist
        NotMemberError: If user is not a member
    """
    if not Application.objects.filter(id=application_id).exists():
        raise ApplicationNotFoundError(f"Application with ID {application_id} not found")

    try:
        member = (
            ApplicationMember.objects
            .select_for_update()
            .get(application_id=application_id, user=user)
        )
    except ApplicationMember.DoesNotExist:
        raise NotMemberError("You are not a member of this application")

    if member.acknowledged_at is None:
        now = timezone.now()
        member.acknowledged_at = now
        member.save(update_fields=['acknowledged_at'])

        ApplicationEvent.objects.create(
            application_id=application_id,
            at=now,
            by=actor_label(user),
            event='member.acknowledged',
        )

    return member


def get_application_members(*, application_id: UUID) -> QuerySet:
    return (
        ApplicationMember.objects
        .filter(application_id=application_id)
        .select_related('user')
        .order_by('joined_at')
    )
