"""
Transition service.

Applies lifecycle actions to stored applications:

1. Load the application and build the guard context from the database
2. Ask the state machine for a decision
3. Persist an applied decision with a compare-and-set update on the
   status column, together with a timeline event
4. Fire the system follow-up actions the new state calls for

A rejected decision raises ``TransitionRejectedError`` and writes nothing.
"""

import logging
from datetime import datetime
from typing import Mapping, Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User, UserRole
from apps.applications.models import (
    ActorRole,
    Application,
    ApplicationEvent,
    ApplicationStatus,
    TransitionAction,
)

from .application_queries import bucket_totals_for, get_application
from .exceptions import StaleApplicationStateError, TransitionRejectedError
from .state_machine import GuardContext, Terms, decide_transition
from .thresholds import derive_min_rules, resolve_thresholds


logger = logging.getLogger(__name__)

SYSTEM_ACTOR = 'system'


def actor_label(actor: Optional[User]) -> str:
    """Value stored in the timeline ``by`` column."""
    if actor is None:
        return SYSTEM_ACTOR
    return actor.email or str(actor.pk)


def role_for_user(user: User) -> str:
    return str(user.role)


def signed_sides(application: Application) -> int:
    """
    Number of lease sides that have signed (0, 1 or 2).

    Tenant signers make up one side, admins and managers the other; a
    second signature from the same side adds nothing.
    """
    roles = set(application.signatures.values_list('signer__role', flat=True))
    tenant_side = str(UserRole.TENANT) in roles
    landlord_side = bool(roles & {str(UserRole.ADMIN), str(UserRole.MANAGER)})
    return int(tenant_side) + int(landlord_side)


def build_guard_context(
    application: Application,
    *,
    action: str,
    terms: Optional[Mapping] = None,
    now: Optional[datetime] = None,
) -> GuardContext:
    """
    Collect the facts the state machine consults for one attempt.

    ``members_ack`` needs at least one member and every member
    acknowledged. ``set_terms`` validates the submitted terms; every other
    action sees the stored terms snapshot.
    """
    acknowledgements = list(application.members.values_list('acknowledged_at', flat=True))
    members_ack = bool(acknowledgements) and all(at is not None for at in acknowledgements)

    if str(action) == TransitionAction.SET_TERMS:
        guard_terms = Terms.from_dict(terms)
    else:
        guard_terms = Terms.from_dict(application.terms)

    thresholds = resolve_thresholds(application.countersign, application.payment_plan)

    return GuardContext(
        members_ack=members_ack,
        terms=guard_terms,
        min_rules=tuple(derive_min_rules(thresholds['upfront'], thresholds['deposit'])),
        signatures_count=signed_sides(application),
        payment_totals=bucket_totals_for(application),
        now=now or timezone.now(),
    )


def apply_transition(
    *,
    application_id: UUID,
    action: str,
    role: str,
    actor: Optional[User] = None,
    terms: Optional[Mapping] = None,
    now: Optional[datetime] = None,
    follow_up: bool = True,
) -> Application:
    """
    Apply a lifecycle action to an application.

    Args:
        application_id: UUID of the application
        action: ``TransitionAction`` value
        role: Role the actor acts in (tenant, admin, manager or system)
        actor: Acting user; None for system actions
        terms: Lease terms payload, consulted by ``set_terms`` only
        now: Reference time (defaults to ``timezone.now()``)
        follow_up: Run the system actions the new state triggers

    Returns:
        The application reloaded after the transition (and follow-ups)

    Raises:
        ApplicationNotFoundError: If the application doesn't exist
        TransitionRejectedError: If the state machine refused the action
        StaleApplicationStateError: If the status changed concurrently
    """
    now = now or timezone.now()

    with transaction.atomic():
        application = get_application(application_id=application_id)
        current = application.status
        ctx = build_guard_context(application, action=action, terms=terms, now=now)
        decision = decide_transition(current, action, role, ctx)

        if not decision.applied:
            logger.debug(
                "Rejected %s by %s on application %s (%s): %s",
                action, role, application.id, current, decision.reason,
            )
            raise TransitionRejectedError(decision.reason, decision.message)

        changes = {'status': decision.new_status, 'updated_at': now}
        if str(action) == TransitionAction.SET_TERMS:
            changes['terms'] = ctx.terms.to_dict()

        updated = (
            Application.objects
            .filter(pk=application.pk, status=current)
            .update(**changes)
        )
        if updated == 0:
            logger.warning(
                "Stale status on application %s: expected %s for %s",
                application.id, current, action,
            )
            raise StaleApplicationStateError(
                f"Application {application.id} changed while {action} was being applied"
            )

        ApplicationEvent.objects.create(
            application=application,
            at=now,
            by=actor_label(actor),
            event='status.change',
            from_status=current,
            to_status=decision.new_status,
            reason=str(action),
        )

    logger.info(
        "Application %s: %s -> %s (%s by %s)",
        application.id, current, decision.new_status, action, actor_label(actor),
    )

    if follow_up:
        run_system_follow_ups(application_id=application.id, action=action, now=now)

    application.refresh_from_db()
    return application


def try_system_action(*, application_id: UUID, action: str, now: Optional[datetime] = None) -> bool:
    """
    Apply a system action, treating a refusal as "not yet".

    Returns:
        True if the action was applied, False if the state machine refused it
    """
    try:
        apply_transition(
            application_id=application_id,
            action=action,
            role=ActorRole.SYSTEM,
            now=now,
        )
    except TransitionRejectedError as e:
        logger.debug("System action %s not applied to %s: %s", action, application_id, e.reason)
        return False
    except StaleApplicationStateError:
        logger.debug("System action %s not applied to %s: status changed concurrently", action, application_id)
        return False
    return True


def run_system_follow_ups(*, application_id: UUID, action: str, now: Optional[datetime] = None) -> None:
    """
    Chain the system actions a new state calls for.

    After terms are set the countersign minimum is evaluated
    (``system_min_ready``). On entering ``min_due`` the payment gate is
    checked straight away because payments may already be on file.
    """
    action = str(action)

    if action == TransitionAction.SET_TERMS:
        try_system_action(
            application_id=application_id,
            action=TransitionAction.SYSTEM_MIN_READY,
            now=now,
        )
    elif action == TransitionAction.SYSTEM_MIN_READY:
        status = Application.objects.filter(pk=application_id).values_list('status', flat=True).first()
        if status == ApplicationStatus.MIN_DUE:
            try_system_action(
                application_id=application_id,
                action=TransitionAction.PAYMENT_UPDATED,
                now=now,
            )
    elif action == TransitionAction.PAYMENT_UPDATED:
        # Both signatures may already be in
        try_system_action(
            application_id=application_id,
            action=TransitionAction.SIGNATURES_COMPLETED,
            now=now,
        )
