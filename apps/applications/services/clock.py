"""
Lease clock.

Moves countersigned applications to ``occupied`` once their lease start
date has been reached. Run periodically by the ``tick_lease_clock``
management command.
"""

import logging
from datetime import datetime
from typing import List, Optional

from django.utils import timezone

from apps.applications.models import Application, ApplicationStatus, TransitionAction

from .state_machine import Terms, lease_started
from .transitions import try_system_action


logger = logging.getLogger(__name__)


def due_for_occupancy(now: Optional[datetime] = None) -> List[Application]:
    """Countersigned applications whose lease has started."""
    now = now or timezone.now()
    return [
        application
        for application in Application.objects.filter(status=ApplicationStatus.COUNTERSIGNED)
        if lease_started(Terms.from_dict(application.terms), now)
    ]


def advance_lease_clock(now: Optional[datetime] = None) -> List[Application]:
    """
    Fire ``tick_clock`` on every countersigned application.

    Args:
        now: Reference time (defaults to ``timezone.now()``)

    Returns:
        Applications that moved to ``occupied``
    """
    now = now or timezone.now()
    occupied = []

    for application in Application.objects.filter(status=ApplicationStatus.COUNTERSIGNED):
        applied = try_system_action(
            application_id=application.id,
            action=TransitionAction.TICK_CLOCK,
            now=now,
        )
        if applied:
            occupied.append(application)

    logger.info("Lease clock at %s: %d application(s) now occupied", now.isoformat(), len(occupied))
    return occupied
