"""
Applications app services layer.

The pure core (state machine, charges, allocation, thresholds, due windows,
ledger) takes plain data and performs no I/O. The management modules load
data, persist decisions inside transactions and append timeline events.
"""

from .exceptions import (
    ApplicationsServiceError,
    ApplicationNotFoundError,
    PaymentNotFoundError,
    TransitionRejectedError,
    StaleApplicationStateError,
    InvalidPaymentPlanError,
    PlanLockedError,
    UnknownPaymentKindError,
    NotMemberError,
    MembershipClosedError,
    SigningClosedError,
    InsufficientPermissionsError,
)

from .state_machine import (
    ALLOWED_ACTIONS,
    Applied,
    GuardContext,
    Rejected,
    Terms,
    allowed_actions,
    compute_next_state,
    decide_transition,
    terms_are_valid,
)

from .charges import (
    Charge,
    LegacyUpfronts,
    PaymentPlan,
    build_charges,
)

from .allocation import (
    AllocationResult,
    PaymentRecord,
    allocate_payments,
    normalize_payment_kind,
)

from .thresholds import (
    MinRule,
    bucket_allocated_totals,
    countersign_minimum_satisfied,
    derive_min_rules,
    threshold_remaining,
)

from .due_windows import (
    DueWindows,
    compute_due_windows,
    move_in_coverage,
    next_unpaid_rent,
)

from .ledger import build_ledger

from .application_queries import (
    get_application,
    get_application_for_user,
    get_application_ledger,
    list_applications_for_user,
)

from .transitions import (
    apply_transition,
    role_for_user,
)

from .plan_management import (
    set_payment_plan,
)

from .payment_management import (
    record_payment,
    update_payment_status,
    reevaluate_payment_gate,
    get_application_payments,
)

from .signature_management import (
    record_signature,
)

from .membership_management import (
    create_application,
    add_member,
    acknowledge_membership,
    get_application_members,
)

from .clock import (
    advance_lease_clock,
    due_for_occupancy,
)


__all__ = [
    # Exceptions
    'ApplicationsServiceError',
    'ApplicationNotFoundError',
    'PaymentNotFoundError',
    'TransitionRejectedError',
    'StaleApplicationStateError',
    'InvalidPaymentPlanError',
    'PlanLockedError',
    'UnknownPaymentKindError',
    'NotMemberError',
    'MembershipClosedError',
    'SigningClosedError',
    'InsufficientPermissionsError',

    # State machine
    'ALLOWED_ACTIONS',
    'Applied',
    'GuardContext',
    'Rejected',
    'Terms',
    'allowed_actions',
    'compute_next_state',
    'decide_transition',
    'terms_are_valid',

    # Charges and allocation
    'Charge',
    'LegacyUpfronts',
    'PaymentPlan',
    'build_charges',
    'AllocationResult',
    'PaymentRecord',
    'allocate_payments',
    'normalize_payment_kind',

    # Thresholds and due windows
    'MinRule',
    'bucket_allocated_totals',
    'countersign_minimum_satisfied',
    'derive_min_rules',
    'threshold_remaining',
    'DueWindows',
    'compute_due_windows',
    'move_in_coverage',
    'next_unpaid_rent',
    'build_ledger',

    # Queries
    'get_application',
    'get_application_for_user',
    'get_application_ledger',
    'list_applications_for_user',

    # Lifecycle
    'apply_transition',
    'role_for_user',
    'set_payment_plan',
    'record_payment',
    'update_payment_status',
    'reevaluate_payment_gate',
    'get_application_payments',
    'record_signature',
    'create_application',
    'add_member',
    'acknowledge_membership',
    'get_application_members',
    'advance_lease_clock',
    'due_for_occupancy',
]
