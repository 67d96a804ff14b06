"""
Domain exceptions for applications app.

These exceptions represent business rule violations raised by the
applications services layer. Views catch them and convert them into
HTTP responses.

Exception Hierarchy:
    ApplicationsServiceError (base)
    ├── ApplicationNotFoundError
    ├── PaymentNotFoundError
    ├── TransitionRejectedError
    ├── StaleApplicationStateError
    ├── InvalidPaymentPlanError
    ├── PlanLockedError
    ├── UnknownPaymentKindError
    ├── NotMemberError
    ├── MembershipClosedError
    ├── SigningClosedError
    └── InsufficientPermissionsError
"""


class ApplicationsServiceError(Exception):
    """Base exception for all applications service errors."""
    pass


class ApplicationNotFoundError(ApplicationsServiceError):
    """Raised when an application does not exist or is inaccessible."""
    pass


class PaymentNotFoundError(ApplicationsServiceError):
    """Raised when a payment does not exist."""
    pass


class TransitionRejectedError(ApplicationsServiceError):
    """
    Raised when a requested lifecycle action is not allowed.

    Carries the machine-readable ``reason`` from the state machine so the
    API can return it alongside the human-readable message.
    """

    def __init__(self, reason, message=''):
        self.reason = reason
        self.message = message or reason
        super().__init__(self.message)


class StaleApplicationStateError(ApplicationsServiceError):
    """Raised when the stored status changed while a transition was decided."""
    pass


class InvalidPaymentPlanError(ApplicationsServiceError):
    """
    Raised when a submitted payment plan is invalid.

    ``code`` identifies the failing rule (e.g. ``bad_monthly``).
    """

    def __init__(self, code, message=''):
        self.code = code
        super().__init__(message or code)


class PlanLockedError(ApplicationsServiceError):
    """Raised when the plan of a closed application is edited."""
    pass


class UnknownPaymentKindError(ApplicationsServiceError):
    """Raised when a payment kind is outside the known domain."""
    pass


class NotMemberError(ApplicationsServiceError):
    """Raised when a user acts on an application they are not a member of."""
    pass


class MembershipClosedError(ApplicationsServiceError):
    """Raised when household members change after the application left draft."""
    pass


class SigningClosedError(ApplicationsServiceError):
    """Raised when the lease is signed outside the signing window."""
    pass


class InsufficientPermissionsError(ApplicationsServiceError):
    """Raised when a user lacks the role required for an action."""
    pass
