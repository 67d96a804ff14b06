# ==========================================
# apps/applications/models.py
# ==========================================

from django.core.validators import MinValueValidator
from django.db import models
import uuid


class ApplicationStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    SUBMITTED = 'submitted', 'Submitted'
    ADMIN_SCREENED = 'admin_screened', 'Admin screened'
    APPROVED_HIGH = 'approved_high', 'Approved'
    TERMS_SET = 'terms_set', 'Terms set'
    MIN_DUE = 'min_due', 'Minimum due'
    MIN_PAID = 'min_paid', 'Minimum paid'
    COUNTERSIGNED = 'countersigned', 'Countersigned'
    OCCUPIED = 'occupied', 'Occupied'
    REJECTED = 'rejected', 'Rejected'
    WITHDRAWN = 'withdrawn', 'Withdrawn'


TERMINAL_STATUSES = frozenset({
    ApplicationStatus.OCCUPIED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.WITHDRAWN,
})


class TransitionAction(models.TextChoices):
    SUBMIT = 'submit', 'Submit'
    ADMIN_SCREEN = 'admin_screen', 'Admin screen'
    APPROVE_HIGH = 'approve_high', 'Approve'
    SET_TERMS = 'set_terms', 'Set terms'
    SYSTEM_MIN_READY = 'system_min_ready', 'Minimum ready'
    PAYMENT_UPDATED = 'payment_updated', 'Payment updated'
    SIGNATURES_COMPLETED = 'signatures_completed', 'Signatures completed'
    TICK_CLOCK = 'tick_clock', 'Clock tick'
    REJECT = 'reject', 'Reject'
    WITHDRAW = 'withdraw', 'Withdraw'


class ActorRole(models.TextChoices):
    TENANT = 'tenant', 'Tenant'
    ADMIN = 'admin', 'Admin'
    MANAGER = 'manager', 'Manager'
    SYSTEM = 'system', 'System'


class ChargeBucket(models.TextChoices):
    UPFRONT = 'upfront', 'Upfront'
    DEPOSIT = 'deposit', 'Deposit'
    RENT = 'rent', 'Rent'


class PaymentKind(models.TextChoices):
    UPFRONT = 'upfront', 'Upfront'
    OPERATING = 'operating', 'Operating (legacy upfront)'
    DEPOSIT = 'deposit', 'Deposit'
    RENT = 'rent', 'Rent'
    FEE = 'fee', 'Fee'


class PaymentStatus(models.TextChoices):
    CREATED = 'created', 'Created'
    PROCESSING = 'processing', 'Processing'
    SUCCEEDED = 'succeeded', 'Succeeded'
    FAILED = 'failed', 'Failed'
    CANCELED = 'canceled', 'Canceled'
    RETURNED = 'returned', 'Returned'


class MemberRole(models.TextChoices):
    PRIMARY = 'primary', 'Primary applicant'
    CO_APPLICANT = 'co_applicant', 'Co-applicant'


class Application(models.Model):
    """Rental application moving through the lease lifecycle."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    status = models.CharField(
        max_length=20,
        choices=ApplicationStatus.choices,
        default=ApplicationStatus.DRAFT,
        db_index=True,
    )

    # Lease payment plan (cents, snake_case keys)
    payment_plan = models.JSONField(null=True, blank=True)

    # Legacy flat upfront amounts: {"key", "first", "last", "security"}
    upfronts = models.JSONField(default=dict, blank=True)
    move_in_date = models.DateField(null=True, blank=True)

    # Countersign threshold overrides: {"upfront_min_cents", "deposit_min_cents"}
    countersign = models.JSONField(default=dict, blank=True)

    # Snapshot of the terms accepted by set_terms
    terms = models.JSONField(null=True, blank=True)

    property_label = models.CharField(max_length=200, blank=True)

    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_applications'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'applications'
        indexes = [
            models.Index(fields=['status', 'updated_at'], name='application_status_b1c2d3_idx'),
            models.Index(fields=['created_at'], name='application_created_e4f5a6_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        label = self.property_label or str(self.id)[:8]
        return f"{label} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def has_member(self, user):
        return self.members.filter(user=user).exists()


class ApplicationMember(models.Model):
    """Household member on an application."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    application = models.ForeignKey(
        Application,
        on_delete=models.CASCADE,
        related_name='members'
    )
    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='application_memberships'
    )
    role = models.CharField(
        max_length=20,
        choices=MemberRole.choices,
        default=MemberRole.CO_APPLICANT
    )
    acknowledged_at = models.DateTimeField(null=True, blank=True)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'application_members'
        unique_together = [['application', 'user']]
        ordering = ['joined_at']

    def __str__(self):
        return f"{self.user} on {self.application_id} ({self.role})"


class ApplicationEvent(models.Model):
    """Append-only timeline entry for an application."""

    id = models.BigAutoField(primary_key=True)
    application = models.ForeignKey(
        Application,
        on_delete=models.CASCADE,
        related_name='timeline'
    )
    at = models.DateTimeField()
    by = models.CharField(max_length=255)
    event = models.CharField(max_length=64)
    from_status = models.CharField(max_length=20, blank=True)
    to_status = models.CharField(max_length=20, blank=True)
    reason = models.CharField(max_length=64, blank=True)
    meta = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = 'application_events'
        indexes = [
            models.Index(fields=['application', 'at'], name='application_applica_a7b8c9_idx'),
        ]
        ordering = ['at', 'id']

    def __str__(self):
        return f"{self.event} @ {self.at:%Y-%m-%d %H:%M} by {self.by}"


class Payment(models.Model):
    """Payment attempt reported by the payment processor."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    application = models.ForeignKey(
        Application,
        on_delete=models.CASCADE,
        related_name='payments'
    )
    kind = models.CharField(max_length=20, choices=PaymentKind.choices)
    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.CREATED
    )
    amount_cents = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    external_reference = models.CharField(max_length=128, blank=True, db_index=True)

    created_at = models.DateTimeField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'application_payments'
        indexes = [
            models.Index(fields=['application', 'created_at'], name='application_applica_d0e1f2_idx'),
            models.Index(fields=['status'], name='application_status_a3b4c5_idx'),
        ]
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.kind} {self.amount_cents}c ({self.status})"


class LeaseSignature(models.Model):
    """Completed lease signature (tenant or landlord side)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    application = models.ForeignKey(
        Application,
        on_delete=models.CASCADE,
        related_name='signatures'
    )
    signer = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='lease_signatures'
    )
    signed_at = models.DateTimeField()

    class Meta:
        db_table = 'lease_signatures'
        unique_together = [['application', 'signer']]
        ordering = ['signed_at']

    def __str__(self):
        return f"{self.signer} signed {self.application_id}"
