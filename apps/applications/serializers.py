from rest_framework import serializers

from apps.accounts.serializers import UserMinimalSerializer

from .models import (
    Application,
    ApplicationEvent,
    ApplicationMember,
    LeaseSignature,
    Payment,
    PaymentKind,
    PaymentStatus,
    TransitionAction,
)
from .services.state_machine import allowed_actions


class ApplicationMemberSerializer(serializers.ModelSerializer):
    """Household member with acknowledgement state."""

    user = UserMinimalSerializer(read_only=True)

    class Meta:
        model = ApplicationMember
        fields = ['id', 'user', 'role', 'acknowledged_at', 'joined_at']
        read_only_fields = fields


class ApplicationSerializer(serializers.ModelSerializer):
    """Full application, including the actions available in its state."""

    members = ApplicationMemberSerializer(many=True, read_only=True)
    created_by = UserMinimalSerializer(read_only=True)
    allowed_actions = serializers.SerializerMethodField()

    class Meta:
        model = Application
        fields = [
            'id',
            'status',
            'property_label',
            'move_in_date',
            'payment_plan',
            'upfronts',
            'countersign',
            'terms',
            'members',
            'allowed_actions',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_allowed_actions(self, obj):
        return list(allowed_actions(obj.status))


class ApplicationListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    class Meta:
        model = Application
        fields = ['id', 'status', 'property_label', 'move_in_date', 'created_at', 'updated_at']
        read_only_fields = fields


class ApplicationCreateSerializer(serializers.Serializer):
    property_label = serializers.CharField(max_length=200, required=False, allow_blank=True)
    move_in_date = serializers.DateField(required=False, allow_null=True)
    upfronts = serializers.DictField(
        child=serializers.IntegerField(min_value=0),
        required=False,
        help_text="Legacy flat upfront amounts in cents: key, first, last, security",
    )


class FeeSerializer(serializers.Serializer):
    label = serializers.CharField(max_length=100)
    amount_cents = serializers.IntegerField(min_value=0)


class TermsSerializer(serializers.Serializer):
    """
    Lease terms submitted with ``set_terms``.

    Fields are deliberately permissive; the lifecycle rules decide whether
    the terms are complete (address, positive rent, start date).
    """

    address_freeform = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    rent_cents = serializers.IntegerField(min_value=0, required=False, default=0)
    start_date = serializers.DateField(required=False, allow_null=True, default=None)
    end_date = serializers.DateField(required=False, allow_null=True, default=None)
    unit_id = serializers.CharField(max_length=64, required=False, allow_null=True, allow_blank=True, default=None)
    deposit_cents = serializers.IntegerField(min_value=0, required=False, allow_null=True, default=None)
    fees = FeeSerializer(many=True, required=False, default=list)


class TransitionRequestSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=TransitionAction.choices)
    terms = TermsSerializer(required=False)


class TransitionErrorSerializer(serializers.Serializer):
    error = serializers.CharField()
    reason = serializers.CharField()
    message = serializers.CharField()


class PaymentPlanSerializer(serializers.Serializer):
    """Lease payment plan input; amounts in cents."""

    monthly_rent_cents = serializers.IntegerField()
    term_months = serializers.IntegerField(required=False, default=1)
    start_date = serializers.CharField(help_text="YYYY-MM-DD")
    security_cents = serializers.IntegerField(required=False, default=0)
    key_fee_cents = serializers.IntegerField(required=False, default=0)
    require_first_before_move_in = serializers.BooleanField(required=False, default=False)
    require_last_before_move_in = serializers.BooleanField(required=False, default=False)
    countersign_upfront_threshold_cents = serializers.IntegerField(required=False, default=0)
    countersign_deposit_threshold_cents = serializers.IntegerField(required=False, default=0)


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = ['id', 'kind', 'status', 'amount_cents', 'external_reference', 'created_at', 'updated_at']
        read_only_fields = fields


class RecordPaymentSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=PaymentKind.choices)
    amount_cents = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=PaymentStatus.choices, default=PaymentStatus.SUCCEEDED)
    external_reference = serializers.CharField(max_length=128, required=False, allow_blank=True, default='')
    created_at = serializers.DateTimeField(required=False, allow_null=True, default=None)


class PaymentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PaymentStatus.choices)


class ApplicationEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = ApplicationEvent
        fields = ['id', 'at', 'by', 'event', 'from_status', 'to_status', 'reason', 'meta']
        read_only_fields = fields


class LeaseSignatureSerializer(serializers.ModelSerializer):
    signer = UserMinimalSerializer(read_only=True)

    class Meta:
        model = LeaseSignature
        fields = ['id', 'signer', 'signed_at']
        read_only_fields = fields


class AddMemberSerializer(serializers.Serializer):
    email = serializers.EmailField()
