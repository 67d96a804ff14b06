from django.contrib import admin

from .models import Application, ApplicationEvent, ApplicationMember, LeaseSignature, Payment


class ApplicationMemberInline(admin.TabularInline):
    model = ApplicationMember
    extra = 0
    raw_id_fields = ['user']
    readonly_fields = ['joined_at']


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ['kind', 'status', 'amount_cents', 'external_reference', 'created_at']


class ApplicationEventInline(admin.TabularInline):
    """Timeline entries are append-only; shown read-only."""

    model = ApplicationEvent
    extra = 0
    can_delete = False
    readonly_fields = ['at', 'by', 'event', 'from_status', 'to_status', 'reason', 'meta']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    """
    Admin interface for rental applications.

    Status is read-only here: lifecycle changes go through the transition
    service so guards and the timeline stay consistent.
    """

    list_display = ['id', 'property_label', 'status', 'move_in_date', 'created_by', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['id', 'property_label', 'created_by__email']
    readonly_fields = ['id', 'status', 'created_at', 'updated_at']
    raw_id_fields = ['created_by']
    date_hierarchy = 'created_at'
    inlines = [ApplicationMemberInline, PaymentInline, ApplicationEventInline]

    fieldsets = (
        ('Application', {
            'fields': ('id', 'property_label', 'status', 'created_by', 'move_in_date')
        }),
        ('Payment plan', {
            'fields': ('payment_plan', 'upfronts', 'countersign'),
        }),
        ('Lease terms', {
            'fields': ('terms',),
            'classes': ('collapse',),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'application', 'kind', 'status', 'amount_cents', 'created_at']
    list_filter = ['kind', 'status']
    search_fields = ['external_reference', 'application__id']
    raw_id_fields = ['application']


@admin.register(LeaseSignature)
class LeaseSignatureAdmin(admin.ModelAdmin):
    list_display = ['application', 'signer', 'signed_at']
    raw_id_fields = ['application', 'signer']
