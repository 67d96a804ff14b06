from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html
from .models import User, UserRole


ROLE_COLORS = {
    UserRole.TENANT: '#6B8E5E',
    UserRole.ADMIN: '#A47449',
    UserRole.MANAGER: '#4A6FA5',
}


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin interface for platform users.

    Lists users with their role, filters by role and status, and offers
    bulk actions to switch roles.
    """

    list_display = [
        'email',
        'display_name',
        'role_badge',
        'is_active',
        'created_at',
        'last_login',
    ]

    list_filter = [
        'role',
        'is_active',
        'is_staff',
        'created_at',
    ]

    search_fields = [
        'email',
        'display_name',
    ]

    ordering = ['-created_at']
    date_hierarchy = 'created_at'

    # BaseUserAdmin expects a username field
    fieldsets = (
        ('Basic Information', {
            'fields': ('email', 'display_name', 'password')
        }),
        ('Role', {
            'fields': ('role',),
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'last_login'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        ('Create User', {
            'classes': ('wide',),
            'fields': ('email', 'display_name', 'role', 'password1', 'password2'),
        }),
    )

    readonly_fields = [
        'created_at',
        'last_login',
    ]

    filter_horizontal = ['groups', 'user_permissions']

    def role_badge(self, obj):
        """Display role as colored badge."""
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            ROLE_COLORS.get(obj.role, '#999'),
            obj.get_role_display(),
        )
    role_badge.short_description = 'Role'
    role_badge.admin_order_field = 'role'

    actions = ['make_tenants', 'make_managers']

    @admin.action(description='Set role: tenant')
    def make_tenants(self, request, queryset):
        count = queryset.filter(is_superuser=False).update(role=UserRole.TENANT)
        self.message_user(request, f'Updated {count} user(s).')

    @admin.action(description='Set role: property manager')
    def make_managers(self, request, queryset):
        count = queryset.update(role=UserRole.MANAGER)
        self.message_user(request, f'Updated {count} user(s).')
