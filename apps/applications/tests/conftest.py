import pytest
from datetime import datetime, timezone as dt_timezone
from rest_framework.test import APIClient
from apps.accounts.models import User, UserRole
from apps.applications.models import (
    Application,
    ApplicationMember,
    ApplicationStatus,
    MemberRole,
    Payment,
)
from .helpers import client_for


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def tenant(db):
    return User.objects.create_user(
        email='tenant@example.com',
        password='TestPass123!',
        display_name='Tenant',
    )


@pytest.fixture
def co_tenant(db):
    return User.objects.create_user(
        email='cotenant@example.com',
        password='TestPass123!',
        display_name='Co Tenant',
    )


@pytest.fixture
def outsider(db):
    """Tenant who is not on any application."""
    return User.objects.create_user(
        email='outsider@example.com',
        password='TestPass123!',
        display_name='Outsider',
    )


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email='admin@example.com',
        password='TestPass123!',
        display_name='Screening Admin',
        role=UserRole.ADMIN,
    )


@pytest.fixture
def manager(db):
    return User.objects.create_user(
        email='manager@example.com',
        password='TestPass123!',
        display_name='Property Manager',
        role=UserRole.MANAGER,
    )


@pytest.fixture
def tenant_client(tenant):
    return client_for(tenant)


@pytest.fixture
def manager_client(manager):
    return client_for(manager)


@pytest.fixture
def admin_client(admin_user):
    return client_for(admin_user)


@pytest.fixture
def make_application(tenant):
    """Factory: application in ``status`` with ``tenant`` as acknowledged primary member."""

    def _make(status=ApplicationStatus.DRAFT, acknowledged=True, **fields):
        application = Application.objects.create(status=status, created_by=tenant, **fields)
        ApplicationMember.objects.create(
            application=application,
            user=tenant,
            role=MemberRole.PRIMARY,
            acknowledged_at=datetime(2024, 11, 1, tzinfo=dt_timezone.utc) if acknowledged else None,
        )
        return application

    return _make


@pytest.fixture
def draft_application(make_application):
    return make_application(acknowledged=False, property_label='12 Elm Street')


@pytest.fixture
def make_payment():
    """Factory: stored payment on an application."""

    def _make(application, kind, amount_cents, status='succeeded', created_at=None):
        return Payment.objects.create(
            application=application,
            kind=kind,
            status=status,
            amount_cents=amount_cents,
            created_at=created_at or datetime(2024, 12, 1, 12, 0, tzinfo=dt_timezone.utc),
        )

    return _make
