"""Shared test data for the applications tests."""

from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken


def scenario_plan():
    """Twelve month lease from 2025-01-01 with first and last month due upfront."""
    return {
        'monthly_rent_cents': 200000,
        'term_months': 12,
        'start_date': '2025-01-01',
        'security_cents': 200000,
        'require_first_before_move_in': True,
        'require_last_before_move_in': True,
        'upfront_totals': {
            'first_cents': 200000,
            'last_cents': 200000,
            'key_cents': 5000,
        },
    }


def valid_terms():
    return {
        'address_freeform': '12 Elm Street, Apt 4',
        'rent_cents': 200000,
        'start_date': '2025-01-01',
    }


def client_for(user):
    """API client authenticated as ``user`` with a JWT."""
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client
