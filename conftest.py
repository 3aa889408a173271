"""
PharmaStock — Root conftest for pytest

Shared fixtures available to all test modules.

@file conftest.py
"""

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from tests.factories import ItemFactory, SuperuserFactory, SupplierFactory, UserFactory, UserRoleFactory
from users.models import ROLE_PHARMACIST, ROLE_PHARMACY_ADMIN, ROLE_STOCK_MANAGER


@pytest.fixture(autouse=True)
def _clear_cache():
    """Forecasts are cached; start every test from an empty cache."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Active user without any pharmacy role. Password TestPass2026!"""
    return UserFactory()


@pytest.fixture
def admin_user(db):
    """Superuser with default password TestPass2026!"""
    return SuperuserFactory()


def _user_with_role(role_name):
    user = UserFactory()
    UserRoleFactory(user=user, role__name=role_name)
    return user


@pytest.fixture
def pharmacist(db):
    return _user_with_role(ROLE_PHARMACIST)


@pytest.fixture
def stock_manager(db):
    return _user_with_role(ROLE_STOCK_MANAGER)


@pytest.fixture
def pharmacy_admin(db):
    return _user_with_role(ROLE_PHARMACY_ADMIN)


@pytest.fixture
def authenticated_client(api_client, user):
    """API client authenticated as a user without roles."""
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def admin_client(api_client, admin_user):
    """API client authenticated as a superuser."""
    api_client.force_authenticate(user=admin_user)
    return api_client


@pytest.fixture
def pharmacist_client(api_client, pharmacist):
    api_client.force_authenticate(user=pharmacist)
    return api_client


@pytest.fixture
def stock_manager_client(api_client, stock_manager):
    api_client.force_authenticate(user=stock_manager)
    return api_client


@pytest.fixture
def supplier(db):
    return SupplierFactory(average_lead_time_days=7)


@pytest.fixture
def item(db, supplier):
    """Tablet item, threshold 10, no stock yet."""
    return ItemFactory(preferred_supplier=supplier, minimum_threshold=10)


@pytest.fixture
def stock_item():
    """
    Receive ``quantity`` units of an item through the ledger and return
    the refreshed item. Usage: ``stock_item(item, 50)``.
    """
    from stock.services import StockLedger

    def _stock(item, quantity, batch=None, actor=None, occurred_at=None):
        StockLedger.append(
            item_id=item.pk,
            movement_type='RECEIPT',
            quantity_delta=quantity,
            batch_id=batch.pk if batch else None,
            actor=actor,
            occurred_at=occurred_at,
        )
        item.refresh_from_db()
        if batch is not None:
            batch.refresh_from_db()
        return item

    return _stock
