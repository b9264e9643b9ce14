# tests/conftest.py
"""
Pytest fixtures for the ledger backend tests.

- Actors are built with build_actor() so permissions come from the role
- Accounts that need money get it through create_account(opening_balance=...)
  so the cached balance always has ledger entries behind it
"""

import logging
from decimal import Decimal

import pytest
from django.conf import settings
from django.contrib.auth import get_user_model

from accounts.authz import build_actor
from accounts.models import Company, CompanyMembership
from inventory.models import Product
from ledger.commands import create_account
from ledger.models import Customer, Supplier
from ops.logging_config import APP_LOGGERS


User = get_user_model()


@pytest.fixture(autouse=True, scope="session")
def _testing_settings():
    """Run reconciliation inline and let fixtures write audit-trail rows."""
    settings.TESTING = True
    settings.RECONCILE_INLINE = True
    settings.CELERY_TASK_ALWAYS_EAGER = True


@pytest.fixture
def app_logs(caplog, monkeypatch):
    """caplog that also sees the app loggers (they do not propagate by default)."""
    for name in APP_LOGGERS:
        monkeypatch.setattr(logging.getLogger(name), "propagate", True)
    caplog.set_level(logging.INFO)
    return caplog


# =============================================================================
# Company & User Fixtures
# =============================================================================

@pytest.fixture
def company(db):
    """Create a test company."""
    return Company.objects.create(
        name="Test Company",
        slug="test-company",
        default_currency="TRY",
        is_active=True,
    )


@pytest.fixture
def second_company(db):
    """Create a second test company for multi-tenant tests."""
    return Company.objects.create(
        name="Second Company",
        slug="second-company",
        default_currency="TRY",
        is_active=True,
    )


def _make_user(email, name, company):
    user = User.objects.create_user(email=email, password="testpass123", name=name)
    user.active_company = company
    user.save()
    return user


@pytest.fixture
def user(db, company):
    """Company owner."""
    user = _make_user("owner@test.com", "Test Owner", company)
    CompanyMembership.objects.create(company=company, user=user, role=CompanyMembership.Role.OWNER)
    return user


@pytest.fixture
def admin_user(db, company):
    user = _make_user("admin@test.com", "Test Admin", company)
    CompanyMembership.objects.create(company=company, user=user, role=CompanyMembership.Role.ADMIN)
    return user


@pytest.fixture
def regular_user(db, company):
    user = _make_user("user@test.com", "Test User", company)
    CompanyMembership.objects.create(company=company, user=user, role=CompanyMembership.Role.USER)
    return user


@pytest.fixture
def second_user(db, second_company):
    """Owner of the second company."""
    user = _make_user("owner@second.com", "Second Owner", second_company)
    CompanyMembership.objects.create(
        company=second_company, user=user, role=CompanyMembership.Role.OWNER
    )
    return user


@pytest.fixture
def actor_context(user, company):
    return build_actor(user, company)


@pytest.fixture
def admin_actor_context(admin_user, company):
    return build_actor(admin_user, company)


@pytest.fixture
def user_actor_context(regular_user, company):
    return build_actor(regular_user, company)


@pytest.fixture
def second_actor_context(second_user, second_company):
    return build_actor(second_user, second_company)


# =============================================================================
# Ledger Fixtures
# =============================================================================

def open_account(actor, name, opening_balance=Decimal("0"), **kwargs):
    result = create_account(actor, name=name, opening_balance=opening_balance, **kwargs)
    assert result.success, result.error
    return result.data


@pytest.fixture
def account_factory(db):
    """open_account(actor, name, opening_balance=0, **create_account kwargs)."""
    return open_account


@pytest.fixture
def cash_account(actor_context):
    """Empty cash account."""
    return open_account(actor_context, "Cash Register")


@pytest.fixture
def funded_account(actor_context):
    """Bank account opened with 1000."""
    return open_account(actor_context, "Main Bank", Decimal("1000"), type="bank")


@pytest.fixture
def customer(company):
    return Customer.objects.create(company=company, name="Acme Retail", email="buyer@acme.test")


@pytest.fixture
def supplier(company):
    return Supplier.objects.create(company=company, name="Widget Works", email="sales@widgets.test")


@pytest.fixture
def product(company):
    """Tracked product: 100 in stock, sells for 60."""
    return Product.objects.create(
        company=company,
        name="Widget",
        sku="WID-1",
        quantity=Decimal("100"),
        sale_price=Decimal("60.00"),
        purchase_price=Decimal("40.00"),
    )


@pytest.fixture
def service_product(company):
    """Untracked product (services, labour)."""
    return Product.objects.create(
        company=company,
        name="Installation",
        quantity=Decimal("0"),
        track_stock=False,
        sale_price=Decimal("150.00"),
    )


@pytest.fixture
def second_company_account(second_actor_context):
    return open_account(second_actor_context, "Other Cash", Decimal("500"))
