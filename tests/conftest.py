"""
Shared fixtures for the trading test suite.

Dates are pinned so rules that depend on "today" (open, incomplete and weekly
limits) behave the same whenever the suite runs.
"""

from datetime import date

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from trading.models import Item
from trading.services.transactions import TransactionManager

User = get_user_model()


# Wednesday; its Monday is 2024-06-10
TODAY = date(2024, 6, 12)


@pytest.fixture
def today():
    """Fixed date used wherever a component takes ``today``."""
    return TODAY


@pytest.fixture
def api_client():
    """Return API client for testing."""
    return APIClient()


@pytest.fixture
def lender(db):
    """Create the user whose items get borrowed."""
    return User.objects.create_user(
        email='lender@test.com',
        username='lender',
        password='TestPass123!',
        home_city='Toronto',
    )


@pytest.fixture
def borrower(db):
    """Create the user asking for items."""
    return User.objects.create_user(
        email='borrower@test.com',
        username='borrower',
        password='TestPass123!',
        home_city='Toronto',
    )


@pytest.fixture
def other_user(db):
    """Create a user with no part in the test transactions."""
    return User.objects.create_user(
        email='other@test.com',
        username='other',
        password='TestPass123!',
    )


@pytest.fixture
def admin_user(db):
    """Create a marketplace admin."""
    return User.objects.create_user(
        email='admin@test.com',
        username='admin',
        password='TestPass123!',
        status='admin',
    )


@pytest.fixture
def make_item(db):
    """
    Factory for items.

    Items are approved (visible) unless ``is_visible=False`` is passed.
    """
    def _make_item(owner, name='Tent', price=100, **kwargs):
        kwargs.setdefault('is_visible', True)
        return Item.objects.create(
            name=name,
            owner=owner,
            holder=owner,
            price=price,
            **kwargs
        )
    return _make_item


@pytest.fixture
def lender_item(make_item, lender):
    return make_item(lender, name='Camping Tent', price=100)


@pytest.fixture
def borrower_item(make_item, borrower):
    return make_item(borrower, name='Power Drill', price=60)


@pytest.fixture
def build_tx(db, today):
    """
    Helper that builds a transaction through the TransactionManager.

    Defaults to a one-way temporary loan of ``borrow_item`` meeting on
    ``today``.
    """
    def _build_tx(borrower, lender, borrow_item, lend_item=None, trade_type='oneWay',
                  trade_duration='temporary', meeting_date=None,
                  location='Library', location2='Station'):
        return TransactionManager(today=today).build_transaction(
            borrower.id,
            lender.id,
            borrow_item.id,
            lend_item.id if lend_item else None,
            trade_type,
            trade_duration,
            meeting_date or today,
            location,
            location2 if trade_duration != 'permanent' else None,
        )
    return _build_tx
