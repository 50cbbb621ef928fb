"""
Pytest fixtures for Stockkeeper tests.
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from stockkeeper.adapters import reset_permission_checker
from stockkeeper.services import AdjustmentWorkflow, SalesPosting


User = get_user_model()

STORE = 1
OTHER_STORE = 2
PRODUCT = 101
OTHER_PRODUCT = 102


@pytest.fixture(autouse=True)
def _fresh_permission_checker():
    """Each test loads the checker from its own settings."""
    reset_permission_checker()
    yield
    reset_permission_checker()


@pytest.fixture
def user(db):
    """Create a test user (clerk)."""
    return User.objects.create_user(
        username='testuser',
        password='testpass123'
    )


@pytest.fixture
def manager(db):
    """Create the approving user."""
    return User.objects.create_user(
        username='manager',
        password='testpass123'
    )


@pytest.fixture
def stock_in(user, manager):
    """
    Put stock on hand through an approved increase adjustment.

    Usage:
        stock_in(PRODUCT, 10, unit_cost=Decimal('4.00'))
    """
    def _stock_in(product_id, quantity, unit_cost=Decimal('10.00'), store_id=STORE):
        adjustment = AdjustmentWorkflow.create(
            store_id=store_id,
            type='increase',
            reason='stock_opname',
            lines=[{'product_id': product_id, 'quantity': quantity, 'unit_cost': unit_cost}],
            actor_id=user.pk,
        )
        return AdjustmentWorkflow.approve(adjustment.pk, actor_id=manager.pk)
    return _stock_in


@pytest.fixture
def sale(stock_in, user):
    """Transaction 5001: 3 × PRODUCT at 20.00 and 2 × OTHER_PRODUCT at 7.50, out of 10 each."""
    stock_in(PRODUCT, 10)
    stock_in(OTHER_PRODUCT, 10, unit_cost=Decimal('3.00'))
    lines = SalesPosting.post_sale(
        sales_transaction_id=5001,
        store_id=STORE,
        lines=[
            {'product_id': PRODUCT, 'quantity': 3, 'unit_price_net': Decimal('20.00')},
            {'product_id': OTHER_PRODUCT, 'quantity': 2, 'unit_price_net': Decimal('7.50')},
        ],
        actor_id=user.pk,
    )
    return lines
