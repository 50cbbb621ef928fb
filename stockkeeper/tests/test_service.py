"""
Tests for the Reconciliation façade.
"""

from decimal import Decimal

import pytest
from django.core.exceptions import ImproperlyConfigured

from stockkeeper import reconciliation, StockkeeperError
from stockkeeper.adapters import AllowAllPermissionChecker, get_permission_checker
from stockkeeper.exceptions import (
    ConcurrencyConflictError,
    InvalidRequestError,
    InvalidStateError,
    NegativeStockError,
    NotFoundError,
    PermissionDeniedError,
)
from stockkeeper.models import AdjustmentStatus, MovementKind, ReturnStatus, SalesLine
from stockkeeper.services import SalesPosting
from stockkeeper.tests.conftest import OTHER_PRODUCT, OTHER_STORE, PRODUCT, STORE


pytestmark = pytest.mark.django_db

CLERK_CHECKER = 'stockkeeper.tests.permissions.ClerkPermissionChecker'


@pytest.fixture
def restricted(settings):
    """Only the manager may approve or reject."""
    settings.STOCKKEEPER = {'PERMISSION_CHECKER': CLERK_CHECKER}


class TestQueries:
    """Read side of the façade."""

    def test_current_stock(self, stock_in):
        stock_in(PRODUCT, 10)

        assert reconciliation.current_stock(PRODUCT, STORE).quantity == 10
        assert reconciliation.current_stock(PRODUCT, OTHER_STORE).quantity == 0

    def test_stock_value(self, stock_in):
        """Σ quantity × average cost."""
        stock_in(PRODUCT, 10, unit_cost=Decimal('4'))
        stock_in(OTHER_PRODUCT, 5, unit_cost=Decimal('2'))
        stock_in(PRODUCT, 1, unit_cost=Decimal('8'), store_id=OTHER_STORE)

        assert reconciliation.stock_value(store_id=STORE) == Decimal('50')
        assert reconciliation.stock_value(product_id=PRODUCT) == Decimal('48')
        assert reconciliation.stock_value() == Decimal('58')

    def test_stock_value_empty(self, db):
        assert reconciliation.stock_value() == Decimal('0')

    def test_movement_history(self, sale):
        history = reconciliation.movement_history(PRODUCT, STORE)

        assert [(m.kind, m.delta) for m in history] == [
            (MovementKind.ADJUSTMENT_INCREASE, 10),
            (MovementKind.SALE, -3),
        ]
        assert list(reconciliation.movement_history(kind=MovementKind.SALE, store_id=OTHER_STORE)) == []

    def test_returnable_lines(self, sale):
        assert [l['eligible'] for l in reconciliation.returnable_lines(5001)] == [3, 2]


class TestPostSale:
    """Tests for reconciliation.post_sale()."""

    def test_posts_sale_movements(self, stock_in, user):
        stock_in(PRODUCT, 10)

        lines = reconciliation.post_sale(
            sales_transaction_id=8001,
            store_id=STORE,
            lines=[{'product_id': PRODUCT, 'quantity': 4, 'unit_price_net': '12.90'}],
            actor_id=user.pk,
        )

        assert lines[0].quantity_sold == 4
        assert lines[0].unit_price_net == Decimal('12.90')
        assert reconciliation.current_stock(PRODUCT, STORE).quantity == 6
        movement = reconciliation.movement_history(kind=MovementKind.SALE).get()
        assert movement.reference == lines[0]

    def test_already_posted(self, sale, user):
        with pytest.raises(InvalidStateError) as exc:
            reconciliation.post_sale(
                sales_transaction_id=5001,
                store_id=STORE,
                lines=[{'product_id': PRODUCT, 'quantity': 1}],
                actor_id=user.pk,
            )

        assert exc.value.code == 'ALREADY_POSTED'
        assert reconciliation.current_stock(PRODUCT, STORE).quantity == 7

    def test_lines_are_numbered(self, sale):
        assert [line.line_number for line in sale] == [1, 2]

    def test_concurrent_duplicate_posting(self, sale, user, monkeypatch):
        """A second posting that misses the committed lines still collides on line 1."""
        monkeypatch.setattr(
            SalesPosting, '_already_posted', classmethod(lambda cls, txn: False)
        )

        with pytest.raises(ConcurrencyConflictError) as exc:
            reconciliation.post_sale(
                sales_transaction_id=5001,
                store_id=STORE,
                lines=[{'product_id': OTHER_PRODUCT, 'quantity': 1}],
                actor_id=user.pk,
            )

        assert exc.value.code == 'CONCURRENCY_CONFLICT'
        assert exc.value.data['operation'] == 'sale.post'
        assert SalesLine.objects.filter(sales_transaction_id=5001).count() == 2
        assert reconciliation.current_stock(OTHER_PRODUCT, STORE).quantity == 8

    def test_insufficient_stock_posts_nothing(self, stock_in, user):
        stock_in(PRODUCT, 10)
        stock_in(OTHER_PRODUCT, 1)

        with pytest.raises(NegativeStockError):
            reconciliation.post_sale(
                sales_transaction_id=8002,
                store_id=STORE,
                lines=[
                    {'product_id': PRODUCT, 'quantity': 2},
                    {'product_id': OTHER_PRODUCT, 'quantity': 2},
                ],
                actor_id=user.pk,
            )

        assert not SalesLine.objects.filter(sales_transaction_id=8002).exists()
        assert reconciliation.current_stock(PRODUCT, STORE).quantity == 10

    def test_sold_line_is_immutable(self, sale):
        bread, _ = sale
        bread.quantity_sold = 1

        with pytest.raises(ValueError):
            bread.save()


class TestApprovalRouting:
    """approve()/reject() dispatch by kind."""

    def test_approve_adjustment(self, stock_in, user, manager):
        stock_in(PRODUCT, 10)
        adjustment = reconciliation.request_adjustment(
            store_id=STORE, type='increase', reason='found_goods',
            lines=[{'product_id': PRODUCT, 'quantity': 5}], actor_id=user.pk,
        )

        approved = reconciliation.approve('adjustment', adjustment.pk, actor_id=manager.pk)

        assert approved.status == AdjustmentStatus.APPROVED
        assert reconciliation.current_stock(PRODUCT, STORE).quantity == 15

    def test_reject_return(self, sale, user, manager):
        bread, _ = sale
        sales_return = reconciliation.request_return(
            sales_transaction_id=5001, reason='Arrependimento',
            lines=[{'sales_line_id': bread.pk, 'quantity': 1}], actor_id=user.pk,
        )

        rejected = reconciliation.reject('return', sales_return.pk, actor_id=manager.pk)

        assert rejected.status == ReturnStatus.REJECTED

    def test_unknown_kind(self, manager):
        with pytest.raises(InvalidRequestError):
            reconciliation.approve('transfer', 1, actor_id=manager.pk)

    def test_unknown_id(self, manager):
        with pytest.raises(NotFoundError) as exc:
            reconciliation.approve('return', 424242, actor_id=manager.pk)

        assert exc.value.as_dict()['data'] == {'entity': 'return', 'id': 424242}

    def test_missing_actor(self):
        with pytest.raises(InvalidRequestError):
            reconciliation.reject('adjustment', 1, actor_id=None)

    def test_edit_and_delete_through_facade(self, sale, user):
        bread, _ = sale
        adjustment = reconciliation.request_adjustment(
            store_id=STORE, type='decrease', reason='lost_goods',
            lines=[{'product_id': PRODUCT, 'quantity': 1}], actor_id=user.pk,
        )
        sales_return = reconciliation.request_return(
            sales_transaction_id=5001, reason='Arrependimento',
            lines=[{'sales_line_id': bread.pk, 'quantity': 1}], actor_id=user.pk,
        )

        reconciliation.update_adjustment(adjustment.pk, user.pk, reason='correction')
        reconciliation.edit_return(sales_return.pk, user.pk, lines=[{'sales_line_id': bread.pk, 'quantity': 2}])
        adjustment.refresh_from_db()
        assert adjustment.reason == 'correction'
        assert reconciliation.returnable_lines(5001)[0]['eligible'] == 1

        reconciliation.delete_adjustment(adjustment.pk, user.pk)
        reconciliation.delete_return(sales_return.pk, user.pk)
        assert reconciliation.returnable_lines(5001)[0]['eligible'] == 3


class TestPermissions:
    """The configured checker gates every write."""

    def test_default_allows_everything(self):
        assert isinstance(get_permission_checker(), AllowAllPermissionChecker)

    def test_denied_approval(self, restricted, stock_in, user, manager):
        stock_in(PRODUCT, 10)
        adjustment = reconciliation.request_adjustment(
            store_id=STORE, type='decrease', reason='damaged_goods',
            lines=[{'product_id': PRODUCT, 'quantity': 2}], actor_id=user.pk,
        )

        with pytest.raises(PermissionDeniedError) as exc:
            reconciliation.approve('adjustment', adjustment.pk, actor_id=user.pk)

        assert exc.value.data['permission'] == 'stock-adjustment.approve'
        adjustment.refresh_from_db()
        assert adjustment.status == AdjustmentStatus.DRAFT
        assert reconciliation.current_stock(PRODUCT, STORE).quantity == 10

        reconciliation.approve('adjustment', adjustment.pk, actor_id=manager.pk)
        assert reconciliation.current_stock(PRODUCT, STORE).quantity == 8

    def test_denied_return_rejection(self, restricted, sale, user):
        bread, _ = sale
        sales_return = reconciliation.request_return(
            sales_transaction_id=5001, reason='Arrependimento',
            lines=[{'sales_line_id': bread.pk, 'quantity': 1}], actor_id=user.pk,
        )

        with pytest.raises(PermissionDeniedError) as exc:
            reconciliation.reject('return', sales_return.pk, actor_id=user.pk)

        assert exc.value.data['permission'] == 'return.reject'

    def test_checker_must_implement_protocol(self, settings):
        settings.STOCKKEEPER = {'PERMISSION_CHECKER': 'stockkeeper.tests.permissions.NotAChecker'}

        with pytest.raises(ImproperlyConfigured):
            get_permission_checker()

    def test_checker_must_import(self, settings):
        settings.STOCKKEEPER = {'PERMISSION_CHECKER': 'stockkeeper.tests.permissions.Missing'}

        with pytest.raises(ImproperlyConfigured):
            get_permission_checker()


class TestErrors:
    """Structured error payloads."""

    def test_as_dict_stringifies_decimals(self):
        error = StockkeeperError('NEGATIVE_STOCK', value=Decimal('1.50'))

        assert error.as_dict() == {
            'code': 'NEGATIVE_STOCK',
            'message': 'Estoque insuficiente',
            'data': {'value': '1.50'},
        }
        assert str(error) == '[NEGATIVE_STOCK] Estoque insuficiente'

    def test_subclasses_share_the_base(self):
        error = NegativeStockError(available=2, requested=5)

        assert isinstance(error, StockkeeperError)
        assert error.code == 'NEGATIVE_STOCK'
        assert (error.available, error.requested) == (2, 5)
