"""
Tests for StockLedger.
"""

from decimal import Decimal

import pytest

from stockkeeper.exceptions import InvalidRequestError, NegativeStockError
from stockkeeper.models import MovementKind, StockMovement, StockPosition
from stockkeeper.services import StockLedger
from stockkeeper.services.ledger import weighted_average_cost
from stockkeeper.tests.conftest import OTHER_PRODUCT, OTHER_STORE, PRODUCT, STORE


pytestmark = pytest.mark.django_db


class TestGetPosition:
    """Tests for StockLedger.get_position()."""

    def test_unknown_position_is_zero(self):
        """Never-stocked product reads as an unsaved zero position."""
        position = StockLedger.get_position(PRODUCT, STORE)

        assert position.pk is None
        assert position.quantity == 0
        assert position.average_cost == Decimal('0')

    def test_positions_are_per_store(self, stock_in):
        """Same product at two stores has two independent positions."""
        stock_in(PRODUCT, 10)
        stock_in(PRODUCT, 4, store_id=OTHER_STORE)

        assert StockLedger.get_position(PRODUCT, STORE).quantity == 10
        assert StockLedger.get_position(PRODUCT, OTHER_STORE).quantity == 4


class TestApplyMovement:
    """Tests for StockLedger.apply_movement()."""

    def test_positive_delta_creates_position(self, user):
        """First movement creates the position row."""
        movement = StockLedger.apply_movement(
            PRODUCT, STORE, 12, MovementKind.ADJUSTMENT_INCREASE,
            unit_cost=Decimal('2.50'), actor_id=user.pk,
        )

        position = StockPosition.objects.get(product_id=PRODUCT, store_id=STORE)
        assert position.quantity == 12
        assert position.average_cost == Decimal('2.50')
        assert position.last_cost == Decimal('2.50')
        assert movement.quantity_before == 0
        assert movement.quantity_after == 12
        assert movement.actor_id == user.pk

    def test_negative_delta_reduces_quantity(self):
        """Outgoing movement is valued at the current average cost."""
        StockLedger.apply_movement(PRODUCT, STORE, 10, MovementKind.ADJUSTMENT_INCREASE, unit_cost=Decimal('4'))

        movement = StockLedger.apply_movement(PRODUCT, STORE, -3, MovementKind.SALE)

        assert StockLedger.get_position(PRODUCT, STORE).quantity == 7
        assert movement.unit_cost == Decimal('4')
        assert movement.quantity_after == 7

    def test_cannot_go_negative(self):
        """Movement below zero raises and leaves no trace."""
        StockLedger.apply_movement(PRODUCT, STORE, 5, MovementKind.ADJUSTMENT_INCREASE, unit_cost=Decimal('1'))

        with pytest.raises(NegativeStockError) as exc:
            StockLedger.apply_movement(PRODUCT, STORE, -6, MovementKind.SALE)

        assert exc.value.code == 'NEGATIVE_STOCK'
        assert exc.value.available == 5
        assert exc.value.requested == 6
        assert StockLedger.get_position(PRODUCT, STORE).quantity == 5
        assert StockMovement.objects.count() == 1

    def test_can_reach_exactly_zero(self):
        """Zero on hand is allowed."""
        StockLedger.apply_movement(PRODUCT, STORE, 5, MovementKind.ADJUSTMENT_INCREASE, unit_cost=Decimal('1'))
        StockLedger.apply_movement(PRODUCT, STORE, -5, MovementKind.SALE)

        position = StockLedger.get_position(PRODUCT, STORE)
        assert position.quantity == 0
        assert position.is_out_of_stock

    @pytest.mark.parametrize('delta', [0, 1.5, True, '3'])
    def test_rejects_invalid_delta(self, delta):
        """Delta must be a non-zero integer."""
        with pytest.raises(InvalidRequestError):
            StockLedger.apply_movement(PRODUCT, STORE, delta, MovementKind.ADJUSTMENT_INCREASE)

    def test_rejects_unknown_kind(self):
        with pytest.raises(InvalidRequestError):
            StockLedger.apply_movement(PRODUCT, STORE, 1, 'transfer')

    def test_weighted_average_cost(self):
        """New stock re-averages the cost; restocks without cost keep it."""
        StockLedger.apply_movement(PRODUCT, STORE, 10, MovementKind.ADJUSTMENT_INCREASE, unit_cost=Decimal('4'))
        StockLedger.apply_movement(PRODUCT, STORE, 10, MovementKind.ADJUSTMENT_INCREASE, unit_cost=Decimal('6'))

        position = StockLedger.get_position(PRODUCT, STORE)
        assert position.average_cost == Decimal('5.0000')
        assert position.last_cost == Decimal('6')

        StockLedger.apply_movement(PRODUCT, STORE, 5, MovementKind.RETURN_RESTOCK)

        position = StockLedger.get_position(PRODUCT, STORE)
        assert position.quantity == 25
        assert position.average_cost == Decimal('5.0000')
        assert position.last_cost == Decimal('6')

    def test_reference_is_recorded(self, stock_in):
        """Movements point at the document that caused them."""
        adjustment = stock_in(PRODUCT, 3)

        movement = StockMovement.objects.get()
        assert movement.reference == adjustment
        assert list(StockLedger.movements(reference=adjustment)) == [movement]


class TestWeightedAverageCost:

    def test_formula(self):
        assert weighted_average_cost(10, Decimal('4'), 30, Decimal('8')) == Decimal('7.0000')

    def test_rounds_to_four_places(self):
        assert weighted_average_cost(1, Decimal('1'), 2, Decimal('2')) == Decimal('1.6667')

    def test_from_empty_position(self):
        assert weighted_average_cost(0, Decimal('0'), 5, Decimal('3.25')) == Decimal('3.2500')


class TestMovementImmutability:
    """Movements are append-only."""

    def test_cannot_update(self):
        movement = StockLedger.apply_movement(PRODUCT, STORE, 2, MovementKind.ADJUSTMENT_INCREASE)
        movement.note = 'editado'

        with pytest.raises(ValueError):
            movement.save()

    def test_cannot_delete(self):
        movement = StockLedger.apply_movement(PRODUCT, STORE, 2, MovementKind.ADJUSTMENT_INCREASE)

        with pytest.raises(ValueError):
            movement.delete()

    def test_quantities_must_match_delta(self):
        """quantity_after - quantity_before == delta."""
        position = StockPosition.objects.create(product_id=PRODUCT, store_id=STORE)

        with pytest.raises(ValueError):
            StockMovement.objects.create(
                position=position,
                delta=3,
                quantity_before=0,
                quantity_after=4,
                kind=MovementKind.ADJUSTMENT_INCREASE,
            )


class TestLogReconstruction:
    """Σ delta over the log equals the cached quantity."""

    def test_sum_of_deltas_matches_quantity(self, stock_in, sale, manager):
        StockLedger.apply_movement(PRODUCT, STORE, -1, MovementKind.ADJUSTMENT_DECREASE, actor_id=manager.pk)

        for product_id in (PRODUCT, OTHER_PRODUCT):
            position = StockLedger.get_position(product_id, STORE)
            assert StockLedger.reconstructed_quantity(product_id, STORE) == position.quantity

        assert StockLedger.get_position(PRODUCT, STORE).quantity == 6
        assert StockLedger.get_position(OTHER_PRODUCT, STORE).quantity == 8

    def test_before_after_chain(self, stock_in, sale):
        """Each movement starts where the previous one ended."""
        movements = list(StockLedger.movements(product_id=PRODUCT, store_id=STORE))

        assert [m.delta for m in movements] == [10, -3]
        for previous, current in zip(movements, movements[1:]):
            assert current.quantity_before == previous.quantity_after

    def test_discrepancies_and_recalculate(self, stock_in):
        """A corrupted cache is detected and repaired from the log."""
        stock_in(PRODUCT, 10)
        StockPosition.objects.filter(product_id=PRODUCT).update(quantity=99)

        found = list(StockLedger.discrepancies())
        assert [(p.product_id, p.quantity, p.log_quantity) for p in found] == [(PRODUCT, 99, 10)]

        assert StockLedger.recalculate(PRODUCT, STORE) == 10
        assert StockLedger.get_position(PRODUCT, STORE).quantity == 10
        assert list(StockLedger.discrepancies()) == []

    def test_recalculate_unknown_position(self):
        assert StockLedger.recalculate(PRODUCT, STORE) == 0


class TestMovementHistory:

    def test_filters_by_kind(self, stock_in, sale):
        sales = list(StockLedger.movements(kind=MovementKind.SALE))

        assert len(sales) == 2
        assert {m.product_id for m in sales} == {PRODUCT, OTHER_PRODUCT}

    def test_filters_by_store(self, stock_in):
        stock_in(PRODUCT, 1)
        stock_in(PRODUCT, 2, store_id=OTHER_STORE)

        assert [m.delta for m in StockLedger.movements(store_id=OTHER_STORE)] == [2]


class TestLowStock:
    """Thresholds are informational."""

    def test_lists_positions_at_or_below_threshold(self, stock_in, caplog):
        stock_in(PRODUCT, 5)
        stock_in(OTHER_PRODUCT, 50)
        StockPosition.objects.update(minimum_threshold=5)

        low = StockLedger.low_stock(STORE)

        assert [p.product_id for p in low] == [PRODUCT]
        assert low[0].stock_status == 'low_stock'
        assert any(r.getMessage() == 'stock.low' for r in caplog.records)

    def test_zero_threshold_is_never_low(self, stock_in):
        stock_in(PRODUCT, 1)

        assert StockLedger.low_stock() == []
        assert StockLedger.get_position(PRODUCT, STORE).stock_status == 'in_stock'

    def test_threshold_does_not_block_movements(self, stock_in):
        stock_in(PRODUCT, 5)
        StockPosition.objects.update(minimum_threshold=10)

        StockLedger.apply_movement(PRODUCT, STORE, -5, MovementKind.SALE)

        assert StockLedger.get_position(PRODUCT, STORE).quantity == 0
