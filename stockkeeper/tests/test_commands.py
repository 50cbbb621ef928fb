"""
Tests for the reconcile_stock management command.
"""

from io import StringIO

import pytest
from django.core.management import call_command

from stockkeeper.models import StockPosition
from stockkeeper.services import StockLedger
from stockkeeper.tests.conftest import OTHER_PRODUCT, OTHER_STORE, PRODUCT, STORE


pytestmark = pytest.mark.django_db


def _run(*args):
    out = StringIO()
    call_command('reconcile_stock', *args, stdout=out)
    return out.getvalue()


class TestReconcileStock:

    def test_clean_ledger(self, sale):
        assert 'Nenhuma divergência' in _run()

    def test_reports_without_fixing(self, stock_in):
        stock_in(PRODUCT, 10)
        StockPosition.objects.filter(product_id=PRODUCT).update(quantity=12)

        output = _run()

        assert f'produto {PRODUCT} @ loja {STORE}: saldo 12, histórico 10' in output
        assert '1 divergência(s)' in output
        assert StockLedger.get_position(PRODUCT, STORE).quantity == 12

    def test_fix(self, stock_in):
        stock_in(PRODUCT, 10)
        stock_in(OTHER_PRODUCT, 3)
        StockPosition.objects.update(quantity=0)

        output = _run('--fix')

        assert '2 posição(ões) corrigida(s)' in output
        assert StockLedger.get_position(PRODUCT, STORE).quantity == 10
        assert StockLedger.get_position(OTHER_PRODUCT, STORE).quantity == 3

    def test_filters(self, stock_in):
        stock_in(PRODUCT, 10)
        stock_in(PRODUCT, 10, store_id=OTHER_STORE)
        StockPosition.objects.update(quantity=1)

        _run('--store', str(OTHER_STORE), '--fix')

        assert StockLedger.get_position(PRODUCT, STORE).quantity == 1
        assert StockLedger.get_position(PRODUCT, OTHER_STORE).quantity == 10
