"""
Management command to compare cached quantities with the movement log.

Usage:
    python manage.py reconcile_stock
    python manage.py reconcile_stock --store 3
    python manage.py reconcile_stock --product 42 --fix
"""

from django.core.management.base import BaseCommand

from stockkeeper.services.ledger import StockLedger


class Command(BaseCommand):
    """Stock reconciliation command."""

    help = 'Confere o saldo de cada posição contra o histórico de movimentos'

    def add_arguments(self, parser):
        parser.add_argument('--store', type=int, help='Somente esta loja')
        parser.add_argument('--product', type=int, help='Somente este produto')
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Corrige o saldo a partir do histórico'
        )

    def handle(self, *args, **options):
        mismatches = list(StockLedger.discrepancies(
            product_id=options['product'],
            store_id=options['store'],
        ))

        if not mismatches:
            self.stdout.write(self.style.SUCCESS('Nenhuma divergência encontrada'))
            return

        for position in mismatches:
            self.stdout.write(
                f'produto {position.product_id} @ loja {position.store_id}: '
                f'saldo {position.quantity}, histórico {position.log_quantity}'
            )
            if options['fix']:
                StockLedger.recalculate(position.product_id, position.store_id)

        if options['fix']:
            self.stdout.write(
                self.style.SUCCESS(f'{len(mismatches)} posição(ões) corrigida(s)')
            )
        else:
            self.stdout.write(
                self.style.WARNING(f'{len(mismatches)} divergência(s) encontrada(s)')
            )
