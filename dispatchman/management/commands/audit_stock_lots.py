"""
Management command to audit lot quantities against moves and reservations.

Usage:
    python manage.py audit_stock_lots
    python manage.py audit_stock_lots --depot dep-1
"""

from django.core.management.base import BaseCommand

from dispatchman.services.ledger import StockLedger


class Command(BaseCommand):
    """Stock lot audit command."""

    help = 'Confere saldo e reservas dos lotes contra movimentos e reservas'

    def add_arguments(self, parser):
        parser.add_argument('--depot', default=None, help='Limita a um depósito')

    def handle(self, *args, **options):
        mismatches = StockLedger.audit(depot_id=options['depot'])

        if not mismatches:
            self.stdout.write(self.style.SUCCESS('Nenhuma divergência encontrada'))
            return

        for m in mismatches:
            self.stdout.write(
                f"lote #{m['lot_id']} ({m['lot_code'] or '-'}) {m['field']}: "
                f"registrado {m['recorded']}, calculado {m['computed']}"
            )
        self.stdout.write(self.style.WARNING(f'{len(mismatches)} divergência(s) encontrada(s)'))
