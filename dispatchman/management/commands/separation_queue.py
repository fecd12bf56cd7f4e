"""
Management command to print the separation queue of a depot.

Usage:
    python manage.py separation_queue --depot dep-1
    python manage.py separation_queue --depot dep-1 --explain
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from dispatchman.services.priority import PriorityScoringEngine


class Command(BaseCommand):
    """Separation queue command."""

    help = 'Mostra a fila de separação priorizada de um depósito'

    def add_arguments(self, parser):
        parser.add_argument('--depot', required=True, help='Depósito')
        parser.add_argument(
            '--explain',
            action='store_true',
            help='Mostra a pontuação de cada fator',
        )

    def handle(self, *args, **options):
        depot_id = options['depot']
        now = timezone.now()
        config = PriorityScoringEngine.get_config(depot_id)
        queue = PriorityScoringEngine.separation_queue(depot_id, now=now)

        self.stdout.write(f'Depósito {depot_id} — modo {config.mode}')
        if not queue:
            self.stdout.write('Nenhuma saída aguardando separação')
            return

        snapshots = {}
        if options['explain']:
            snapshots = {
                s.order_id: s
                for s in PriorityScoringEngine.snapshots(depot_id, now=now, orders=queue)
            }

        for position, order in enumerate(queue, start=1):
            line = f'{position:>3}. saída #{order.pk} criada {order.created_at:%Y-%m-%d %H:%M}'
            if order.dispatch_date:
                line += f' saída {order.dispatch_date} {order.time_slot}'.rstrip()
            self.stdout.write(line)

            if order.pk in snapshots:
                composite, breakdown = PriorityScoringEngine.score(depot_id, snapshots[order.pk], now=now)
                details = ', '.join(f'{k}={v:.1f}' for k, v in breakdown.items())
                self.stdout.write(f'       score {composite:.2f} ({details})')
