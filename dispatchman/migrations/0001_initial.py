"""
Initial migration for Dispatchman models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Dispatchman models: positions, lots, claims, time slots, orders, priority."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='StoragePosition',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('depot_id', models.CharField(db_index=True, max_length=64, verbose_name='Depósito')),
                ('code', models.CharField(help_text='Código impresso na etiqueta da posição (ex: A-01-01)', max_length=50, verbose_name='Código')),
                ('zone', models.CharField(blank=True, default='', max_length=50, verbose_name='Zona')),
                ('capacity', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True, verbose_name='Capacidade (kg)')),
                ('is_active', models.BooleanField(default=True, verbose_name='Ativa')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Posição de Armazenagem',
                'verbose_name_plural': 'Posições de Armazenagem',
                'ordering': ['depot_id', 'code'],
                'constraints': [
                    models.UniqueConstraint(fields=('depot_id', 'code'), name='unique_position_code_per_depot'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockLot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(max_length=64, verbose_name='Produto')),
                ('depot_id', models.CharField(max_length=64, verbose_name='Depósito')),
                ('lot_code', models.CharField(blank=True, default='', max_length=50, verbose_name='Lote')),
                ('expiration_date', models.DateField(blank=True, db_index=True, help_text='Vazio = produto sem validade (consumido por último).', null=True, verbose_name='Data de Validade')),
                ('quantity_on_hand', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Quantidade em estoque')),
                ('quantity_reserved', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Quantidade reservada')),
                ('pallet_id', models.CharField(blank=True, default='', max_length=64, verbose_name='Pallet de origem')),
                ('received_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Recebido em')),
                ('retired_at', models.DateTimeField(blank=True, help_text='Preenchido quando o lote zera após expedição.', null=True, verbose_name='Baixado em')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('position', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='dispatchman.storageposition', verbose_name='Posição')),
            ],
            options={
                'verbose_name': 'Lote em Estoque',
                'verbose_name_plural': 'Lotes em Estoque',
                'indexes': [
                    models.Index(fields=['product_id', 'depot_id'], name='dispatchman_lot_product_idx'),
                    models.Index(fields=['depot_id', 'expiration_date'], name='dispatchman_lot_expiry_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('expiration_date__isnull', False)), fields=('product_id', 'depot_id', 'lot_code', 'expiration_date'), name='unique_lot_coordinate'),
                    models.UniqueConstraint(condition=models.Q(('expiration_date__isnull', True)), fields=('product_id', 'depot_id', 'lot_code'), name='unique_lot_coordinate_no_expiry'),
                    models.CheckConstraint(condition=models.Q(('quantity_reserved__gte', 0)), name='lot_reserved_not_negative'),
                    models.CheckConstraint(condition=models.Q(('quantity_reserved__lte', models.F('quantity_on_hand'))), name='lot_reserved_within_on_hand'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockMove',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('delta', models.DecimalField(decimal_places=3, help_text='Positivo = entrada, Negativo = saída', max_digits=12, verbose_name='Variação')),
                ('reference', models.CharField(blank=True, default='', help_text='Ex: "pallet:P-10", "order:42"', max_length=100, verbose_name='Referência')),
                ('reason', models.CharField(help_text='Obrigatório. Ex: "Entrada pallet", "Expedição pedido #42"', max_length=255, verbose_name='Motivo')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('user_id', models.CharField(blank=True, default='', max_length=64, verbose_name='Usuário')),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='moves', to='dispatchman.stocklot', verbose_name='Lote')),
            ],
            options={
                'verbose_name': 'Movimento',
                'verbose_name_plural': 'Movimentos',
                'ordering': ['timestamp'],
                'indexes': [
                    models.Index(fields=['lot', 'timestamp'], name='dispatchman_move_lot_ts_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OutboundOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('depot_id', models.CharField(db_index=True, max_length=64, verbose_name='Depósito')),
                ('status', models.CharField(choices=[('draft', 'Rascunho'), ('pending_separation', 'Separação pendente'), ('separated', 'Separado'), ('dispatched', 'Expedido'), ('delivered', 'Entregue'), ('cancelled', 'Cancelado')], db_index=True, default='draft', max_length=30, verbose_name='Status')),
                ('total_weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=14, verbose_name='Peso total')),
                ('created_by', models.CharField(max_length=64, verbose_name='Criado por')),
                ('producer_id', models.CharField(blank=True, db_index=True, default='', max_length=64, verbose_name='Produtor')),
                ('dispatch_date', models.DateField(blank=True, null=True, verbose_name='Data de saída')),
                ('time_slot', models.CharField(blank=True, default='', max_length=5, verbose_name='Horário')),
                ('sla_hours', models.PositiveIntegerField(blank=True, help_text='Prazo contratual de entrega a partir da criação.', null=True, verbose_name='SLA (horas)')),
                ('is_urgent', models.BooleanField(default=False, verbose_name='VIP / Urgente')),
                ('due_at', models.DateTimeField(blank=True, null=True, verbose_name='Prazo de entrega')),
                ('delivered_at', models.DateTimeField(blank=True, null=True, verbose_name='Entregue em')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Saída',
                'verbose_name_plural': 'Saídas',
                'ordering': ['created_at', 'pk'],
                'indexes': [
                    models.Index(fields=['depot_id', 'status'], name='dispatchman_order_status_idx'),
                    models.Index(fields=['producer_id', 'status'], name='dispatchman_order_producer_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OutboundOrderLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(max_length=64, verbose_name='Produto')),
                ('quantity_requested', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Quantidade solicitada')),
                ('lot_code', models.CharField(blank=True, default='', help_text='Primeiro lote FEFO reservado; demais em reservations.', max_length=50, verbose_name='Lote')),
                ('quantity_reserved', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Quantidade reservada')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='dispatchman.outboundorder', verbose_name='Saída')),
            ],
            options={
                'verbose_name': 'Item da Saída',
                'verbose_name_plural': 'Itens da Saída',
                'ordering': ['pk'],
            },
        ),
        migrations.CreateModel(
            name='LotReservation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Quantidade')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reservations', to='dispatchman.stocklot', verbose_name='Lote')),
                ('order_line', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reservations', to='dispatchman.outboundorderline', verbose_name='Item da Saída')),
            ],
            options={
                'verbose_name': 'Reserva de Lote',
                'verbose_name_plural': 'Reservas de Lote',
                'ordering': ['pk'],
            },
        ),
        migrations.CreateModel(
            name='StorageSlotClaim',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('pallet_id', models.CharField(db_index=True, max_length=64, verbose_name='Pallet')),
                ('state', models.CharField(choices=[('tentative', 'Pendente'), ('confirmed', 'Alocado'), ('removed', 'Removido')], db_index=True, default='tentative', max_length=20, verbose_name='Status')),
                ('confirmation_method', models.CharField(blank=True, choices=[('manual', 'Manual'), ('scanner', 'Scanner')], default='', max_length=20, verbose_name='Método de confirmação')),
                ('observations', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('owner_id', models.CharField(blank=True, default='', max_length=64, verbose_name='Responsável')),
                ('claimed_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Sugerido em')),
                ('confirmed_at', models.DateTimeField(blank=True, null=True, verbose_name='Alocado em')),
                ('removed_at', models.DateTimeField(blank=True, null=True, verbose_name='Removido em')),
                ('position', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='claims', to='dispatchman.storageposition', verbose_name='Posição')),
            ],
            options={
                'verbose_name': 'Alocação de Pallet',
                'verbose_name_plural': 'Alocações de Pallet',
                'ordering': ['-claimed_at'],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('state__in', ['tentative', 'confirmed'])), fields=('position',), name='unique_active_claim_per_position'),
                    models.UniqueConstraint(condition=models.Q(('state__in', ['tentative', 'confirmed'])), fields=('pallet_id',), name='unique_active_claim_per_pallet'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DepotTimeSlot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('depot_id', models.CharField(db_index=True, max_length=64, verbose_name='Depósito')),
                ('time_slot', models.CharField(help_text='Formato HH:MM', max_length=5, verbose_name='Horário')),
                ('is_active', models.BooleanField(default=True, verbose_name='Ativo')),
            ],
            options={
                'verbose_name': 'Horário de Retirada',
                'verbose_name_plural': 'Horários de Retirada',
                'ordering': ['depot_id', 'time_slot'],
                'constraints': [
                    models.UniqueConstraint(fields=('depot_id', 'time_slot'), name='unique_time_slot_per_depot'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TimeSlotReservation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('depot_id', models.CharField(max_length=64, verbose_name='Depósito')),
                ('date', models.DateField(verbose_name='Data de saída')),
                ('time_slot', models.CharField(max_length=5, verbose_name='Horário')),
                ('owner_id', models.CharField(max_length=64, verbose_name='Reservado por')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('outbound_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='time_slot_reservations', to='dispatchman.outboundorder', verbose_name='Saída')),
            ],
            options={
                'verbose_name': 'Reserva de Horário',
                'verbose_name_plural': 'Reservas de Horário',
                'ordering': ['date', 'time_slot'],
                'constraints': [
                    models.UniqueConstraint(fields=('depot_id', 'date', 'time_slot'), name='unique_time_slot_reservation'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PriorityFactorConfig',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('depot_id', models.CharField(max_length=64, unique=True, verbose_name='Depósito')),
                ('mode', models.CharField(choices=[('fifo', 'FIFO'), ('weighted', 'Customizado por pesos')], default='fifo', max_length=20, verbose_name='Modo de priorização')),
                ('factors', models.JSONField(blank=True, default=list, verbose_name='Fatores')),
                ('updated_by', models.CharField(blank=True, default='', max_length=64, verbose_name='Atualizado por')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Configuração de Priorização',
                'verbose_name_plural': 'Configurações de Priorização',
            },
        ),
    ]
