"""
Outbound order models — Header and lines of a dispatch (saída).
"""

from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from dispatchman.models.enums import OrderStatus


class OutboundOrderQuerySet(models.QuerySet):
    """Custom QuerySet for OutboundOrder."""

    def pending_separation(self, depot_id):
        """Orders waiting in the separation queue of a depot."""
        return self.filter(depot_id=depot_id, status=OrderStatus.PENDING_SEPARATION)

    def delivered_late(self):
        """Delivered orders that missed their due date."""
        return self.filter(
            status=OrderStatus.DELIVERED,
            due_at__isnull=False,
            delivered_at__gt=models.F('due_at'),
        )


class OutboundOrder(models.Model):
    """
    Outbound order (saída) of a depot.

    LIFECYCLE:

        DRAFT ──► PENDING_SEPARATION ──► SEPARATED ──► DISPATCHED ──► DELIVERED
                          │                  │
                          └──────┬───────────┘
                                 ▼
                             CANCELLED

    DRAFT only exists while OutboundOrderOrchestrator.create_order() runs;
    a failed creation deletes the header instead of leaving it behind.
    """

    depot_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name=_('Depósito'),
    )
    status = models.CharField(
        max_length=30,
        choices=OrderStatus.choices,
        default=OrderStatus.DRAFT,
        db_index=True,
        verbose_name=_('Status'),
    )
    total_weight = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Peso total'),
    )
    created_by = models.CharField(max_length=64, verbose_name=_('Criado por'))
    producer_id = models.CharField(
        max_length=64,
        blank=True,
        default='',
        db_index=True,
        verbose_name=_('Produtor'),
    )

    # Scheduling
    dispatch_date = models.DateField(null=True, blank=True, verbose_name=_('Data de saída'))
    time_slot = models.CharField(max_length=5, blank=True, default='', verbose_name=_('Horário'))

    # Prioritization inputs
    sla_hours = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('SLA (horas)'),
        help_text=_('Prazo contratual de entrega a partir da criação.'),
    )
    is_urgent = models.BooleanField(
        default=False,
        verbose_name=_('VIP / Urgente'),
    )
    due_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Prazo de entrega'))
    delivered_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Entregue em'))

    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OutboundOrderQuerySet.as_manager()

    class Meta:
        verbose_name = _('Saída')
        verbose_name_plural = _('Saídas')
        ordering = ['created_at', 'pk']
        indexes = [
            models.Index(fields=['depot_id', 'status'], name='dispatchman_order_status_idx'),
            models.Index(fields=['producer_id', 'status'], name='dispatchman_order_producer_idx'),
        ]

    @property
    def is_late(self) -> bool:
        """Delivered after the contractual due date?"""
        if self.due_at is None or self.delivered_at is None:
            return False
        return self.delivered_at > self.due_at

    def __str__(self) -> str:
        return f"Saída #{self.pk} ({self.depot_id}) [{self.status}]"


class OutboundOrderLine(models.Model):
    """Requested product of an outbound order and what was reserved for it."""

    order = models.ForeignKey(
        OutboundOrder,
        on_delete=models.CASCADE,
        related_name='lines',
        verbose_name=_('Saída'),
    )
    product_id = models.CharField(max_length=64, verbose_name=_('Produto'))
    quantity_requested = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Quantidade solicitada'),
    )
    lot_code = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Lote'),
        help_text=_('Primeiro lote FEFO reservado; demais em reservations.'),
    )
    quantity_reserved = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantidade reservada'),
    )

    class Meta:
        verbose_name = _('Item da Saída')
        verbose_name_plural = _('Itens da Saída')
        ordering = ['pk']

    def __str__(self) -> str:
        return f"{self.quantity_requested}x {self.product_id} (saída {self.order_id})"
