"""
StockMove model — Immutable ledger of on-hand changes.
"""

from django.db import models, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class StockMove(models.Model):
    """
    Immutable record of an on-hand quantity change of a lot.

    Rules:
    - NEVER update() or delete()
    - Corrections are new moves with inverse delta
    - Updates StockLot.quantity_on_hand atomically on save()

    This is the ONLY model that changes on-hand quantity.
    """

    lot = models.ForeignKey(
        'dispatchman.StockLot',
        on_delete=models.PROTECT,
        related_name='moves',
        verbose_name=_('Lote'),
    )

    delta = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Variação'),
        help_text=_('Positivo = entrada, Negativo = saída'),
    )

    reference = models.CharField(
        max_length=100,
        blank=True,
        default='',
        verbose_name=_('Referência'),
        help_text=_('Ex: "pallet:P-10", "order:42"'),
    )
    reason = models.CharField(
        max_length=255,
        verbose_name=_('Motivo'),
        help_text=_('Obrigatório. Ex: "Entrada pallet", "Expedição pedido #42"'),
    )
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadados'))

    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))
    user_id = models.CharField(max_length=64, blank=True, default='', verbose_name=_('Usuário'))

    class Meta:
        verbose_name = _('Movimento')
        verbose_name_plural = _('Movimentos')
        ordering = ['timestamp']
        indexes = [
            models.Index(fields=['lot', 'timestamp'], name='dispatchman_move_lot_ts_idx'),
        ]

    def save(self, *args, **kwargs):
        """Save move and update the lot's on-hand quantity atomically."""
        if self.pk:
            raise ValueError(
                "Movimentos são imutáveis. "
                "Para corrigir, crie um novo movimento com delta inverso."
            )

        if not self.reason:
            raise ValueError("Motivo é obrigatório")

        with transaction.atomic():
            super().save(*args, **kwargs)

            from dispatchman.models.lot import StockLot

            StockLot.objects.filter(pk=self.lot_id).update(
                quantity_on_hand=F('quantity_on_hand') + self.delta,
                updated_at=timezone.now()
            )

    def delete(self, *args, **kwargs):
        """Prevent deletion — moves are immutable."""
        raise ValueError(
            "Movimentos são imutáveis. "
            "Para estornar, crie um novo movimento com delta inverso."
        )

    def __str__(self) -> str:
        signal = '+' if self.delta > 0 else ''
        return f"{signal}{self.delta} | {self.reason}"
