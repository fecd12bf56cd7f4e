"""
LotReservation model — Quantity of a lot committed to an order line.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class LotReservation(models.Model):
    """
    Portion of an outbound order line reserved from one lot.

    A single reservation call may span several lots (FEFO), producing one
    record per lot. Records are deleted on release and consumed on dispatch;
    while they exist, their quantity is counted in StockLot.quantity_reserved.
    """

    order_line = models.ForeignKey(
        'dispatchman.OutboundOrderLine',
        on_delete=models.CASCADE,
        related_name='reservations',
        verbose_name=_('Item da Saída'),
    )
    lot = models.ForeignKey(
        'dispatchman.StockLot',
        on_delete=models.PROTECT,
        related_name='reservations',
        verbose_name=_('Lote'),
    )
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Quantidade'),
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _('Reserva de Lote')
        verbose_name_plural = _('Reservas de Lote')
        ordering = ['pk']

    @property
    def lot_code(self) -> str:
        return self.lot.lot_code

    @property
    def expiration_date(self):
        return self.lot.expiration_date

    def __str__(self) -> str:
        return f"{self.quantity}x lote {self.lot.lot_code or '-'} (item {self.order_line_id})"
