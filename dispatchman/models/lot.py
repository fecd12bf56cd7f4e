"""
StockLot model — On-hand and reserved quantity of a lot in a depot.
"""

from datetime import date
from decimal import Decimal

from django.db import models
from django.db.models import F, Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


TIE_BREAK_FIELDS = {
    'lot_code': ['lot_code'],
    'received_at': ['received_at', 'lot_code'],
}


class StockLotQuerySet(models.QuerySet):
    """Custom QuerySet for StockLot with convenience filters."""

    def for_product(self, product_id, depot_id):
        """Lots of a product in a depot."""
        return self.filter(product_id=product_id, depot_id=depot_id)

    def active(self):
        """Lots not yet retired."""
        return self.filter(retired_at__isnull=True)

    def with_available(self):
        """Lots with unreserved quantity left."""
        return self.filter(quantity_on_hand__gt=F('quantity_reserved'))

    def fefo(self, tie_break: str = 'lot_code'):
        """
        First-Expired-First-Out ordering.

        Lots without expiration go last. Lots sharing an expiration date are
        ordered by the tie-break policy, then by pk so the order is total.
        """
        try:
            tie_fields = TIE_BREAK_FIELDS[tie_break]
        except KeyError:
            raise ValueError(f"Unknown lot tie-break policy: {tie_break!r}") from None
        return self.order_by(F('expiration_date').asc(nulls_last=True), *tie_fields, 'pk')


class StockLot(models.Model):
    """
    Quantity of a product lot stored in a depot.

    Coordinates:
    - product_id + depot_id: WHAT and WHERE (tenant scope)
    - lot_code + expiration_date: WHICH batch

    quantity_on_hand changes only through StockMove.
    quantity_reserved changes only through StockLedger (reserve/release/dispatch).
    """

    product_id = models.CharField(
        max_length=64,
        verbose_name=_('Produto'),
    )
    depot_id = models.CharField(
        max_length=64,
        verbose_name=_('Depósito'),
    )
    lot_code = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Lote'),
    )
    expiration_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Data de Validade'),
        help_text=_('Vazio = produto sem validade (consumido por último).'),
    )

    quantity_on_hand = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantidade em estoque'),
    )
    quantity_reserved = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantidade reservada'),
    )

    # Origin
    pallet_id = models.CharField(
        max_length=64,
        blank=True,
        default='',
        verbose_name=_('Pallet de origem'),
    )
    position = models.ForeignKey(
        'dispatchman.StoragePosition',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='lots',
        verbose_name=_('Posição'),
    )

    received_at = models.DateTimeField(default=timezone.now, verbose_name=_('Recebido em'))
    retired_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Baixado em'),
        help_text=_('Preenchido quando o lote zera após expedição.'),
    )
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockLotQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lote em Estoque')
        verbose_name_plural = _('Lotes em Estoque')
        constraints = [
            models.UniqueConstraint(
                fields=['product_id', 'depot_id', 'lot_code', 'expiration_date'],
                condition=Q(expiration_date__isnull=False),
                name='unique_lot_coordinate',
            ),
            # NULL never collides in the index above
            models.UniqueConstraint(
                fields=['product_id', 'depot_id', 'lot_code'],
                condition=Q(expiration_date__isnull=True),
                name='unique_lot_coordinate_no_expiry',
            ),
            models.CheckConstraint(
                condition=Q(quantity_reserved__gte=0),
                name='lot_reserved_not_negative',
            ),
            models.CheckConstraint(
                condition=Q(quantity_reserved__lte=F('quantity_on_hand')),
                name='lot_reserved_within_on_hand',
            ),
        ]
        indexes = [
            models.Index(fields=['product_id', 'depot_id'], name='dispatchman_lot_product_idx'),
            models.Index(fields=['depot_id', 'expiration_date'], name='dispatchman_lot_expiry_idx'),
        ]

    @property
    def available(self) -> Decimal:
        """Quantity still free for new reservations."""
        return self.quantity_on_hand - self.quantity_reserved

    @property
    def is_retired(self) -> bool:
        return self.retired_at is not None

    def days_to_expiry(self, today: date | None = None) -> int | None:
        """Days until expiration (negative when expired, None without expiry)."""
        if self.expiration_date is None:
            return None
        return (self.expiration_date - (today or date.today())).days

    def __str__(self) -> str:
        expiry = f" (val:{self.expiration_date})" if self.expiration_date else ""
        return f"{self.product_id} lote {self.lot_code or '-'}{expiry} @ {self.depot_id}"
