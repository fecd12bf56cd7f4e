"""
StoragePosition model — Where pallets are stored.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class StoragePosition(models.Model):
    """
    Physical storage position of a depot (rack slot, floor slot).

    Positions are stable entities, created when the warehouse layout is
    designed. Occupancy is never stored here: a position is occupied while
    an active StorageSlotClaim points at it.

    Examples:
        StoragePosition.objects.create(depot_id='dep-1', code='A-01-01', zone='seco')
    """

    depot_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name=_('Depósito'),
    )
    code = models.CharField(
        max_length=50,
        verbose_name=_('Código'),
        help_text=_('Código impresso na etiqueta da posição (ex: A-01-01)'),
    )
    zone = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Zona'),
    )
    capacity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('Capacidade (kg)'),
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name=_('Ativa'),
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_('Metadados'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Posição de Armazenagem')
        verbose_name_plural = _('Posições de Armazenagem')
        ordering = ['depot_id', 'code']
        constraints = [
            models.UniqueConstraint(
                fields=['depot_id', 'code'],
                name='unique_position_code_per_depot',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.code} ({self.depot_id})"
