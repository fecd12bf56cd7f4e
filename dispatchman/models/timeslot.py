"""
Time slot models — Pickup window catalog and exclusive reservations.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class DepotTimeSlot(models.Model):
    """
    Pickup window offered by a depot.

    When a depot has no rows here, the catalog falls back to
    DISPATCHMAN["DEFAULT_TIME_SLOTS"].
    """

    depot_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name=_('Depósito'),
    )
    time_slot = models.CharField(
        max_length=5,
        verbose_name=_('Horário'),
        help_text=_('Formato HH:MM'),
    )
    is_active = models.BooleanField(default=True, verbose_name=_('Ativo'))

    class Meta:
        verbose_name = _('Horário de Retirada')
        verbose_name_plural = _('Horários de Retirada')
        ordering = ['depot_id', 'time_slot']
        constraints = [
            models.UniqueConstraint(
                fields=['depot_id', 'time_slot'],
                name='unique_time_slot_per_depot',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.time_slot} ({self.depot_id})"


class TimeSlotReservation(models.Model):
    """
    Exclusive booking of (depot, date, time slot) for a dispatch.

    Uniqueness is enforced by the database: two concurrent bookings of the
    same slot cannot both be inserted.
    """

    depot_id = models.CharField(
        max_length=64,
        verbose_name=_('Depósito'),
    )
    date = models.DateField(verbose_name=_('Data de saída'))
    time_slot = models.CharField(max_length=5, verbose_name=_('Horário'))
    outbound_order = models.ForeignKey(
        'dispatchman.OutboundOrder',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='time_slot_reservations',
        verbose_name=_('Saída'),
    )
    owner_id = models.CharField(max_length=64, verbose_name=_('Reservado por'))
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _('Reserva de Horário')
        verbose_name_plural = _('Reservas de Horário')
        ordering = ['date', 'time_slot']
        constraints = [
            models.UniqueConstraint(
                fields=['depot_id', 'date', 'time_slot'],
                name='unique_time_slot_reservation',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.date} {self.time_slot} @ {self.depot_id}"
