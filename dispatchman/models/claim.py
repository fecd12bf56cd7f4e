"""
StorageSlotClaim model — Exclusive claim of a storage position by a pallet.
"""

from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from dispatchman.models.enums import ACTIVE_CLAIM_STATES, ClaimState, ConfirmationMethod


class StorageSlotClaimQuerySet(models.QuerySet):
    """Custom QuerySet for StorageSlotClaim."""

    def active(self):
        """Claims holding their position (tentative or confirmed)."""
        return self.filter(state__in=ACTIVE_CLAIM_STATES)


class StorageSlotClaim(models.Model):
    """
    Pallet → position assignment.

    LIFECYCLE:

        allocate()            confirm()              remove()
      ──────────► TENTATIVE ────────────► CONFIRMED ──────────► REMOVED
                      │
                      │ cancel()
                      ▼
                   REMOVED

    EXCLUSIVITY:
        At most one TENTATIVE/CONFIRMED claim per position and per pallet.
        Enforced by partial unique constraints, so concurrent allocators
        cannot both win the same position.
    """

    pallet_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name=_('Pallet'),
    )
    position = models.ForeignKey(
        'dispatchman.StoragePosition',
        on_delete=models.PROTECT,
        related_name='claims',
        verbose_name=_('Posição'),
    )
    state = models.CharField(
        max_length=20,
        choices=ClaimState.choices,
        default=ClaimState.TENTATIVE,
        db_index=True,
        verbose_name=_('Status'),
    )
    confirmation_method = models.CharField(
        max_length=20,
        choices=ConfirmationMethod.choices,
        blank=True,
        default='',
        verbose_name=_('Método de confirmação'),
    )
    observations = models.TextField(
        blank=True,
        default='',
        verbose_name=_('Observações'),
    )
    owner_id = models.CharField(
        max_length=64,
        blank=True,
        default='',
        verbose_name=_('Responsável'),
    )

    claimed_at = models.DateTimeField(default=timezone.now, verbose_name=_('Sugerido em'))
    confirmed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Alocado em'))
    removed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Removido em'))

    objects = StorageSlotClaimQuerySet.as_manager()

    class Meta:
        verbose_name = _('Alocação de Pallet')
        verbose_name_plural = _('Alocações de Pallet')
        ordering = ['-claimed_at']
        constraints = [
            models.UniqueConstraint(
                fields=['position'],
                condition=Q(state__in=ACTIVE_CLAIM_STATES),
                name='unique_active_claim_per_position',
            ),
            models.UniqueConstraint(
                fields=['pallet_id'],
                condition=Q(state__in=ACTIVE_CLAIM_STATES),
                name='unique_active_claim_per_pallet',
            ),
        ]

    @property
    def position_code(self) -> str:
        return self.position.code

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_CLAIM_STATES

    def __str__(self) -> str:
        return f"Pallet {self.pallet_id} → {self.position.code} [{self.state}]"
