"""
Enums for Dispatchman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class ClaimState(models.TextChoices):
    """
    Storage slot claim lifecycle.

    TENTATIVE: Position suggested for the pallet, waiting for the operator.
    CONFIRMED: Pallet physically stored at the position.
    REMOVED:   Pallet left the position (or the suggestion was abandoned).
    """
    TENTATIVE = 'tentative', _('Pendente')    # Reserves the position
    CONFIRMED = 'confirmed', _('Alocado')     # Reserves the position
    REMOVED = 'removed', _('Removido')        # Position is free again


ACTIVE_CLAIM_STATES = [ClaimState.TENTATIVE, ClaimState.CONFIRMED]


class ConfirmationMethod(models.TextChoices):
    """How a claim was confirmed."""
    MANUAL = 'manual', _('Manual')
    SCANNER = 'scanner', _('Scanner')


class OrderStatus(models.TextChoices):
    """Outbound order lifecycle status."""
    DRAFT = 'draft', _('Rascunho')                              # Only while creating
    PENDING_SEPARATION = 'pending_separation', _('Separação pendente')
    SEPARATED = 'separated', _('Separado')
    DISPATCHED = 'dispatched', _('Expedido')
    DELIVERED = 'delivered', _('Entregue')
    CANCELLED = 'cancelled', _('Cancelado')


class PriorityMode(models.TextChoices):
    """Separation queue ordering mode."""
    FIFO = 'fifo', _('FIFO')
    WEIGHTED = 'weighted', _('Customizado por pesos')
