"""
Position allocation — suggests and exclusively claims a storage position
for an inbound pallet.

Exclusivity is enforced by the partial unique constraints of
StorageSlotClaim. Losing an insert race on a position is an expected
outcome: the allocator simply tries the next candidate.
"""

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from dispatchman.adapters import get_position_eligibility
from dispatchman.exceptions import (
    InvalidInputError,
    NoPositionAvailableError,
    SlotTakenError,
    StaleClaimError,
)
from dispatchman.models.claim import StorageSlotClaim
from dispatchman.models.enums import ACTIVE_CLAIM_STATES, ClaimState
from dispatchman.models.position import StoragePosition

logger = logging.getLogger('dispatchman')


def _free_positions(depot_id) -> list[StoragePosition]:
    """Active positions of the depot without an active claim, by code."""
    return list(
        StoragePosition.objects.filter(depot_id=depot_id, is_active=True)
        .exclude(claims__state__in=ACTIVE_CLAIM_STATES)
        .order_by('code')
    )


def _active_claim(pallet_id) -> StorageSlotClaim | None:
    return (
        StorageSlotClaim.objects.active()
        .select_related('position')
        .filter(pallet_id=pallet_id)
        .first()
    )


def _position_claimed(position: StoragePosition) -> bool:
    return StorageSlotClaim.objects.active().filter(position=position).exists()


def _reuse_claim(claim: StorageSlotClaim) -> StorageSlotClaim:
    """Pending claims are handed back; stored pallets cannot be moved here."""
    if claim.state == ClaimState.TENTATIVE:
        return claim
    raise InvalidInputError(
        message="Pallet já está alocado",
        pallet_id=claim.pallet_id,
        position_code=claim.position.code,
    )


class PositionAllocator:
    """Pallet → position suggestion and exclusive claim."""

    @classmethod
    def allocate(cls, pallet_id, depot_id, eligible=None, position_id=None,
                 owner_id='') -> StorageSlotClaim:
        """
        Claim a storage position for a pallet (state: tentative).

        Candidates are the depot's active, unclaimed positions ordered by
        code and filtered by the eligibility predicate
        (`eligible(position, pallet_id) -> bool`, default from
        DISPATCHMAN["POSITION_ELIGIBILITY"]).

        Passing position_id forces that position (manual override); the
        predicate is not applied.

        Idempotent per pallet: if the pallet already has a tentative claim,
        that claim is returned.

        Raises:
            InvalidInputError: missing ids, unknown forced position, or the
                pallet is already stored
            NoPositionAvailableError: no candidate could be claimed
            SlotTakenError: the forced position is claimed by another pallet
        """
        if not pallet_id or not depot_id:
            raise InvalidInputError(
                message="Pallet e depósito são obrigatórios",
                pallet_id=pallet_id,
                depot_id=depot_id,
            )

        existing = _active_claim(pallet_id)
        if existing is not None:
            return _reuse_claim(existing)

        if position_id is not None:
            position = StoragePosition.objects.filter(
                pk=position_id, depot_id=depot_id, is_active=True,
            ).first()
            if position is None:
                raise InvalidInputError(
                    message="Posição inexistente ou inativa",
                    depot_id=depot_id,
                    position_id=position_id,
                )
            candidates = [position]
        else:
            predicate = eligible or get_position_eligibility()
            candidates = [p for p in _free_positions(depot_id) if predicate(p, pallet_id)]

        for position in candidates:
            try:
                with transaction.atomic():
                    claim = StorageSlotClaim.objects.create(
                        pallet_id=pallet_id,
                        position=position,
                        owner_id=owner_id,
                    )
            except IntegrityError:
                winner = _active_claim(pallet_id)
                if winner is not None:
                    # Same pallet allocated concurrently
                    return _reuse_claim(winner)
                if not _position_claimed(position):
                    raise
                if position_id is not None:
                    raise SlotTakenError(
                        message="Posição já ocupada por outro pallet",
                        position_id=position.pk,
                        position_code=position.code,
                    ) from None
                logger.info(
                    "positions.claim_conflict",
                    extra={"pallet_id": pallet_id, "position_code": position.code},
                )
                continue

            logger.info(
                "positions.allocate",
                extra={
                    "pallet_id": pallet_id,
                    "depot_id": depot_id,
                    "position_code": position.code,
                    "claim_id": claim.pk,
                    "forced": position_id is not None,
                },
            )
            return claim

        raise NoPositionAvailableError(depot_id=depot_id, pallet_id=pallet_id)

    @classmethod
    def cancel(cls, pallet_id) -> StorageSlotClaim:
        """
        Abandon a pending suggestion, freeing the position.

        Raises:
            StaleClaimError: the pallet has no tentative claim
        """
        with transaction.atomic():
            claim = (
                StorageSlotClaim.objects.select_for_update()
                .filter(pallet_id=pallet_id, state=ClaimState.TENTATIVE)
                .first()
            )
            if claim is None:
                raise StaleClaimError(pallet_id=pallet_id, expected_state=ClaimState.TENTATIVE.value)

            claim.state = ClaimState.REMOVED
            claim.removed_at = timezone.now()
            claim.save(update_fields=['state', 'removed_at'])

        logger.info("positions.cancel", extra={"pallet_id": pallet_id, "claim_id": claim.pk})
        return claim

    @classmethod
    def free_positions(cls, depot_id) -> list[StoragePosition]:
        """Positions currently available for new pallets."""
        return _free_positions(depot_id)
