"""
Allocation confirmation — tentative claim → confirmed, and removal.

Confirmation is the hand-off point to stock: once a pallet is physically
stored, its lots are received into the ledger at the confirmed position,
in the same transaction as the state change.
"""

import logging

from django.db import transaction
from django.utils import timezone

from dispatchman.adapters import get_pallet_source
from dispatchman.exceptions import InvalidInputError, MismatchError, StaleClaimError
from dispatchman.models.claim import StorageSlotClaim
from dispatchman.models.enums import ClaimState, ConfirmationMethod
from dispatchman.services.ledger import StockLedger

logger = logging.getLogger('dispatchman')


class AllocationConfirmationWorkflow:
    """Confirmation and removal of pallet claims."""

    @classmethod
    def confirm(cls, pallet_id, position_id, method, pallet_code=None,
                position_code=None, observations='', user_id='') -> StorageSlotClaim:
        """
        Confirm the tentative claim of (pallet, position).

        Methods:
        - manual: operator confirms on screen, no verification
        - scanner: both scanned codes must match exactly (case-sensitive)
          the pallet label code and the position code

        Raises:
            InvalidInputError: unknown method, or scanner without both codes
            StaleClaimError: no tentative claim for the pair
            MismatchError: scanned code differs (data: field, expected,
                received); the claim stays tentative
        """
        if method not in ConfirmationMethod.values:
            raise InvalidInputError(
                message=f"Método de confirmação inválido: {method!r}",
                method=method,
            )
        if method == ConfirmationMethod.SCANNER and not (pallet_code and position_code):
            raise InvalidInputError(
                message="Escaneie o código do pallet e da posição",
                pallet_code=pallet_code,
                position_code=position_code,
            )

        source = get_pallet_source()

        with transaction.atomic():
            claim = (
                StorageSlotClaim.objects.select_for_update()
                .filter(pallet_id=pallet_id, position_id=position_id, state=ClaimState.TENTATIVE)
                .first()
            )
            if claim is None:
                raise StaleClaimError(
                    pallet_id=pallet_id,
                    position_id=position_id,
                    expected_state=ClaimState.TENTATIVE.value,
                )

            if method == ConfirmationMethod.SCANNER:
                expected_pallet = source.pallet_code(pallet_id) or pallet_id
                if pallet_code != expected_pallet:
                    raise MismatchError(
                        message="Código do pallet não confere",
                        field='pallet_code',
                        expected=expected_pallet,
                        received=pallet_code,
                    )
                if position_code != claim.position.code:
                    raise MismatchError(
                        message="Código da posição não confere",
                        field='position_code',
                        expected=claim.position.code,
                        received=position_code,
                    )

            updated = StorageSlotClaim.objects.filter(
                pk=claim.pk, state=ClaimState.TENTATIVE,
            ).update(
                state=ClaimState.CONFIRMED,
                confirmation_method=method,
                observations=observations or '',
                confirmed_at=timezone.now(),
            )
            if not updated:
                raise StaleClaimError(pallet_id=pallet_id, position_id=position_id)

            claim.refresh_from_db()
            position = claim.position

            lots = [
                StockLedger.receive(
                    product_id=item.product_id,
                    depot_id=position.depot_id,
                    lot_code=item.lot_code,
                    quantity=item.quantity,
                    expiration_date=item.expiration_date,
                    pallet_id=pallet_id,
                    position=position,
                    reference=f"pallet:{pallet_id}",
                    user_id=user_id,
                    reason="Entrada pallet",
                )
                for item in source.pallet_items(pallet_id)
            ]

        logger.info(
            "confirmation.confirmed",
            extra={
                "pallet_id": pallet_id,
                "position_code": position.code,
                "method": method,
                "lots_received": len(lots),
            },
        )
        return claim

    @classmethod
    def remove(cls, pallet_id, user_id='') -> StorageSlotClaim:
        """
        Pallet left its position: confirmed → removed.

        Raises:
            StaleClaimError: the pallet has no confirmed claim
        """
        with transaction.atomic():
            claim = (
                StorageSlotClaim.objects.select_for_update()
                .filter(pallet_id=pallet_id, state=ClaimState.CONFIRMED)
                .first()
            )
            if claim is None:
                raise StaleClaimError(pallet_id=pallet_id, expected_state=ClaimState.CONFIRMED.value)

            claim.state = ClaimState.REMOVED
            claim.removed_at = timezone.now()
            claim.save(update_fields=['state', 'removed_at'])

        logger.info(
            "confirmation.removed",
            extra={"pallet_id": pallet_id, "claim_id": claim.pk, "user_id": user_id},
        )
        return claim
