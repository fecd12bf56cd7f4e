"""
Tests for PositionAllocator.
"""

import pytest
from django.db import IntegrityError

from dispatchman.exceptions import (
    InvalidInputError,
    NoPositionAvailableError,
    SlotTakenError,
    StaleClaimError,
)
from dispatchman.models import ClaimState, StorageSlotClaim
from dispatchman.services import positions as positions_module
from dispatchman.services.confirmation import AllocationConfirmationWorkflow
from dispatchman.services.positions import PositionAllocator


pytestmark = pytest.mark.django_db


class TestAllocate:
    """Tests for PositionAllocator.allocate()."""

    def test_allocates_first_free_position_by_code(self, positions, depot_id):
        claim = PositionAllocator.allocate('P-1', depot_id, owner_id='op-1')

        assert claim.state == ClaimState.TENTATIVE
        assert claim.position_code == 'A-01'
        assert claim.position_id == positions[0].pk
        assert claim.owner_id == 'op-1'

    def test_two_pallets_never_share_a_position(self, positions, depot_id):
        first = PositionAllocator.allocate('P-1', depot_id)
        second = PositionAllocator.allocate('P-2', depot_id)

        assert first.position_id != second.position_id
        assert [first.position_code, second.position_code] == ['A-01', 'A-02']

    def test_idempotent_for_same_pallet(self, positions, depot_id):
        first = PositionAllocator.allocate('P-1', depot_id)
        again = PositionAllocator.allocate('P-1', depot_id)

        assert again.pk == first.pk
        assert StorageSlotClaim.objects.count() == 1

    def test_skips_inactive_positions(self, positions, depot_id):
        for pallet in ('P-1', 'P-2', 'P-3'):
            PositionAllocator.allocate(pallet, depot_id)

        with pytest.raises(NoPositionAvailableError) as exc:
            PositionAllocator.allocate('P-4', depot_id)

        assert exc.value.code == 'NO_POSITION_AVAILABLE'

    def test_no_positions_in_depot(self, other_depot_position, depot_id):
        with pytest.raises(NoPositionAvailableError):
            PositionAllocator.allocate('P-1', depot_id)

    def test_eligibility_predicate_argument(self, positions, depot_id):
        claim = PositionAllocator.allocate('P-1', depot_id, eligible=lambda p, pallet: p.zone == 'frio')

        assert claim.position_code == 'B-01'

    def test_eligibility_predicate_from_settings(self, positions, depot_id, settings):
        settings.DISPATCHMAN = {'POSITION_ELIGIBILITY': 'dispatchman.tests.fakes.zone_is_dry'}
        PositionAllocator.allocate('P-1', depot_id)
        PositionAllocator.allocate('P-2', depot_id)

        with pytest.raises(NoPositionAvailableError):
            PositionAllocator.allocate('P-3', depot_id)

    def test_removed_claim_frees_position(self, positions, depot_id):
        claim = PositionAllocator.allocate('P-1', depot_id)
        PositionAllocator.cancel('P-1')

        other = PositionAllocator.allocate('P-2', depot_id)

        assert other.position_id == claim.position_id

    def test_lost_insert_race_moves_to_next_candidate(self, positions, depot_id, monkeypatch):
        """A stale candidate list still never yields a shared position."""
        StorageSlotClaim.objects.create(pallet_id='P-OUTRO', position=positions[0])
        monkeypatch.setattr(positions_module, '_free_positions', lambda depot: positions[:3])

        claim = PositionAllocator.allocate('P-1', depot_id)

        assert claim.position_code == 'A-02'
        assert StorageSlotClaim.objects.active().filter(position=positions[0]).count() == 1

    def test_unrelated_integrity_error_propagates(self, positions, depot_id, monkeypatch):
        def broken_create(**kwargs):
            raise IntegrityError('CHECK constraint failed')

        monkeypatch.setattr(StorageSlotClaim.objects, 'create', broken_create)

        with pytest.raises(IntegrityError):
            PositionAllocator.allocate('P-1', depot_id)

        assert not StorageSlotClaim.objects.exists()

    def test_confirmed_pallet_rejected(self, positions, depot_id):
        claim = PositionAllocator.allocate('P-1', depot_id)
        AllocationConfirmationWorkflow.confirm('P-1', claim.position_id, 'manual')

        with pytest.raises(InvalidInputError):
            PositionAllocator.allocate('P-1', depot_id)

    def test_missing_ids(self, depot_id):
        with pytest.raises(InvalidInputError):
            PositionAllocator.allocate('', depot_id)


class TestForcedPosition:
    """Tests for the manual position override."""

    def test_forced_position_ignores_predicate(self, positions, depot_id):
        claim = PositionAllocator.allocate(
            'P-1', depot_id, position_id=positions[2].pk, eligible=lambda p, pallet: False,
        )

        assert claim.position_code == 'B-01'

    def test_forced_position_taken(self, positions, depot_id):
        PositionAllocator.allocate('P-1', depot_id, position_id=positions[1].pk)

        with pytest.raises(SlotTakenError) as exc:
            PositionAllocator.allocate('P-2', depot_id, position_id=positions[1].pk)

        assert exc.value.data['position_code'] == 'A-02'

    def test_forced_position_of_other_depot(self, other_depot_position, depot_id):
        with pytest.raises(InvalidInputError):
            PositionAllocator.allocate('P-1', depot_id, position_id=other_depot_position.pk)

    def test_forced_inactive_position(self, positions, depot_id):
        with pytest.raises(InvalidInputError):
            PositionAllocator.allocate('P-1', depot_id, position_id=positions[3].pk)


class TestCancel:
    """Tests for PositionAllocator.cancel()."""

    def test_cancel_tentative(self, positions, depot_id):
        PositionAllocator.allocate('P-1', depot_id)

        claim = PositionAllocator.cancel('P-1')

        assert claim.state == ClaimState.REMOVED
        assert claim.removed_at is not None

    def test_cancel_without_claim(self, db):
        with pytest.raises(StaleClaimError):
            PositionAllocator.cancel('P-1')
