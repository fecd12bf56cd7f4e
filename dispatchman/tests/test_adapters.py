"""
Tests for adapter loading and admin registration.
"""

import pytest
from django.contrib import admin
from django.core.exceptions import ImproperlyConfigured

from dispatchman.adapters import (
    NoopPalletSource,
    accept_any_position,
    get_pallet_source,
    get_position_eligibility,
)
from dispatchman.exceptions import DispatchError, InsufficientStockError
from dispatchman.models import OutboundOrder, StockLot, StockMove
from dispatchman.tests.fakes import FakePalletSource, zone_is_dry


class TestPalletSource:
    """Tests for get_pallet_source()."""

    def test_configured_source(self):
        assert isinstance(get_pallet_source(), FakePalletSource)

    def test_source_is_cached(self):
        assert get_pallet_source() is get_pallet_source()

    def test_noop_default(self, settings):
        settings.DISPATCHMAN = {}
        source = get_pallet_source()

        assert isinstance(source, NoopPalletSource)
        assert source.pallet_code('P-1') is None
        assert source.pallet_items('P-1') == []

    def test_bad_path(self, settings):
        settings.DISPATCHMAN = {'PALLET_SOURCE': 'dispatchman.tests.fakes.NaoExiste'}

        with pytest.raises(ImproperlyConfigured):
            get_pallet_source()

    def test_not_a_pallet_source(self, settings):
        settings.DISPATCHMAN = {'PALLET_SOURCE': 'decimal.Decimal'}

        with pytest.raises(ImproperlyConfigured):
            get_pallet_source()


class TestPositionEligibility:
    """Tests for get_position_eligibility()."""

    def test_default_accepts_all(self):
        assert get_position_eligibility() is accept_any_position

    def test_configured_predicate(self, settings):
        settings.DISPATCHMAN = {'POSITION_ELIGIBILITY': 'dispatchman.tests.fakes.zone_is_dry'}

        assert get_position_eligibility() is zone_is_dry


class TestErrors:
    """Tests for the DispatchError shape."""

    def test_as_dict_serializes_decimals(self):
        from decimal import Decimal

        error = InsufficientStockError(requested=Decimal('8'), shortfall=Decimal('3'))

        assert isinstance(error, DispatchError)
        assert error.as_dict() == {
            'code': 'INSUFFICIENT_STOCK',
            'message': 'Estoque insuficiente para a quantidade solicitada',
            'data': {'requested': '8', 'shortfall': '3'},
        }
        assert str(error).startswith('[INSUFFICIENT_STOCK]')


class TestAdmin:
    """Read-only admin registrations."""

    @pytest.mark.parametrize('model', [StockLot, StockMove, OutboundOrder])
    def test_registered_read_only(self, model, rf):
        model_admin = admin.site._registry[model]
        request = rf.get('/')

        assert not model_admin.has_add_permission(request)
        assert not model_admin.has_change_permission(request)
        assert not model_admin.has_delete_permission(request)


@pytest.mark.django_db
class TestStockMoveImmutability:
    """StockMove refuses updates and deletes."""

    def test_update_and_delete_refused(self, make_lot):
        move = make_lot('L-1', 5).moves.get()

        with pytest.raises(ValueError):
            move.save()
        with pytest.raises(ValueError):
            move.delete()
