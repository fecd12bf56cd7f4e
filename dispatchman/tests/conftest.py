"""
Pytest fixtures for Dispatchman tests.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from dispatchman.adapters import reset_adapters
from dispatchman.models import StoragePosition
from dispatchman.services.ledger import StockLedger
from dispatchman.tests.fakes import FakePalletSource


@pytest.fixture(autouse=True)
def pallet_source():
    """Fresh fake pallet source for every test."""
    FakePalletSource.reset()
    reset_adapters()
    yield FakePalletSource
    FakePalletSource.reset()
    reset_adapters()


@pytest.fixture
def depot_id():
    return 'dep-1'


@pytest.fixture
def today():
    """Return today's local date."""
    return timezone.localdate()


@pytest.fixture
def tomorrow(today):
    return today + timedelta(days=1)


@pytest.fixture
def now():
    """Fixed reference instant for scoring tests."""
    return timezone.make_aware(datetime(2024, 3, 1, 12, 0))


@pytest.fixture
def make_lot(db, depot_id):
    """Factory receiving stock into a lot through the ledger."""
    def _make(lot_code, quantity, expiration_date=None, product_id='soja', depot=None, **kwargs):
        return StockLedger.receive(
            product_id=product_id,
            depot_id=depot or depot_id,
            lot_code=lot_code,
            quantity=Decimal(str(quantity)),
            expiration_date=expiration_date,
            **kwargs,
        )
    return _make


@pytest.fixture
def positions(db, depot_id):
    """Three active positions (two dry, one cold) and one inactive."""
    return [
        StoragePosition.objects.create(depot_id=depot_id, code='A-01', zone='seco'),
        StoragePosition.objects.create(depot_id=depot_id, code='A-02', zone='seco'),
        StoragePosition.objects.create(depot_id=depot_id, code='B-01', zone='frio'),
        StoragePosition.objects.create(depot_id=depot_id, code='Z-99', zone='seco', is_active=False),
    ]


@pytest.fixture
def other_depot_position(db):
    return StoragePosition.objects.create(depot_id='dep-2', code='A-01', zone='seco')


@pytest.fixture
def make_line(db, depot_id):
    """Factory for an order line with no reservation (ledger tests drive it directly)."""
    from dispatchman.models import OrderStatus, OutboundOrder, OutboundOrderLine

    def _make(quantity, product_id='soja'):
        order = OutboundOrder.objects.create(
            depot_id=depot_id,
            status=OrderStatus.PENDING_SEPARATION,
            created_by='user-1',
        )
        return OutboundOrderLine.objects.create(
            order=order,
            product_id=product_id,
            quantity_requested=Decimal(str(quantity)),
        )
    return _make
