"""
Tests for OutboundOrderOrchestrator (creation saga and lifecycle).
"""

import logging
from datetime import date
from decimal import Decimal

import pytest

from dispatchman.exceptions import (
    InsufficientStockError,
    InvalidInputError,
    InvalidTransitionError,
    SlotTakenError,
)
from dispatchman.models import (
    LotReservation,
    OrderStatus,
    OutboundOrder,
    OutboundOrderLine,
    StockLot,
    TimeSlotReservation,
)
from dispatchman.services import ledger as ledger_module
from dispatchman.services.ledger import StockLedger
from dispatchman.services.orders import OutboundOrderOrchestrator
from dispatchman.services.timeslots import TimeSlotReservationManager


pytestmark = pytest.mark.django_db


@pytest.fixture
def stock(make_lot):
    """soja: 5 (jan) + 10 (fev); milho: 4."""
    make_lot('S-JAN', 5, date(2024, 1, 10))
    make_lot('S-FEV', 10, date(2024, 2, 1))
    make_lot('M-1', 4, date(2024, 3, 1), product_id='milho')


def reserved_by_lot():
    return {lot.lot_code: lot.quantity_reserved for lot in StockLot.objects.all()}


class TestCreateOrder:
    """Tests for create_order()."""

    def test_creates_pending_order_with_fefo_lines(self, stock, depot_id):
        order = OutboundOrderOrchestrator.create_order(
            depot_id,
            [{'product_id': 'soja', 'quantity': 8}, {'product_id': 'milho', 'quantity': '1.5'}],
            created_by='user-1',
        )

        assert order.status == OrderStatus.PENDING_SEPARATION
        assert order.total_weight == Decimal('9.5')
        soja, milho = order.lines.all()
        assert (soja.lot_code, soja.quantity_reserved) == ('S-JAN', Decimal('8'))
        assert (milho.lot_code, milho.quantity_reserved) == ('M-1', Decimal('1.5'))
        assert soja.reservations.count() == 2
        assert reserved_by_lot() == {
            'S-JAN': Decimal('5'), 'S-FEV': Decimal('3'), 'M-1': Decimal('1.5'),
        }

    def test_sla_sets_due_date(self, stock, depot_id):
        order = OutboundOrderOrchestrator.create_order(
            depot_id, [{'product_id': 'soja', 'quantity': 1}], created_by='user-1',
            sla_hours=48, producer_id='prod-1', is_urgent=True,
        )

        assert (order.due_at - order.created_at).total_seconds() == 48 * 3600
        assert order.is_urgent

    def test_books_time_slot(self, stock, depot_id, tomorrow):
        order = OutboundOrderOrchestrator.create_order(
            depot_id, [{'product_id': 'soja', 'quantity': 1}], created_by='user-1',
            dispatch_date=tomorrow, time_slot='08:00',
        )

        assert (order.dispatch_date, order.time_slot) == (tomorrow, '08:00')
        assert order.time_slot_reservations.get().time_slot == '08:00'

    @pytest.mark.parametrize('kwargs', [
        {'depot_id': '', 'lines': [{'product_id': 'soja', 'quantity': 1}], 'created_by': 'u'},
        {'depot_id': 'dep-1', 'lines': [{'product_id': 'soja', 'quantity': 1}], 'created_by': ''},
        {'depot_id': 'dep-1', 'lines': [], 'created_by': 'u'},
        {'depot_id': 'dep-1', 'lines': [{'product_id': '', 'quantity': 1}], 'created_by': 'u'},
        {'depot_id': 'dep-1', 'lines': [{'product_id': 'soja', 'quantity': 0}], 'created_by': 'u'},
        {'depot_id': 'dep-1', 'lines': [{'product_id': 'soja', 'quantity': 1}], 'created_by': 'u',
         'time_slot': '08:00'},
        {'depot_id': 'dep-1', 'lines': [{'product_id': 'soja', 'quantity': 1}], 'created_by': 'u',
         'sla_hours': -4},
    ])
    def test_invalid_input_writes_nothing(self, stock, kwargs):
        with pytest.raises(InvalidInputError):
            OutboundOrderOrchestrator.create_order(**kwargs)

        assert not OutboundOrder.objects.exists()

    def test_slot_outside_catalog_rejected_before_any_write(self, stock, depot_id, tomorrow, caplog):
        with caplog.at_level(logging.INFO, logger='dispatchman'):
            with pytest.raises(InvalidInputError) as exc:
                OutboundOrderOrchestrator.create_order(
                    depot_id, [{'product_id': 'soja', 'quantity': 8}], created_by='user-1',
                    dispatch_date=tomorrow, time_slot='23:59',
                )

        assert exc.value.data['field'] == 'time_slot'
        assert not OutboundOrder.objects.exists()
        assert [r.getMessage() for r in caplog.records if r.getMessage().startswith(('ledger.', 'saga.'))] == []


class TestCreateOrderRollback:
    """Failed creation leaves no trace."""

    def test_second_line_short_rolls_back_everything(self, stock, depot_id):
        with pytest.raises(InsufficientStockError) as exc:
            OutboundOrderOrchestrator.create_order(
                depot_id,
                [{'product_id': 'soja', 'quantity': 8}, {'product_id': 'milho', 'quantity': 10}],
                created_by='user-1',
            )

        assert exc.value.shortfall == Decimal('6')
        assert not OutboundOrder.objects.exists()
        assert not OutboundOrderLine.objects.exists()
        assert not LotReservation.objects.exists()
        assert set(reserved_by_lot().values()) == {Decimal('0')}

    def test_slot_taken_rolls_back_reservations(self, stock, depot_id, tomorrow):
        TimeSlotReservationManager.reserve(depot_id, tomorrow, '08:00', 'outro')

        with pytest.raises(SlotTakenError):
            OutboundOrderOrchestrator.create_order(
                depot_id, [{'product_id': 'soja', 'quantity': 8}], created_by='user-1',
                dispatch_date=tomorrow, time_slot='08:00',
            )

        assert not OutboundOrder.objects.exists()
        assert set(reserved_by_lot().values()) == {Decimal('0')}
        assert TimeSlotReservation.objects.get().owner_id == 'outro'

    def test_failed_compensation_is_logged_and_original_error_raised(self, stock, depot_id, monkeypatch, caplog):
        def broken_release(order_line_id):
            raise RuntimeError('banco indisponível')

        monkeypatch.setattr(ledger_module.StockLedger, 'release', broken_release)

        with pytest.raises(InsufficientStockError):
            OutboundOrderOrchestrator.create_order(
                depot_id,
                [{'product_id': 'soja', 'quantity': 8}, {'product_id': 'milho', 'quantity': 10}],
                created_by='user-1',
            )

        failures = [r for r in caplog.records if r.getMessage() == 'orders.compensation_failed']
        assert len(failures) == 1
        assert failures[0].levelname == 'ERROR'
        assert failures[0].step == 'reserve:soja'
        # Remaining compensations still ran
        assert not OutboundOrder.objects.exists()


class TestLifecycle:
    """Tests for transition(), cancel() and schedule_dispatch()."""

    @pytest.fixture
    def order(self, stock, depot_id, tomorrow):
        return OutboundOrderOrchestrator.create_order(
            depot_id, [{'product_id': 'soja', 'quantity': 8}], created_by='user-1',
            dispatch_date=tomorrow, time_slot='08:00',
        )

    def test_full_lifecycle_consumes_stock(self, order, depot_id):
        for status in (OrderStatus.SEPARATED, OrderStatus.DISPATCHED, OrderStatus.DELIVERED):
            order = OutboundOrderOrchestrator.transition(order.pk, status)

        assert order.status == OrderStatus.DELIVERED
        assert order.delivered_at is not None
        assert StockLedger.available('soja', depot_id) == Decimal('7')
        assert [lot.lot_code for lot in StockLedger.lots('soja', depot_id)] == ['S-FEV']
        assert not LotReservation.objects.exists()

    def test_cancel_releases_stock_and_slot(self, order, depot_id, tomorrow):
        cancelled = OutboundOrderOrchestrator.cancel(order.pk)

        assert cancelled.status == OrderStatus.CANCELLED
        assert StockLedger.available('soja', depot_id) == Decimal('15')
        assert '08:00' in TimeSlotReservationManager.available_slots(depot_id, tomorrow)

    @pytest.mark.parametrize('path', [
        [OrderStatus.DISPATCHED],
        [OrderStatus.DELIVERED],
        [OrderStatus.SEPARATED, OrderStatus.PENDING_SEPARATION],
        [OrderStatus.SEPARATED, OrderStatus.DISPATCHED, OrderStatus.CANCELLED],
        [OrderStatus.CANCELLED, OrderStatus.SEPARATED],
    ])
    def test_invalid_transitions(self, order, path):
        *allowed, forbidden = path
        for status in allowed:
            OutboundOrderOrchestrator.transition(order.pk, status)

        with pytest.raises(InvalidTransitionError) as exc:
            OutboundOrderOrchestrator.transition(order.pk, forbidden)

        assert exc.value.code == 'INVALID_STATUS'

    def test_unknown_order(self, db):
        with pytest.raises(InvalidInputError):
            OutboundOrderOrchestrator.transition(999, OrderStatus.SEPARATED)

    def test_reschedule_moves_booking(self, order, depot_id, tomorrow):
        order = OutboundOrderOrchestrator.schedule_dispatch(order.pk, tomorrow, '14:00', 'user-2')

        assert order.time_slot == '14:00'
        assert list(order.time_slot_reservations.values_list('time_slot', flat=True)) == ['14:00']
        assert TimeSlotReservationManager.available_slots(depot_id, tomorrow) >= {'08:00'}

    def test_reschedule_releases_previous_booking_through_manager(self, order, tomorrow, caplog):
        with caplog.at_level(logging.INFO, logger='dispatchman'):
            OutboundOrderOrchestrator.schedule_dispatch(order.pk, tomorrow, '14:00', 'user-2')

        [released] = [r for r in caplog.records if r.getMessage() == 'timeslots.released']
        assert released.order_id == order.pk
        assert released.count == 1

    def test_reschedule_to_taken_slot_keeps_current(self, order, depot_id, tomorrow):
        TimeSlotReservationManager.reserve(depot_id, tomorrow, '10:00', 'outro')

        with pytest.raises(SlotTakenError):
            OutboundOrderOrchestrator.schedule_dispatch(order.pk, tomorrow, '10:00', 'user-2')

        order.refresh_from_db()
        assert order.time_slot == '08:00'
        assert order.time_slot_reservations.get().time_slot == '08:00'

    def test_cannot_schedule_dispatched_order(self, order, tomorrow):
        OutboundOrderOrchestrator.transition(order.pk, OrderStatus.SEPARATED)
        OutboundOrderOrchestrator.transition(order.pk, OrderStatus.DISPATCHED)

        with pytest.raises(InvalidTransitionError):
            OutboundOrderOrchestrator.schedule_dispatch(order.pk, tomorrow, '14:00', 'user-2')


class TestAuditCommand:
    """Tests for the audit_stock_lots management command."""

    def test_clean_after_orders(self, stock, depot_id, capsys):
        from django.core.management import call_command

        OutboundOrderOrchestrator.create_order(
            depot_id, [{'product_id': 'soja', 'quantity': 8}], created_by='user-1',
        )

        call_command('audit_stock_lots', depot=depot_id)

        assert 'Nenhuma divergência' in capsys.readouterr().out
