"""
Outbound orders — creation saga and lifecycle.

Order creation spans several independently committed steps (header,
lines, stock reservations, time slot). It is a saga: if any step fails,
the completed ones are compensated in reverse order and the caller gets
the original error. A caller never observes a partially created order.
"""

import logging
from datetime import timedelta
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from dispatchman.exceptions import InvalidInputError, InvalidTransitionError
from dispatchman.models.enums import OrderStatus
from dispatchman.models.order import OutboundOrder, OutboundOrderLine
from dispatchman.saga import Saga
from dispatchman.services.ledger import StockLedger, to_quantity
from dispatchman.services.timeslots import TimeSlotReservationManager

logger = logging.getLogger('dispatchman')


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING_SEPARATION: {OrderStatus.SEPARATED, OrderStatus.CANCELLED},
    OrderStatus.SEPARATED: {OrderStatus.DISPATCHED, OrderStatus.CANCELLED},
    OrderStatus.DISPATCHED: {OrderStatus.DELIVERED},
}

SCHEDULABLE_STATUSES = {OrderStatus.PENDING_SEPARATION, OrderStatus.SEPARATED}


def _validate_lines(lines) -> list[tuple[str, Decimal]]:
    if not lines:
        raise InvalidInputError(message="Adicione pelo menos um item", field='lines')

    validated = []
    for index, line in enumerate(lines):
        product_id = line.get('product_id') if isinstance(line, dict) else None
        if not product_id:
            raise InvalidInputError(
                message="Produto é obrigatório em todos os itens",
                field='product_id',
                line=index,
            )
        validated.append((product_id, to_quantity(line.get('quantity'), field=f'lines[{index}].quantity')))
    return validated


def _get_order(order_id, lock=False) -> OutboundOrder:
    qs = OutboundOrder.objects.select_for_update() if lock else OutboundOrder.objects
    try:
        return qs.get(pk=order_id)
    except OutboundOrder.DoesNotExist:
        raise InvalidInputError(message="Saída não encontrada", order_id=order_id) from None


class OutboundOrderOrchestrator:
    """Outbound order creation and lifecycle."""

    # ══════════════════════════════════════════════════════════════
    # CREATION
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def create_order(cls, depot_id, lines, created_by, dispatch_date=None, time_slot=None,
                     producer_id='', sla_hours=None, is_urgent=False, notes='') -> OutboundOrder:
        """
        Create an outbound order, reserving stock FEFO for every line.

        Args:
            lines: [{"product_id": ..., "quantity": ...}, ...]
            dispatch_date/time_slot: when both given, the slot is booked
                as part of the creation

        Steps (each compensated on later failure):
            1. header (draft)
            2. per line: insert line, reserve stock
            3. time slot (optional)
            4. status → pending_separation

        Raises:
            InvalidInputError: bad input (nothing written)
            InsufficientStockError / SlotTakenError / ...: from the failing
                step, after every completed step was undone
        """
        if not depot_id:
            raise InvalidInputError(message="Depósito é obrigatório", field='depot_id')
        if not created_by:
            raise InvalidInputError(message="Usuário responsável é obrigatório", field='created_by')
        if time_slot and dispatch_date is None:
            raise InvalidInputError(
                message="Informe a data de saída para reservar o horário",
                field='dispatch_date',
            )
        if time_slot and time_slot not in TimeSlotReservationManager.catalog(depot_id):
            raise InvalidInputError(
                message=f"Horário {time_slot!r} não disponível neste depósito",
                field='time_slot',
                time_slot=time_slot,
            )
        if sla_hours is not None and (isinstance(sla_hours, bool) or not isinstance(sla_hours, int) or sla_hours < 0):
            raise InvalidInputError(message="SLA inválido", field='sla_hours', value=sla_hours)
        validated = _validate_lines(lines)

        saga = Saga("orders.create", depot_id=depot_id, created_by=created_by)
        with saga:
            order = saga.step(
                lambda: cls._create_header(
                    depot_id, validated, created_by, producer_id, sla_hours, is_urgent, notes,
                ),
                compensate=lambda o: o.delete(),
                label='header',
            )

            for product_id, quantity in validated:
                line = saga.step(
                    lambda: OutboundOrderLine.objects.create(
                        order=order,
                        product_id=product_id,
                        quantity_requested=quantity,
                    ),
                    compensate=lambda ln: ln.delete(),
                    label=f'line:{product_id}',
                )
                saga.step(
                    lambda: cls._reserve_line(order, line),
                    compensate=lambda _, pk=line.pk: StockLedger.release(pk),
                    label=f'reserve:{product_id}',
                )

            if time_slot:
                saga.step(
                    lambda: TimeSlotReservationManager.reserve(
                        depot_id, dispatch_date, time_slot, created_by, order_id=order.pk,
                    ),
                    compensate=lambda _: TimeSlotReservationManager.release(order.pk),
                    label='time_slot',
                )

            order.status = OrderStatus.PENDING_SEPARATION
            order.dispatch_date = dispatch_date
            order.time_slot = time_slot or ''
            order.save(update_fields=['status', 'dispatch_date', 'time_slot', 'updated_at'])

        logger.info(
            "orders.created",
            extra={
                "order_id": order.pk,
                "depot_id": depot_id,
                "lines": len(validated),
                "total_weight": str(order.total_weight),
            },
        )
        return order

    @classmethod
    def _create_header(cls, depot_id, validated, created_by, producer_id, sla_hours,
                       is_urgent, notes) -> OutboundOrder:
        created_at = timezone.now()
        return OutboundOrder.objects.create(
            depot_id=depot_id,
            status=OrderStatus.DRAFT,
            total_weight=sum((qty for _, qty in validated), Decimal('0')),
            created_by=created_by,
            producer_id=producer_id or '',
            sla_hours=sla_hours,
            is_urgent=is_urgent,
            due_at=created_at + timedelta(hours=sla_hours) if sla_hours is not None else None,
            notes=notes or '',
            created_at=created_at,
        )

    @classmethod
    def _reserve_line(cls, order: OutboundOrder, line: OutboundOrderLine):
        reservations = StockLedger.reserve(
            line.product_id, order.depot_id, line.quantity_requested, line.pk,
        )
        line.lot_code = reservations[0].lot.lot_code
        line.quantity_reserved = sum((r.quantity for r in reservations), Decimal('0'))
        line.save(update_fields=['lot_code', 'quantity_reserved'])
        return reservations

    # ══════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def transition(cls, order_id, status, user_id='') -> OutboundOrder:
        """
        Move an order along its lifecycle.

        Side effects:
        - cancelled: releases stock of every line and the time slot
        - dispatched: consumes the reserved stock
        - delivered: stamps delivered_at

        Raises:
            InvalidInputError: unknown order
            InvalidTransitionError: edge not allowed from the current status
        """
        with transaction.atomic():
            order = _get_order(order_id, lock=True)
            current = order.status

            if status not in ALLOWED_TRANSITIONS.get(current, set()):
                raise InvalidTransitionError(
                    message=f"Não é possível mudar de {current} para {status}",
                    order_id=order.pk,
                    current=current,
                    requested=status,
                )

            line_ids = list(order.lines.values_list('pk', flat=True))
            update_fields = ['status', 'updated_at']

            if status == OrderStatus.CANCELLED:
                for line_id in line_ids:
                    StockLedger.release(line_id)
                TimeSlotReservationManager.release(order.pk)
            elif status == OrderStatus.DISPATCHED:
                for line_id in line_ids:
                    StockLedger.dispatch(line_id, reference=f"order:{order.pk}", user_id=user_id)
            elif status == OrderStatus.DELIVERED:
                order.delivered_at = timezone.now()
                update_fields.append('delivered_at')

            order.status = status
            order.save(update_fields=update_fields)

        logger.info(
            "orders.transition",
            extra={"order_id": order.pk, "from": current, "to": status, "user_id": user_id},
        )
        return order

    @classmethod
    def cancel(cls, order_id, user_id='') -> OutboundOrder:
        """Cancel an order, releasing its stock and time slot."""
        return cls.transition(order_id, OrderStatus.CANCELLED, user_id=user_id)

    @classmethod
    def schedule_dispatch(cls, order_id, date, time_slot, owner_id) -> OutboundOrder:
        """
        Book (or move) the dispatch time slot of an order.

        The previous booking is released only after the new one is secured,
        so a failed reschedule keeps the order's current slot.

        Raises:
            InvalidTransitionError: order is not waiting for dispatch
            SlotTakenError: the requested slot is booked
        """
        with transaction.atomic():
            order = _get_order(order_id, lock=True)
            if order.status not in SCHEDULABLE_STATUSES:
                raise InvalidTransitionError(
                    message="Saída não pode mais ser agendada",
                    order_id=order.pk,
                    current=order.status,
                )

            reservation = TimeSlotReservationManager.reserve(
                order.depot_id, date, time_slot, owner_id, order_id=order.pk,
            )
            TimeSlotReservationManager.release(order.pk, exclude=reservation.pk)

            order.dispatch_date = date
            order.time_slot = time_slot
            order.save(update_fields=['dispatch_date', 'time_slot', 'updated_at'])

        logger.info(
            "orders.scheduled",
            extra={
                "order_id": order.pk,
                "date": str(date),
                "time_slot": time_slot,
                "reservation_id": reservation.pk,
            },
        )
        return order
