"""
Time slot reservations — exclusive (depot, date, time slot) bookings.

There is no check-then-insert: the unique constraint on
TimeSlotReservation decides the winner of concurrent bookings, and the
losers get SlotTakenError.
"""

import logging
from datetime import date

from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from dispatchman.conf import dispatchman_settings
from dispatchman.exceptions import InvalidInputError, SlotTakenError
from dispatchman.models.order import OutboundOrder
from dispatchman.models.timeslot import DepotTimeSlot, TimeSlotReservation

logger = logging.getLogger('dispatchman')


class TimeSlotReservationManager:
    """Dispatch time slot booking."""

    @classmethod
    def catalog(cls, depot_id) -> list[str]:
        """
        Time slots offered by a depot, sorted.

        Depots without any DepotTimeSlot row use DISPATCHMAN["DEFAULT_TIME_SLOTS"].
        """
        rows = DepotTimeSlot.objects.filter(depot_id=depot_id)
        if not rows.exists():
            return sorted(dispatchman_settings.DEFAULT_TIME_SLOTS)
        return sorted(rows.filter(is_active=True).values_list('time_slot', flat=True))

    @classmethod
    def reserve(cls, depot_id, date, time_slot, owner_id, order_id=None) -> TimeSlotReservation:
        """
        Book a time slot.

        Raises:
            InvalidInputError: missing data, slot outside the depot catalog or
                unknown order
            SlotTakenError: the slot is already booked
        """
        if not depot_id or date is None or not owner_id:
            raise InvalidInputError(
                message="Depósito, data e responsável são obrigatórios",
                depot_id=depot_id,
                date=date,
                owner_id=owner_id,
            )
        if time_slot not in cls.catalog(depot_id):
            raise InvalidInputError(
                message=f"Horário {time_slot!r} não disponível neste depósito",
                depot_id=depot_id,
                time_slot=time_slot,
            )
        if order_id is not None and not OutboundOrder.objects.filter(pk=order_id).exists():
            raise InvalidInputError(
                message="Saída não encontrada",
                field='order_id',
                order_id=order_id,
            )

        try:
            with transaction.atomic():
                reservation = TimeSlotReservation.objects.create(
                    depot_id=depot_id,
                    date=date,
                    time_slot=time_slot,
                    outbound_order_id=order_id,
                    owner_id=owner_id,
                )
        except IntegrityError:
            if not cls._is_booked(depot_id, date, time_slot):
                raise
            logger.info(
                "timeslots.taken",
                extra={"depot_id": depot_id, "date": str(date), "time_slot": time_slot},
            )
            raise SlotTakenError(
                message="Este horário já foi reservado por outro usuário",
                depot_id=depot_id,
                date=str(date),
                time_slot=time_slot,
            ) from None

        logger.info(
            "timeslots.reserved",
            extra={
                "depot_id": depot_id,
                "date": str(date),
                "time_slot": time_slot,
                "order_id": order_id,
                "reservation_id": reservation.pk,
            },
        )
        return reservation

    @classmethod
    def _is_booked(cls, depot_id, date, time_slot) -> bool:
        return TimeSlotReservation.objects.filter(
            depot_id=depot_id, date=date, time_slot=time_slot,
        ).exists()

    @classmethod
    def release(cls, order_id, exclude=None) -> int:
        """
        Delete the reservations of an order. Returns how many were removed.

        exclude: reservation pk to keep (the booking that replaces the others
        when an order is rescheduled)
        """
        reservations = TimeSlotReservation.objects.filter(outbound_order_id=order_id)
        if exclude is not None:
            reservations = reservations.exclude(pk=exclude)
        deleted, _ = reservations.delete()
        if deleted:
            logger.info(
                "timeslots.released",
                extra={"order_id": order_id, "count": deleted, "kept": exclude},
            )
        return deleted

    @classmethod
    def available_slots(cls, depot_id, date) -> set[str]:
        """Catalog slots not yet booked on the date."""
        taken = TimeSlotReservation.objects.filter(
            depot_id=depot_id, date=date,
        ).values_list('time_slot', flat=True)
        return set(cls.catalog(depot_id)) - set(taken)

    @classmethod
    def dates_fully_booked(cls, depot_id, from_date: date | None = None) -> list[date]:
        """Dates from from_date (default today) on which every catalog slot is booked."""
        catalog = cls.catalog(depot_id)
        if not catalog:
            return []

        start = from_date or timezone.localdate()
        rows = (
            TimeSlotReservation.objects.filter(
                depot_id=depot_id,
                date__gte=start,
                time_slot__in=catalog,
            )
            .values('date')
            .annotate(booked=Count('id'))
            .filter(booked__gte=len(catalog))
            .order_by('date')
        )
        return [row['date'] for row in rows]
