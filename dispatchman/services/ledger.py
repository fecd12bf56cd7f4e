"""
Stock ledger — FEFO reservation, release, receipt and dispatch of lots.

All state-changing methods run under transaction.atomic(). Reserved
quantity only grows through a conditional UPDATE that re-checks
quantity_reserved + take <= quantity_on_hand in the database, so two
concurrent reservations can never over-commit a lot.
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.db.models import F, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from dispatchman.conf import dispatchman_settings
from dispatchman.exceptions import InsufficientStockError, InvalidInputError
from dispatchman.models.lot import StockLot
from dispatchman.models.move import StockMove
from dispatchman.models.reservation import LotReservation

logger = logging.getLogger('dispatchman')

EXPIRY_CRITICAL = 'critical'
EXPIRY_ATTENTION = 'attention'
EXPIRY_NORMAL = 'normal'


def to_quantity(value, field: str = 'quantity') -> Decimal:
    """Coerce a quantity to Decimal, rejecting garbage and non-positive values."""
    try:
        quantity = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInputError(message=f"Quantidade inválida: {value!r}", field=field, value=value) from None
    if not quantity.is_finite() or quantity <= 0:
        raise InvalidInputError(
            message="Quantidade deve ser maior que zero",
            field=field,
            value=value,
        )
    return quantity


def _eligible_lots(product_id, depot_id, tie_break: str) -> list[StockLot]:
    """Lock and return the lots a reservation may draw from, in FEFO order."""
    return list(
        StockLot.objects.select_for_update()
        .for_product(product_id, depot_id)
        .active()
        .with_available()
        .fefo(tie_break)
    )


class StockLedger:
    """Lot-level stock operations."""

    # ══════════════════════════════════════════════════════════════
    # RESERVATION
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def reserve(cls, product_id, depot_id, quantity, order_line_id,
                tie_break: str | None = None) -> list[LotReservation]:
        """
        Reserve quantity of a product for an order line, FEFO.

        Lots are consumed greedily in expiration order (lots without
        expiration last). One LotReservation is created per lot touched.

        All-or-nothing: if the eligible lots cannot cover the quantity,
        nothing is reserved.

        Args:
            tie_break: "lot_code" or "received_at" for lots sharing an
                expiration date (default: DISPATCHMAN["LOT_TIE_BREAK"])

        Raises:
            InvalidInputError: quantity <= 0, or the line already holds
                reservations
            InsufficientStockError: eligible stock below the requested
                quantity (data: requested, available, shortfall)
        """
        quantity = to_quantity(quantity)
        tie_break = tie_break or dispatchman_settings.LOT_TIE_BREAK

        with transaction.atomic():
            if LotReservation.objects.filter(order_line_id=order_line_id).exists():
                raise InvalidInputError(
                    message="Item já possui reserva de estoque",
                    order_line_id=order_line_id,
                )

            lots = _eligible_lots(product_id, depot_id, tie_break)
            available = sum((lot.available for lot in lots), Decimal('0'))

            if available < quantity:
                raise InsufficientStockError(
                    product_id=product_id,
                    depot_id=depot_id,
                    requested=quantity,
                    available=available,
                    shortfall=quantity - available,
                )

            now = timezone.now()
            remaining = quantity
            reservations = []

            for lot in lots:
                if remaining <= 0:
                    break
                take = min(lot.available, remaining)

                updated = StockLot.objects.filter(
                    pk=lot.pk,
                    retired_at__isnull=True,
                    quantity_reserved__lte=F('quantity_on_hand') - take,
                ).update(
                    quantity_reserved=F('quantity_reserved') + take,
                    updated_at=now,
                )
                if not updated:
                    # Lost the race for this lot: abort, the atomic block undoes earlier takes
                    raise InsufficientStockError(
                        message="Estoque do lote alterado durante a reserva",
                        product_id=product_id,
                        depot_id=depot_id,
                        requested=quantity,
                        available=available - (quantity - remaining),
                        shortfall=remaining,
                        lot_id=lot.pk,
                    )

                reservations.append(LotReservation.objects.create(
                    order_line_id=order_line_id,
                    lot=lot,
                    quantity=take,
                ))
                remaining -= take

        logger.info(
            "ledger.reserve",
            extra={
                "product_id": product_id,
                "depot_id": depot_id,
                "qty": str(quantity),
                "order_line_id": order_line_id,
                "lots": [r.lot.lot_code for r in reservations],
            },
        )
        return reservations

    @classmethod
    def release(cls, order_line_id) -> Decimal:
        """
        Release every reservation of an order line.

        Idempotent: returns 0 when the line holds nothing.

        Returns:
            Total quantity released
        """
        with transaction.atomic():
            reservations = list(
                LotReservation.objects.select_for_update().filter(order_line_id=order_line_id)
            )
            if not reservations:
                return Decimal('0')

            now = timezone.now()
            total = Decimal('0')
            for reservation in reservations:
                StockLot.objects.filter(pk=reservation.lot_id).update(
                    quantity_reserved=F('quantity_reserved') - reservation.quantity,
                    updated_at=now,
                )
                total += reservation.quantity

            LotReservation.objects.filter(pk__in=[r.pk for r in reservations]).delete()

        logger.info(
            "ledger.release",
            extra={"order_line_id": order_line_id, "qty": str(total)},
        )
        return total

    # ══════════════════════════════════════════════════════════════
    # MOVEMENTS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def receive(cls, product_id, depot_id, lot_code, quantity, expiration_date=None,
                pallet_id='', position=None, reference='', user_id='',
                reason='Entrada', **metadata) -> StockLot:
        """
        Stock entry into a lot.

        Creates the lot at its coordinate when missing and records a
        positive StockMove. Receiving into a retired lot reopens it.
        """
        quantity = to_quantity(quantity)

        with transaction.atomic():
            lot, created = StockLot.objects.select_for_update().get_or_create(
                product_id=product_id,
                depot_id=depot_id,
                lot_code=lot_code or '',
                expiration_date=expiration_date,
                defaults={
                    'pallet_id': pallet_id or '',
                    'position': position,
                    'metadata': metadata,
                },
            )
            if lot.retired_at is not None:
                StockLot.objects.filter(pk=lot.pk).update(retired_at=None)

            # The lot keeps its first origin; each move records its own
            move_metadata = dict(metadata)
            if pallet_id:
                move_metadata['pallet_id'] = pallet_id
            if position is not None:
                move_metadata['position_id'] = position.pk
                move_metadata['position_code'] = position.code

            StockMove.objects.create(
                lot=lot,
                delta=quantity,
                reference=reference,
                reason=reason,
                user_id=user_id,
                metadata=move_metadata,
            )
            lot.refresh_from_db()

        logger.info(
            "ledger.receive",
            extra={
                "product_id": product_id,
                "depot_id": depot_id,
                "lot_code": lot.lot_code,
                "qty": str(quantity),
                "lot_id": lot.pk,
                "lot_created": created,
            },
        )
        return lot

    @classmethod
    def dispatch(cls, order_line_id, reference='', user_id='',
                 reason='Expedição') -> Decimal:
        """
        Consume the reservations of an order line after physical dispatch.

        For each reserved lot: reserved and on-hand both decrease by the
        reserved quantity (negative StockMove). Lots left empty are retired.

        Returns:
            Total quantity dispatched (0 when the line holds nothing)
        """
        with transaction.atomic():
            reservations = list(
                LotReservation.objects.select_for_update()
                .select_related('lot')
                .filter(order_line_id=order_line_id)
            )
            if not reservations:
                return Decimal('0')

            now = timezone.now()
            total = Decimal('0')
            for reservation in reservations:
                # Reserved goes down first so the reserved <= on hand check holds
                StockLot.objects.filter(pk=reservation.lot_id).update(
                    quantity_reserved=F('quantity_reserved') - reservation.quantity,
                    updated_at=now,
                )
                StockMove.objects.create(
                    lot_id=reservation.lot_id,
                    delta=-reservation.quantity,
                    reference=reference or f"order_line:{order_line_id}",
                    reason=reason,
                    user_id=user_id,
                )
                StockLot.objects.filter(
                    pk=reservation.lot_id,
                    quantity_on_hand__lte=0,
                    retired_at__isnull=True,
                ).update(retired_at=now)
                total += reservation.quantity

            LotReservation.objects.filter(pk__in=[r.pk for r in reservations]).delete()

        logger.info(
            "ledger.dispatch",
            extra={"order_line_id": order_line_id, "qty": str(total)},
        )
        return total

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def lots(cls, product_id, depot_id, tie_break: str | None = None):
        """Active lots of a product in a depot, FEFO ordered."""
        return (
            StockLot.objects.for_product(product_id, depot_id)
            .active()
            .fefo(tie_break or dispatchman_settings.LOT_TIE_BREAK)
        )

    @classmethod
    def available(cls, product_id, depot_id) -> Decimal:
        """Unreserved quantity of a product in a depot."""
        lots = StockLot.objects.for_product(product_id, depot_id).active()
        return sum((lot.available for lot in lots), Decimal('0'))

    @classmethod
    def expiry_status(cls, lot: StockLot, today: date | None = None) -> str:
        """
        Shelf status of a lot.

        critical:  expires within EXPIRY_CRITICAL_DAYS (or already expired)
        attention: expires within EXPIRY_ATTENTION_DAYS
        normal:    anything else, including lots without expiration
        """
        days = lot.days_to_expiry(today or timezone.localdate())
        if days is None:
            return EXPIRY_NORMAL
        if days <= dispatchman_settings.EXPIRY_CRITICAL_DAYS:
            return EXPIRY_CRITICAL
        if days <= dispatchman_settings.EXPIRY_ATTENTION_DAYS:
            return EXPIRY_ATTENTION
        return EXPIRY_NORMAL

    @classmethod
    def audit(cls, product_id=None, depot_id=None) -> list[dict]:
        """
        Integrity audit of lots.

        Recomputes on hand from StockMoves and reserved from
        LotReservations and reports every lot where the stored value
        differs. Nothing is corrected automatically.

        Returns:
            List of {"lot_id", "lot_code", "field", "recorded", "computed"}
        """
        lots = StockLot.objects.all()
        if product_id is not None:
            lots = lots.filter(product_id=product_id)
        if depot_id is not None:
            lots = lots.filter(depot_id=depot_id)

        reserved_by_lot = dict(
            LotReservation.objects.filter(lot__in=lots)
            .values('lot_id')
            .annotate(total=Sum('quantity'))
            .values_list('lot_id', 'total')
        )
        lots = lots.annotate(
            _moved=Coalesce(Sum('moves__delta'), Decimal('0')),
        ).order_by('pk')

        mismatches = []
        for lot in lots:
            computed = {
                'quantity_on_hand': lot._moved,
                'quantity_reserved': reserved_by_lot.get(lot.pk) or Decimal('0'),
            }
            for field, value in computed.items():
                recorded = getattr(lot, field)
                if recorded != value:
                    mismatches.append({
                        'lot_id': lot.pk,
                        'lot_code': lot.lot_code,
                        'field': field,
                        'recorded': recorded,
                        'computed': value,
                    })
                    logger.warning(
                        "ledger.audit.mismatch",
                        extra={
                            "lot_id": lot.pk,
                            "field": field,
                            "recorded": str(recorded),
                            "computed": str(value),
                        },
                    )
        return mismatches
