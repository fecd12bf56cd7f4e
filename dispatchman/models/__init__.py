"""
Dispatchman Models.

Core models for outbound fulfillment:
- StoragePosition: Where pallets are stored
- StockLot: On-hand/reserved quantity of a lot in a depot
- StockMove: Immutable ledger of on-hand changes
- LotReservation: Lot quantity committed to an order line
- StorageSlotClaim: Exclusive pallet → position assignment
- DepotTimeSlot / TimeSlotReservation: Pickup windows and their bookings
- OutboundOrder / OutboundOrderLine: Dispatch orders
- PriorityFactorConfig: Separation queue policy per depot
"""

from dispatchman.models.claim import StorageSlotClaim
from dispatchman.models.enums import (
    ClaimState,
    ConfirmationMethod,
    OrderStatus,
    PriorityMode,
)
from dispatchman.models.lot import StockLot
from dispatchman.models.move import StockMove
from dispatchman.models.order import OutboundOrder, OutboundOrderLine
from dispatchman.models.position import StoragePosition
from dispatchman.models.priority import PriorityFactorConfig
from dispatchman.models.reservation import LotReservation
from dispatchman.models.timeslot import DepotTimeSlot, TimeSlotReservation

__all__ = [
    'ClaimState',
    'ConfirmationMethod',
    'OrderStatus',
    'PriorityMode',
    'StoragePosition',
    'StockLot',
    'StockMove',
    'LotReservation',
    'StorageSlotClaim',
    'DepotTimeSlot',
    'TimeSlotReservation',
    'OutboundOrder',
    'OutboundOrderLine',
    'PriorityFactorConfig',
]
