"""
Dispatchman services — one class per concern, classmethods only.

    from dispatchman.services import StockLedger, OutboundOrderOrchestrator
"""

from dispatchman.services.confirmation import AllocationConfirmationWorkflow
from dispatchman.services.ledger import StockLedger
from dispatchman.services.orders import OutboundOrderOrchestrator
from dispatchman.services.positions import PositionAllocator
from dispatchman.services.priority import PriorityScoringEngine
from dispatchman.services.timeslots import TimeSlotReservationManager

__all__ = [
    'StockLedger',
    'PositionAllocator',
    'AllocationConfirmationWorkflow',
    'TimeSlotReservationManager',
    'PriorityScoringEngine',
    'OutboundOrderOrchestrator',
]
