"""
Django Dispatchman — Motor de Alocação e Expedição.

Reserva estoque por FEFO, aloca pallets em posições, reserva horários de
expedição e prioriza a fila de separação.

Uso:
    from dispatchman import ledger, orders, DispatchError

    order = orders.create_order(
        depot_id='dep-1',
        lines=[{'product_id': 'soja', 'quantity': 8}],
        created_by='user-1',
    )
    ledger.available('soja', 'dep-1')
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from dispatchman.services.ledger import StockLedger
        return StockLedger
    elif name == 'positions':
        from dispatchman.services.positions import PositionAllocator
        return PositionAllocator
    elif name == 'confirmation':
        from dispatchman.services.confirmation import AllocationConfirmationWorkflow
        return AllocationConfirmationWorkflow
    elif name == 'timeslots':
        from dispatchman.services.timeslots import TimeSlotReservationManager
        return TimeSlotReservationManager
    elif name == 'priority':
        from dispatchman.services.priority import PriorityScoringEngine
        return PriorityScoringEngine
    elif name == 'orders':
        from dispatchman.services.orders import OutboundOrderOrchestrator
        return OutboundOrderOrchestrator
    elif name == 'DispatchError':
        from dispatchman.exceptions import DispatchError
        return DispatchError
    elif name == 'StockLot':
        from dispatchman.models.lot import StockLot
        return StockLot
    elif name == 'StoragePosition':
        from dispatchman.models.position import StoragePosition
        return StoragePosition
    elif name == 'StorageSlotClaim':
        from dispatchman.models.claim import StorageSlotClaim
        return StorageSlotClaim
    elif name == 'TimeSlotReservation':
        from dispatchman.models.timeslot import TimeSlotReservation
        return TimeSlotReservation
    elif name == 'OutboundOrder':
        from dispatchman.models.order import OutboundOrder
        return OutboundOrder
    elif name == 'PriorityFactorConfig':
        from dispatchman.models.priority import PriorityFactorConfig
        return PriorityFactorConfig
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'ledger',
    'positions',
    'confirmation',
    'timeslots',
    'priority',
    'orders',
    'DispatchError',
    'StockLot',
    'StoragePosition',
    'StorageSlotClaim',
    'TimeSlotReservation',
    'OutboundOrder',
    'PriorityFactorConfig',
]

__version__ = '0.1.0'
