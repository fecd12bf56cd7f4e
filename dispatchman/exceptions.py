"""
Exceptions for Dispatchman.

Every error is a DispatchError with a structured code for programmatic
handling. Each failure kind has its own subclass so callers can catch
exactly what they are able to handle.
"""

from decimal import Decimal
from typing import Any


class DispatchError(Exception):
    """
    Structured exception for allocation and dispatch operations.

    Usage:
        try:
            ledger.reserve('soja', 'dep-1', Decimal('10'), line.pk)
        except InsufficientStockError as e:
            print(f"Faltam {e.data['shortfall']}")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    code = 'DISPATCH_ERROR'

    _default_messages = {
        'DISPATCH_ERROR': 'Erro na operação de expedição',
        'INVALID_INPUT': 'Dados de entrada inválidos',
        'INSUFFICIENT_STOCK': 'Estoque insuficiente para a quantidade solicitada',
        'NO_POSITION_AVAILABLE': 'Nenhuma posição disponível para o pallet',
        'SLOT_TAKEN': 'Horário ou posição já reservado por outro usuário',
        'CODE_MISMATCH': 'Código escaneado não confere',
        'STALE_CLAIM': 'Alocação não está mais no estado esperado',
        'INVALID_CONFIGURATION': 'Configuração de priorização inválida',
        'INVALID_STATUS': 'Status inválido para esta operação',
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        self.code = code or type(self).code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(f"[{self.code}] {self.message}")

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }


class InvalidInputError(DispatchError):
    """Missing or malformed input, rejected before any write."""

    code = 'INVALID_INPUT'


class InsufficientStockError(DispatchError):
    """FEFO reservation cannot satisfy the requested quantity."""

    code = 'INSUFFICIENT_STOCK'

    @property
    def shortfall(self) -> Decimal:
        """Shortcut for data['shortfall']."""
        return self.data.get('shortfall', Decimal('0'))


class NoPositionAvailableError(DispatchError):
    """No eligible empty storage position in the depot."""

    code = 'NO_POSITION_AVAILABLE'


class SlotTakenError(DispatchError):
    """Unique-constraint violation on a time slot or position claim."""

    code = 'SLOT_TAKEN'


class MismatchError(DispatchError):
    """Scanned codes differ from the expected pallet/position codes."""

    code = 'CODE_MISMATCH'


class StaleClaimError(DispatchError):
    """Claim no longer exists in the state the caller expected."""

    code = 'STALE_CLAIM'


class InvalidConfigurationError(DispatchError):
    """Priority configuration violates policy bounds."""

    code = 'INVALID_CONFIGURATION'


class InvalidTransitionError(DispatchError):
    """Outbound order lifecycle transition not allowed."""

    code = 'INVALID_STATUS'
