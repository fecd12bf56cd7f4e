"""
Dispatchman Adapters.

Implementations of protocols for external systems.
"""

from dispatchman.adapters.loader import (
    get_pallet_source,
    get_position_eligibility,
    reset_adapters,
)
from dispatchman.adapters.noop import NoopPalletSource, accept_any_position

__all__ = [
    "NoopPalletSource",
    "accept_any_position",
    "get_pallet_source",
    "get_position_eligibility",
    "reset_adapters",
]
