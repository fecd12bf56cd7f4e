"""
Dispatchman Protocols.

Defines interfaces for external system integration.
"""

from dispatchman.protocols.pallet import (
    PalletItem,
    PalletSource,
)

__all__ = [
    "PalletItem",
    "PalletSource",
]
