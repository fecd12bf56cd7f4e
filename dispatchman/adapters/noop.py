"""
Noop Pallet Source — Default adapter when no receiving system is wired.

This adapter implements the PalletSource protocol with trivial defaults:
- The pallet id is the code expected by the scanner
- Pallets carry no items, so confirmation creates no stock

Usage in settings.py:
    DISPATCHMAN = {
        "PALLET_SOURCE": "dispatchman.adapters.noop.NoopPalletSource",
    }
"""

from __future__ import annotations

from dispatchman.protocols.pallet import PalletItem


class NoopPalletSource:
    """
    No-operation pallet source.

    Suitable for:
    - Local development without the receiving module
    - Tests that only exercise position allocation
    """

    def pallet_code(self, pallet_id: str) -> str | None:
        """No label codes: the scanner must read the pallet id."""
        return None

    def pallet_items(self, pallet_id: str) -> list[PalletItem]:
        """No contents known."""
        return []


def accept_any_position(position, pallet_id: str) -> bool:
    """Eligibility predicate that accepts every active, free position."""
    return True
