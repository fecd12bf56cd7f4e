"""
Pallet Source Protocol — Interface for the receiving system.

Dispatchman defines this protocol; the receiving module (entradas) implements it.
It is the narrow window through which pallet data reaches the allocation
workflow: the label code printed on the pallet and what the pallet carries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class PalletItem:
    """One product lot carried by an inbound pallet."""

    product_id: str
    lot_code: str
    quantity: Decimal
    expiration_date: date | None = None


@runtime_checkable
class PalletSource(Protocol):
    """
    Protocol for reading inbound pallets.

    Implementations should provide methods to:
    - Resolve the barcode printed on a pallet label
    - List the lots a pallet carries (used to create stock on confirmation)
    """

    def pallet_code(self, pallet_id: str) -> str | None:
        """
        Barcode printed on the pallet label.

        Args:
            pallet_id: Pallet identifier

        Returns:
            Label code, or None when the pallet has no label code
            (the pallet id itself is then expected by the scanner)
        """
        ...

    def pallet_items(self, pallet_id: str) -> list[PalletItem]:
        """
        Lots carried by the pallet.

        Args:
            pallet_id: Pallet identifier

        Returns:
            List of PalletItem (empty when unknown)
        """
        ...
