"""
Dispatchman configuration.

Usage in settings.py:
    DISPATCHMAN = {
        "PALLET_SOURCE": "receiving.adapters.ReceivingPalletSource",
        "POSITION_ELIGIBILITY": "warehouse.rules.zone_matches",
        "DEFAULT_TIME_SLOTS": ["08:00", "10:00", "14:00", "16:00"],
        "LOT_TIE_BREAK": "lot_code",
    }
"""

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings


@dataclass
class DispatchmanSettings:
    """Dispatchman configuration settings."""

    # Pallet source backend (dotted path to a PalletSource class)
    PALLET_SOURCE: str = "dispatchman.adapters.noop.NoopPalletSource"

    # Position eligibility predicate (dotted path, "" = every position is eligible)
    POSITION_ELIGIBILITY: str = ""

    # Pickup windows used when a depot has no DepotTimeSlot rows
    DEFAULT_TIME_SLOTS: list[str] = field(default_factory=lambda: [
        "08:00", "09:00", "10:00", "11:00", "13:00", "14:00", "15:00", "16:00",
    ])

    # Tie-break for lots sharing an expiration date: "lot_code" or "received_at"
    LOT_TIE_BREAK: str = "lot_code"

    # Expiry status thresholds (days until expiration)
    EXPIRY_CRITICAL_DAYS: int = 15
    EXPIRY_ATTENTION_DAYS: int = 30


def get_dispatchman_settings() -> DispatchmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "DISPATCHMAN", {})
    return DispatchmanSettings(**{
        k: v for k, v in user_settings.items()
        if k in DispatchmanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_dispatchman_settings(), name)


dispatchman_settings = _LazySettings()
