"""
Adapter loading — resolves the collaborators configured in settings.

Usage:
    from dispatchman.adapters import get_pallet_source

    source = get_pallet_source()
    source.pallet_code("P-10")

Settings:
    DISPATCHMAN = {
        "PALLET_SOURCE": "receiving.adapters.ReceivingPalletSource",
        "POSITION_ELIGIBILITY": "warehouse.rules.zone_matches",
    }
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from dispatchman.adapters.noop import accept_any_position
from dispatchman.conf import dispatchman_settings
from dispatchman.protocols.pallet import PalletSource

logger = logging.getLogger(__name__)


# Cached adapter instances, keyed by dotted path
_lock = threading.Lock()
_pallet_sources: dict[str, PalletSource] = {}


def _import(path: str, setting: str):
    try:
        return import_string(path)
    except ImportError as e:
        raise ImproperlyConfigured(
            f"Failed to import DISPATCHMAN['{setting}'] '{path}': {e}"
        ) from e


def get_pallet_source() -> PalletSource:
    """
    Return the configured pallet source.

    Raises:
        ImproperlyConfigured: If the import fails or the class does not
            implement PalletSource
    """
    path = dispatchman_settings.PALLET_SOURCE

    source = _pallet_sources.get(path)
    if source is None:
        with _lock:
            source = _pallet_sources.get(path)
            if source is None:  # double-checked
                source = _import(path, "PALLET_SOURCE")()
                if not isinstance(source, PalletSource):
                    raise ImproperlyConfigured(
                        f"DISPATCHMAN['PALLET_SOURCE'] '{path}' does not implement PalletSource"
                    )
                _pallet_sources[path] = source
                logger.debug("Loaded pallet source: %s", path)

    return source


def get_position_eligibility() -> Callable:
    """Return the configured position eligibility predicate."""
    path = dispatchman_settings.POSITION_ELIGIBILITY
    if not path:
        return accept_any_position
    return _import(path, "POSITION_ELIGIBILITY")


def reset_adapters() -> None:
    """Reset cached adapters. Useful for testing."""
    with _lock:
        _pallet_sources.clear()
