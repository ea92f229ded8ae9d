"""Carrier factory.

``get_carrier()`` builds the adapter named by ``CARRIER_ADAPTER``
(``shiprocket`` or ``fake``) on first use.
"""

from __future__ import annotations

from django.conf import settings

from modules.shipping.carriers.fake_adapter import FakeCarrier
from modules.shipping.carriers.port import Carrier, PickupScheduleResult
from modules.shipping.carriers.shiprocket_adapter import ShiprocketCarrier

__all__ = ["Carrier", "PickupScheduleResult", "get_carrier", "set_carrier", "reset_carrier"]

_ADAPTERS = {
    "shiprocket": ShiprocketCarrier,
    "fake": FakeCarrier,
}

_current_carrier: Carrier | None = None


def get_carrier() -> Carrier:
    global _current_carrier
    if _current_carrier is None:
        adapter = _ADAPTERS.get(settings.CARRIER_ADAPTER)
        if adapter is None:
            raise ValueError(f"Unknown CARRIER_ADAPTER: {settings.CARRIER_ADAPTER}")
        _current_carrier = adapter()
    return _current_carrier


def set_carrier(carrier: Carrier) -> None:
    global _current_carrier
    _current_carrier = carrier


def reset_carrier() -> None:
    global _current_carrier
    _current_carrier = None
