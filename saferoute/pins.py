"""SafeRoute — In-memory store for user-submitted hazard pins"""

import itertools
import logging
import threading
from datetime import datetime, timezone

from saferoute.models import Bounds, HazardPin, PinCreate

logger = logging.getLogger("saferoute.pins")


class PinStore:
    """Process-local record store; contents are lost on restart."""

    def __init__(self):
        self._pins: dict[int, HazardPin] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create(self, pin: PinCreate) -> HazardPin:
        with self._lock:
            record = HazardPin(
                id=next(self._ids),
                createdAt=datetime.now(timezone.utc),
                **pin.model_dump(),
            )
            self._pins[record.id] = record
        logger.info(f"Pin {record.id} created: {record.category} ({record.lat:.4f}, {record.lng:.4f})")
        return record

    def in_bounds(self, bounds: Bounds) -> list[HazardPin]:
        """Pins inside ``bounds``, newest first."""
        with self._lock:
            pins = [p for p in self._pins.values() if bounds.contains(p.lat, p.lng)]
        return sorted(pins, key=lambda p: (p.createdAt, p.id), reverse=True)

    def delete(self, pin_id: int) -> bool:
        with self._lock:
            return self._pins.pop(pin_id, None) is not None
