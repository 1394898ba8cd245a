"""
=============================================================================
METER READING SERVICE - In-memory store of readings per smart meter
=============================================================================

Readings are kept in process memory, keyed by smart meter ID:

    {
        "smart-meter-0": [ElectricityReading(...), ElectricityReading(...)],
        "smart-meter-1": [...]
    }

A meter's list only ever grows: storing readings appends them to what the
meter already has. Appending is a read-then-write on the mapping, so writes
to the same meter are serialized with a per-meter lock. Writes to different
meters do not wait on each other.
=============================================================================
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional

from backend.lib.energy_plan_core.models import ElectricityReading

logger = logging.getLogger(__name__)


class MeterReadingService:
    """
    Process-wide store of electricity readings.

    Usage:
        store = MeterReadingService()
        store.store_readings("smart-meter-0", readings)
        store.get_readings("smart-meter-0")   # -> list, or None if unknown
    """

    def __init__(self, readings_by_meter: Optional[Dict[str, List[ElectricityReading]]] = None):
        self._readings: Dict[str, List[ElectricityReading]] = {
            meter_id: list(readings) for meter_id, readings in (readings_by_meter or {}).items()
        }
        self._locks: Dict[str, threading.Lock] = {}
        # Guards the lock table and the set of meter keys.
        self._locks_guard = threading.Lock()

    def _lock_for(self, meter_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(meter_id)
            if lock is None:
                lock = self._locks[meter_id] = threading.Lock()
            return lock

    def get_readings(self, meter_id: str) -> Optional[List[ElectricityReading]]:
        """
        Return a copy of the readings stored for a meter.

        Returns:
            list of ElectricityReading, or None when the meter has never
            stored any readings
        """
        # Unknown meters get no lock, so lookups cannot grow the lock table.
        with self._locks_guard:
            if meter_id not in self._readings:
                return None
        with self._lock_for(meter_id):
            return list(self._readings[meter_id])

    def store_readings(self, meter_id: str, readings: Iterable[ElectricityReading]) -> int:
        """
        Append readings to a meter's list, creating it on first use.

        Returns:
            int: how many readings the meter now holds
        """
        new_readings = list(readings)
        with self._lock_for(meter_id):
            stored = self._readings.get(meter_id)
            if stored is None:
                with self._locks_guard:
                    stored = self._readings.setdefault(meter_id, [])
            stored.extend(new_readings)
            total = len(stored)
        logger.debug("Stored %d readings for %s (%d total)", len(new_readings), meter_id, total)
        return total

    def meter_ids(self) -> List[str]:
        with self._locks_guard:
            return sorted(self._readings)
