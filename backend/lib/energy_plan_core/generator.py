# backend/lib/energy_plan_core/generator.py
import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from .models import ElectricityReading

READING_INTERVAL = timedelta(seconds=10)


def generate_readings(count: int, now: Optional[datetime] = None,
                      rng: Optional[random.Random] = None) -> List[ElectricityReading]:
    """
    Sample data: `count` readings ten seconds apart, the last one at `now`,
    each a random amount in [0, 1) kept to four decimal places.
    """
    if count < 0:
        raise ValueError("count must be >= 0")
    rng = rng or random.Random()
    end = now or datetime.now(timezone.utc)
    readings = []
    for i in range(count):
        amount = Decimal(rng.randrange(10000)) / Decimal(10000)
        readings.append(ElectricityReading(timestamp=end - READING_INTERVAL * (count - 1 - i),
                                           reading=amount))
    return readings
