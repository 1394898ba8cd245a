# backend/lib/energy_plan_core/models.py
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple


@dataclass(frozen=True)
class ElectricityReading:
    timestamp: datetime
    reading: Decimal


@dataclass(frozen=True)
class PeakTimeMultiplier:
    day_of_week: int  # Monday == 0, as datetime.weekday()
    multiplier: Decimal


@dataclass(frozen=True)
class PricePlan:
    plan_id: str
    energy_supplier: Optional[str]
    unit_rate: Decimal
    peak_time_multipliers: Tuple[PeakTimeMultiplier, ...] = field(default_factory=tuple)

    def get_price(self, at: datetime) -> Decimal:
        """
        Price per unit at a given moment: the unit rate scaled by the
        multiplier configured for that weekday, if any.
        """
        for peak in self.peak_time_multipliers:
            if peak.day_of_week == at.weekday():
                return self.unit_rate * peak.multiplier
        return self.unit_rate
