# backend/lib/energy_plan_core/estimator.py
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import ElectricityReading, PricePlan
from .processor import as_aware, day_of_week_label, filter_day_of_week

ZERO = Decimal(0)
SECONDS_PER_HOUR = 3600.0


def _divide(dividend: Decimal, divisor: Decimal) -> Decimal:
    # Quotient keeps the dividend's scale, rounded half up.
    exponent = dividend.as_tuple().exponent
    return (dividend / divisor).quantize(Decimal(1).scaleb(exponent), rounding=ROUND_HALF_UP)


def average_reading(readings: Sequence[ElectricityReading]) -> Decimal:
    total = sum((r.reading for r in readings), ZERO)
    return _divide(total, Decimal(len(readings)))


def elapsed_hours(readings: Sequence[ElectricityReading]) -> Decimal:
    """
    Whole seconds between the earliest and latest reading, in hours.
    """
    ordered = sorted(readings, key=lambda r: as_aware(r.timestamp))
    seconds = (as_aware(ordered[-1].timestamp) - as_aware(ordered[0].timestamp)) // timedelta(seconds=1)
    return Decimal(repr(seconds / SECONDS_PER_HOUR))


def estimate_cost(readings: Sequence[ElectricityReading], unit_rate: Decimal) -> Decimal:
    """
    Estimate the cost of a run of readings at a flat unit rate.

    The estimate is the average reading divided by the hours spanned by the
    readings, times the rate. One reading has no span, so its amount is
    priced directly; no readings cost nothing.
    """
    readings = list(readings)
    if not readings:
        return ZERO
    average = average_reading(readings)
    if len(readings) == 1:
        return average * unit_rate
    hours = elapsed_hours(readings)
    if hours == ZERO:
        return average * unit_rate
    return _divide(average, hours) * unit_rate


class PlanCostEstimator:
    def __init__(self, price_plans: Iterable[PricePlan]):
        """
        price_plans: the catalog to price readings against, in display order.
        Ties in the rankings keep this order.
        """
        self.price_plans = list(price_plans)

    def cost_for_plan(self, readings: Sequence[ElectricityReading], plan: PricePlan) -> Decimal:
        return estimate_cost(readings, plan.unit_rate)

    def cost_for_each_plan(self, readings: Sequence[ElectricityReading]) -> Dict[str, Decimal]:
        readings = list(readings)
        return {plan.plan_id: self.cost_for_plan(readings, plan) for plan in self.price_plans}

    def rank_cheapest(self, readings: Sequence[ElectricityReading],
                      limit: Optional[int] = None) -> List[Tuple[str, Decimal]]:
        """
        Plans ordered from cheapest to dearest, cut to `limit` entries.

        None keeps every plan, 0 keeps none, and a limit above the number of
        plans keeps every plan.
        """
        ranked = sorted(self.cost_for_each_plan(readings).items(), key=lambda item: item[1])
        return _apply_limit(ranked, limit)

    def cost_for_days_of_week(self, readings: Sequence[ElectricityReading], plan: PricePlan,
                              now: Optional[datetime] = None) -> List[Tuple[str, Decimal]]:
        todays = filter_day_of_week(readings, now)
        if not todays:
            return []
        return [(day_of_week_label(now), self.cost_for_plan(todays, plan))]

    def rank_cheapest_by_day_of_week(self, readings: Sequence[ElectricityReading],
                                     limit: Optional[int] = None,
                                     now: Optional[datetime] = None) -> List[Tuple[str, Dict[str, Decimal]]]:
        """
        Rank the plans over today's readings, grouped under today's label.

        The result holds a single (day label, {plan_id: cost}) entry with the
        plans in ascending cost order; `limit` bounds the day entries, so 0
        yields an empty list. No readings for today also yields an empty list.
        """
        todays = filter_day_of_week(readings, now)
        if not todays:
            return []
        ranked = dict(self.rank_cheapest(todays))
        return _apply_limit([(day_of_week_label(now), ranked)], limit)


def _apply_limit(entries: list, limit: Optional[int]) -> list:
    if limit is None:
        return entries
    if limit < 0:
        raise ValueError("limit must be >= 0")
    return entries[:limit]
