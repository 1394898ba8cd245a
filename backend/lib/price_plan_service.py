"""
=============================================================================
PRICE PLAN SERVICE - Cost comparisons for a smart meter's readings
=============================================================================

Joins the reading store with the price plan catalog. Every lookup that needs
a meter's readings returns None when the meter is unknown, and the windowed
lookups also return None when no reading falls inside the window or the
plan is not in the catalog. The Flask layer turns None into a 404.
=============================================================================
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from backend.lib.energy_plan_core.estimator import PlanCostEstimator
from backend.lib.energy_plan_core.models import ElectricityReading, PricePlan
from backend.lib.energy_plan_core.processor import day_of_week_label, filter_day_of_week, filter_last_week
from backend.lib.reading_service import MeterReadingService

logger = logging.getLogger(__name__)


class PricePlanService:
    """
    Usage:
        service = PricePlanService(plans, MeterReadingService())
        service.cost_for_each_plan("smart-meter-0")   # -> {plan_id: cost} or None
        service.recommend("smart-meter-0", limit=2)   # -> [(plan_id, cost), ...] or None
    """

    def __init__(self, price_plans: Iterable[PricePlan], meter_reading_service: MeterReadingService):
        self._plans: Dict[str, PricePlan] = {}
        for plan in price_plans:
            if plan.plan_id in self._plans:
                raise ValueError(f"Duplicate price plan: {plan.plan_id}")
            self._plans[plan.plan_id] = plan
        self.meter_reading_service = meter_reading_service
        self.estimator = PlanCostEstimator(self._plans.values())

    @property
    def price_plans(self) -> List[PricePlan]:
        return list(self._plans.values())

    def get_price_plan(self, plan_id: Optional[str]) -> Optional[PricePlan]:
        if plan_id is None:
            return None
        return self._plans.get(plan_id)

    def _readings(self, meter_id: str) -> Optional[List[ElectricityReading]]:
        readings = self.meter_reading_service.get_readings(meter_id)
        if not readings:
            logger.info("No readings stored for %s", meter_id)
            return None
        return readings

    def cost_for_each_plan(self, meter_id: str) -> Optional[Dict[str, Decimal]]:
        readings = self._readings(meter_id)
        if readings is None:
            return None
        return self.estimator.cost_for_each_plan(readings)

    def recommend(self, meter_id: str, limit: Optional[int] = None) -> Optional[List[Tuple[str, Decimal]]]:
        readings = self._readings(meter_id)
        if readings is None:
            return None
        return self.estimator.rank_cheapest(readings, limit)

    def cost_last_week(self, meter_id: str, plan_id: str,
                       now: Optional[datetime] = None) -> Optional[List[Tuple[str, Decimal]]]:
        """
        Cost of the last seven days of readings on one plan, as a single
        (plan_id, cost) entry. None when there are no readings in that week.
        """
        plan = self.get_price_plan(plan_id)
        if plan is None:
            logger.info("Unknown price plan %s", plan_id)
            return None
        readings = self._readings(meter_id)
        if readings is None:
            return None
        last_week = filter_last_week(readings, now)
        if not last_week:
            logger.info("No readings in the last week for %s", meter_id)
            return None
        return [(plan.plan_id, self.estimator.cost_for_plan(last_week, plan))]

    def cost_day_of_week(self, meter_id: str, plan_id: str,
                         now: Optional[datetime] = None) -> Optional[Tuple[str, Decimal]]:
        """Today's label and the cost of today's readings on one plan."""
        plan = self.get_price_plan(plan_id)
        if plan is None:
            logger.info("Unknown price plan %s", plan_id)
            return None
        readings = self._readings(meter_id)
        if readings is None:
            return None
        todays = filter_day_of_week(readings, now)
        if not todays:
            logger.info("No readings for today's weekday for %s", meter_id)
            return None
        return day_of_week_label(now), self.estimator.cost_for_plan(todays, plan)

    def cost_days_of_week(self, meter_id: str, plan_id: str,
                          now: Optional[datetime] = None) -> Optional[List[Tuple[str, Decimal]]]:
        plan = self.get_price_plan(plan_id)
        if plan is None:
            logger.info("Unknown price plan %s", plan_id)
            return None
        readings = self._readings(meter_id)
        if readings is None:
            return None
        costs = self.estimator.cost_for_days_of_week(readings, plan, now)
        return costs or None

    def recommend_by_day_of_week(self, meter_id: str, limit: Optional[int] = None,
                                 now: Optional[datetime] = None) -> Optional[List[Tuple[str, Dict[str, Decimal]]]]:
        readings = self._readings(meter_id)
        if readings is None:
            return None
        return self.estimator.rank_cheapest_by_day_of_week(readings, limit, now)
