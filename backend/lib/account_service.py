"""Which price plan each smart meter is currently on."""

from typing import Dict, Optional


class AccountService:
    def __init__(self, plan_ids_by_meter: Dict[str, str]):
        self._plan_ids_by_meter = dict(plan_ids_by_meter)

    def price_plan_id_for(self, meter_id: str) -> Optional[str]:
        return self._plan_ids_by_meter.get(meter_id)

    def accounts(self) -> Dict[str, str]:
        return dict(self._plan_ids_by_meter)
