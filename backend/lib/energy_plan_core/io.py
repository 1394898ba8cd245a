# backend/lib/energy_plan_core/io.py
import csv
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import Any, Dict, List, Optional, Tuple

from .models import ElectricityReading, PeakTimeMultiplier, PricePlan

CSV_FIELDS = ("smart_meter_id", "time", "reading")


def parse_time(value: Any) -> datetime:
    """
    Accepts epoch seconds (int/float) or an ISO8601 string, e.g.
    2025-11-01T00:00:00Z. Naive values are taken as UTC.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid time: {value!r}")
    if isinstance(value, (int, float)):
        return _from_epoch(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid time: {value!r}")
    text = value.strip()
    try:
        seconds = float(text)
    except ValueError:
        seconds = None
    if seconds is not None:
        return _from_epoch(seconds)
    try:
        ts = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"Invalid time: {value!r}") from None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _from_epoch(seconds) -> datetime:
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        raise ValueError(f"Invalid time: {seconds!r}") from None


def parse_reading(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Invalid reading: {value!r}")
    try:
        # str() first so floats keep their short decimal form (0.34, not 0.340000000000000024...)
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid reading: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"Invalid reading: {value!r}")
    if amount < 0:
        raise ValueError("reading must be >= 0")
    return amount


def parse_limit(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ValueError("limit must be an integer") from None
    if limit < 0:
        raise ValueError("limit must be >= 0")
    return limit


def parse_readings_payload(payload: Any) -> Tuple[str, List[ElectricityReading]]:
    """
    Parse a store request body:
        {"smartMeterId": "smart-meter-0",
         "electricityReadings": [{"time": 1505825838, "reading": 0.6}, ...]}
    The readings list must be non-empty.
    """
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")
    meter_id = payload.get("smartMeterId")
    if not isinstance(meter_id, str) or not meter_id:
        raise ValueError("smartMeterId required")
    items = payload.get("electricityReadings")
    if not isinstance(items, list) or not items:
        raise ValueError("electricityReadings must be a non-empty list")
    readings = []
    for item in items:
        if not isinstance(item, dict) or "time" not in item or "reading" not in item:
            raise ValueError(f"Missing field in reading: {item}")
        readings.append(ElectricityReading(timestamp=parse_time(item["time"]),
                                           reading=parse_reading(item["reading"])))
    return meter_id, readings


def parse_csv_string(csv_text: str) -> Dict[str, List[ElectricityReading]]:
    """
    Parse CSV text with header: smart_meter_id,time,reading
    Returns readings grouped by meter, in file order.
    """
    f = StringIO(csv_text.strip())
    reader = csv.DictReader(f)
    grouped = defaultdict(list)
    for row in reader:
        if any(not row.get(name) for name in CSV_FIELDS):
            raise ValueError(f"Missing field in row: {row}")
        grouped[row["smart_meter_id"].strip()].append(
            ElectricityReading(timestamp=parse_time(row["time"]),
                               reading=parse_reading(row["reading"])))
    return dict(grouped)


def parse_price_plans(items: Any) -> List[PricePlan]:
    """
    Parse a catalog:
        [{"planId": "price-plan-0", "energySupplier": "...", "unitRate": 10,
          "peakTimeMultipliers": [{"dayOfWeek": 5, "multiplier": 2}]}]
    dayOfWeek counts from Monday == 0.
    """
    if not isinstance(items, list):
        raise ValueError("Price plans must be a JSON list")
    plans = []
    seen = set()
    for item in items:
        if not isinstance(item, dict) or not item.get("planId"):
            raise ValueError(f"planId required: {item}")
        plan_id = item["planId"]
        if plan_id in seen:
            raise ValueError(f"Duplicate planId: {plan_id}")
        seen.add(plan_id)
        rate = parse_reading(item.get("unitRate"))
        if rate == 0:
            raise ValueError(f"unitRate must be > 0 for {plan_id}")
        peaks = tuple(
            PeakTimeMultiplier(day_of_week=_parse_weekday(p.get("dayOfWeek")),
                               multiplier=parse_reading(p.get("multiplier")))
            for p in item.get("peakTimeMultipliers") or []
        )
        plans.append(PricePlan(plan_id=plan_id,
                               energy_supplier=item.get("energySupplier"),
                               unit_rate=rate,
                               peak_time_multipliers=peaks))
    return plans


def _parse_weekday(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 6:
        return value
    raise ValueError(f"dayOfWeek must be 0-6: {value!r}")


def reading_to_dict(reading: ElectricityReading) -> Dict[str, Any]:
    return {
        "time": reading.timestamp.astimezone(timezone.utc).isoformat(),
        "reading": reading.reading,
    }


def price_plan_to_dict(plan: PricePlan) -> Dict[str, Any]:
    return {
        "planId": plan.plan_id,
        "energySupplier": plan.energy_supplier,
        "unitRate": plan.unit_rate,
        "peakTimeMultipliers": [
            {"dayOfWeek": p.day_of_week, "multiplier": p.multiplier}
            for p in plan.peak_time_multipliers
        ],
    }
