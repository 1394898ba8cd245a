"""
Application configuration.

Values come from environment variables (a .env file is loaded first, so
local settings can live there):

    PRICE_PLANS_FILE       JSON catalog of price plans (default: built-in)
    SMART_METER_ACCOUNTS   meter=plan pairs, comma separated (default: built-in)
    SEED_SAMPLE_READINGS   'true' to generate sample readings at startup
    LOG_LEVEL              logging level name (default: INFO)
"""

import json
import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv

from backend.lib.energy_plan_core.io import parse_price_plans
from backend.lib.energy_plan_core.models import PricePlan

DEFAULT_PRICE_PLANS = [
    PricePlan("price-plan-0", "Dr Evil's Dark Energy", Decimal("10")),
    PricePlan("price-plan-1", "The Green Eco", Decimal("2")),
    PricePlan("price-plan-2", "Power for Everyone", Decimal("1")),
]

DEFAULT_ACCOUNTS = {
    "smart-meter-0": "price-plan-0",
    "smart-meter-1": "price-plan-1",
    "smart-meter-2": "price-plan-0",
    "smart-meter-3": "price-plan-2",
    "smart-meter-4": "price-plan-1",
}

SAMPLE_READINGS_PER_METER = 20

logger = logging.getLogger(__name__)


def parse_accounts(text: str) -> Dict[str, str]:
    """'smart-meter-0=price-plan-0,smart-meter-1=price-plan-1' -> dict"""
    accounts = {}
    for pair in text.split(","):
        pair = pair.strip()
        if not pair:
            continue
        meter_id, sep, plan_id = pair.partition("=")
        if not sep or not meter_id.strip() or not plan_id.strip():
            raise ValueError(f"Invalid account mapping: {pair!r}")
        accounts[meter_id.strip()] = plan_id.strip()
    return accounts


def resolve_log_level(name: str) -> str:
    """A known logging level name, or INFO when `name` is not one."""
    level = str(name).upper()
    if isinstance(logging.getLevelName(level), int):
        return level
    logger.warning("Unknown LOG_LEVEL %r, using INFO", name)
    return "INFO"


def load_price_plans(path: str) -> List[PricePlan]:
    with Path(path).open("r", encoding="utf-8") as f:
        return parse_price_plans(json.load(f))


def load_config() -> Dict[str, Any]:
    load_dotenv()

    plans_file = os.getenv("PRICE_PLANS_FILE")
    accounts = os.getenv("SMART_METER_ACCOUNTS")
    return {
        "PRICE_PLANS": load_price_plans(plans_file) if plans_file else list(DEFAULT_PRICE_PLANS),
        "ACCOUNTS": parse_accounts(accounts) if accounts else dict(DEFAULT_ACCOUNTS),
        "SEED_SAMPLE_READINGS": os.getenv("SEED_SAMPLE_READINGS", "false").lower() == "true",
        "LOG_LEVEL": resolve_log_level(os.getenv("LOG_LEVEL", "INFO")),
    }
