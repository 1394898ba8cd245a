"""
=============================================================================
PRICE PLAN COMPARATOR - FLASK APPLICATION
=============================================================================

REST API over the smart meter readings store and the price plan catalog:
- Storing readings for a smart meter (JSON body or CSV upload)
- Reading back a meter's stored readings
- Costing a meter's readings under every price plan
- Recommending the cheapest plans, optionally limited to the top N
- Costing the last week, or today's weekday, on the meter's current plan

How to run:
    python -m backend.app

Then visit: http://127.0.0.1:5000/health
=============================================================================
"""

import logging
import os
from typing import Any, Dict, Optional

from flask import Blueprint, Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from backend.config import SAMPLE_READINGS_PER_METER, load_config, resolve_log_level
from backend.lib.account_service import AccountService
from backend.lib.energy_plan_core.generator import generate_readings
from backend.lib.energy_plan_core.io import (
    parse_csv_string,
    parse_limit,
    parse_readings_payload,
    price_plan_to_dict,
    reading_to_dict,
)
from backend.lib.price_plan_service import PricePlanService
from backend.lib.reading_service import MeterReadingService

logger = logging.getLogger(__name__)

PRICE_PLAN_ID_KEY = "pricePlanId"
PRICE_PLAN_COMPARISONS_KEY = "pricePlanComparisons"

api = Blueprint("api", __name__)


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Build the Flask application and its process-wide state.

    The reading store, account mapping and price plan catalog are created
    once here and shared by every request through app.extensions.

    Args:
        config: overrides for the values load_config() reads from the
                environment (PRICE_PLANS, ACCOUNTS, SEED_SAMPLE_READINGS,
                LOG_LEVEL)
    """
    settings = load_config()
    settings.update(config or {})
    settings["LOG_LEVEL"] = resolve_log_level(settings["LOG_LEVEL"])

    logging.basicConfig(level=settings["LOG_LEVEL"],
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    app = Flask(__name__)
    app.config.update(settings)
    # Ranked mappings must keep their cost order in responses.
    app.json.sort_keys = False

    meter_reading_service = MeterReadingService()
    account_service = AccountService(settings["ACCOUNTS"])
    price_plan_service = PricePlanService(settings["PRICE_PLANS"], meter_reading_service)

    if settings["SEED_SAMPLE_READINGS"]:
        for meter_id in account_service.accounts():
            meter_reading_service.store_readings(meter_id, generate_readings(SAMPLE_READINGS_PER_METER))
        logger.info("Seeded sample readings for %d meters", len(account_service.accounts()))

    app.extensions["meter_reading_service"] = meter_reading_service
    app.extensions["account_service"] = account_service
    app.extensions["price_plan_service"] = price_plan_service

    app.register_blueprint(api)
    logger.info("Loaded %d price plans and %d accounts",
                len(price_plan_service.price_plans), len(account_service.accounts()))
    return app


def _readings() -> MeterReadingService:
    return current_app.extensions["meter_reading_service"]


def _accounts() -> AccountService:
    return current_app.extensions["account_service"]


def _price_plans() -> PricePlanService:
    return current_app.extensions["price_plan_service"]


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _current_plan_id(meter_id: str) -> Optional[str]:
    """The meter's plan, if it has one that exists in the catalog."""
    plan_id = _accounts().price_plan_id_for(meter_id)
    if _price_plans().get_price_plan(plan_id) is None:
        return None
    return plan_id


@api.app_errorhandler(HTTPException)
def http_error(e: HTTPException):
    return _error(e.description, e.code)


# =============================================================================
# API ROUTES - READINGS
# =============================================================================

@api.route("/readings/store", methods=["POST"])
def store_readings():
    """
    Append readings to a smart meter.

    Request Body (JSON):
        {
            "smartMeterId": "smart-meter-0",
            "electricityReadings": [
                {"time": 1505825838, "reading": 0.6},
                {"time": "2025-11-01T01:00:00Z", "reading": 0.5}
            ]
        }

    HTTP Status Codes:
        200: Readings stored
        400: Body missing, malformed, or containing a negative reading
    """
    try:
        meter_id, readings = parse_readings_payload(request.get_json(silent=True))
    except ValueError as e:
        logger.warning("Rejected readings: %s", e)
        return _error(str(e), 400)

    total = _readings().store_readings(meter_id, readings)
    return jsonify({"smartMeterId": meter_id, "stored": len(readings), "total": total})


@api.route("/readings/upload", methods=["POST"])
def upload_readings():
    """
    Store readings from an uploaded CSV file.

    Expected CSV format:
        smart_meter_id,time,reading
        smart-meter-0,2025-11-01T00:00:00Z,0.34
        smart-meter-0,2025-11-01T01:00:00Z,0.29

    HTTP Status Codes:
        202: Accepted - every row stored
        400: No file, or a row failed to parse (nothing is stored)
    """
    if "file" not in request.files:
        return _error("No file uploaded", 400)

    file = request.files["file"]
    try:
        grouped = parse_csv_string(file.read().decode("utf-8-sig"))
    except ValueError as e:
        logger.warning("Rejected upload %s: %s", file.filename, e)
        return _error(str(e), 400)

    for meter_id, readings in grouped.items():
        _readings().store_readings(meter_id, readings)

    return jsonify({
        "upload_id": file.filename,
        "processed_count": sum(len(r) for r in grouped.values()),
        "meters": sorted(grouped),
    }), 202


@api.route("/readings/read/<meter_id>", methods=["GET"])
def read_readings(meter_id: str):
    readings = _readings().get_readings(meter_id)
    if readings is None:
        return _error(f"No readings for {meter_id}", 404)
    return jsonify([reading_to_dict(r) for r in readings])


# =============================================================================
# API ROUTES - PRICE PLANS
# =============================================================================

@api.route("/price-plans", methods=["GET"])
def list_price_plans():
    return jsonify([price_plan_to_dict(p) for p in _price_plans().price_plans])


@api.route("/price-plans/compare-all/<meter_id>", methods=["GET"])
def compare_all(meter_id: str):
    """
    Cost of the meter's readings under every price plan, alongside the
    meter's current plan.

    Example Response:
        {
            "pricePlanId": "price-plan-0",
            "pricePlanComparisons": {"price-plan-0": "100.0", "price-plan-1": "20.0"}
        }
    """
    costs = _price_plans().cost_for_each_plan(meter_id)
    if costs is None:
        return _error(f"No readings for {meter_id}", 404)
    return jsonify({
        PRICE_PLAN_ID_KEY: _accounts().price_plan_id_for(meter_id),
        PRICE_PLAN_COMPARISONS_KEY: costs,
    })


@api.route("/price-plans/recommend/<meter_id>", methods=["GET"])
def recommend(meter_id: str):
    """
    Cheapest plans first.

    Query Parameters:
        limit (optional): keep only the N cheapest plans

    Example Response:
        [{"price-plan-2": "38.0"}, {"price-plan-1": "76.0"}]
    """
    try:
        limit = parse_limit(request.args.get("limit"))
    except ValueError as e:
        return _error(str(e), 400)

    ranked = _price_plans().recommend(meter_id, limit)
    if ranked is None:
        return _error(f"No readings for {meter_id}", 404)
    return jsonify([{plan_id: cost} for plan_id, cost in ranked])


@api.route("/price-plans/last-week/<meter_id>", methods=["GET"])
def cost_last_week(meter_id: str):
    """
    Cost of the last seven days of readings on the meter's current plan.

    HTTP Status Codes:
        200: [{"price-plan-0": "1.0"}]
        400: The meter has no current price plan
        404: No readings, or none within the last week
    """
    plan_id = _current_plan_id(meter_id)
    if plan_id is None:
        return _error(f"No price plan for {meter_id}", 400)

    costs = _price_plans().cost_last_week(meter_id, plan_id)
    if costs is None:
        return _error(f"No readings in the last week for {meter_id}", 404)
    return jsonify([{pid: cost} for pid, cost in costs])


@api.route("/price-plans/day-of-week/<meter_id>", methods=["GET"])
def cost_day_of_week(meter_id: str):
    """
    Cost of the readings taken on today's weekday, on the current plan.

    Example Response:
        {"pricePlanId": "price-plan-0", "consumptions": "20.0", "dayOfWeek": "MONDAY"}
    """
    plan_id = _current_plan_id(meter_id)
    if plan_id is None:
        return _error(f"No price plan for {meter_id}", 400)

    result = _price_plans().cost_day_of_week(meter_id, plan_id)
    if result is None:
        return _error(f"No readings for today's weekday for {meter_id}", 404)
    day, cost = result
    return jsonify({PRICE_PLAN_ID_KEY: plan_id, "consumptions": cost, "dayOfWeek": day})


@api.route("/price-plans/days-of-week/<meter_id>", methods=["GET"])
def cost_days_of_week(meter_id: str):
    plan_id = _current_plan_id(meter_id)
    if plan_id is None:
        return _error(f"No price plan for {meter_id}", 400)

    costs = _price_plans().cost_days_of_week(meter_id, plan_id)
    if costs is None:
        return _error(f"No readings for today's weekday for {meter_id}", 404)
    return jsonify([{day: cost} for day, cost in costs])


@api.route("/price-plans/recommend/days-of-week/<meter_id>", methods=["GET"])
def recommend_days_of_week(meter_id: str):
    """
    Plans ranked over today's weekday readings, grouped under today's label.

    Query Parameters:
        limit (optional): bounds the day entries; 0 returns an empty list

    Example Response:
        [{"MONDAY": {"price-plan-2": "6.0", "price-plan-1": "12.0", "price-plan-0": "60.0"}}]
    """
    try:
        limit = parse_limit(request.args.get("limit"))
    except ValueError as e:
        return _error(str(e), 400)

    ranked = _price_plans().recommend_by_day_of_week(meter_id, limit)
    if ranked is None:
        return _error(f"No readings for {meter_id}", 404)
    return jsonify([{day: costs} for day, costs in ranked])


@api.route("/health", methods=["GET"])
def health():
    return jsonify({
        "status": "ok",
        "meters": len(_readings().meter_ids()),
        "price_plans": len(_price_plans().price_plans),
    })


# =============================================================================
# RUN THE SERVER
# =============================================================================

if __name__ == "__main__":
    create_app().run(
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "5000")),
        debug=os.getenv("FLASK_DEBUG", "false").lower() == "true",
    )
