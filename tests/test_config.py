import json
import random
from datetime import timedelta
from decimal import Decimal

import pytest

from backend.app import create_app
from backend.config import DEFAULT_ACCOUNTS, load_config, parse_accounts
from backend.lib.energy_plan_core.generator import generate_readings
from backend.run_local import main
from tests.factories import NOW


def test_defaults(monkeypatch):
    for name in ("PRICE_PLANS_FILE", "SMART_METER_ACCOUNTS", "SEED_SAMPLE_READINGS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    config = load_config()
    assert [p.plan_id for p in config["PRICE_PLANS"]] == ["price-plan-0", "price-plan-1", "price-plan-2"]
    assert config["ACCOUNTS"] == DEFAULT_ACCOUNTS
    assert config["SEED_SAMPLE_READINGS"] is False
    assert config["LOG_LEVEL"] == "INFO"


def test_from_environment(monkeypatch, tmp_path):
    plans_file = tmp_path / "plans.json"
    plans_file.write_text(json.dumps([{"planId": "flat", "energySupplier": "Flat Co", "unitRate": "0.25"}]))
    monkeypatch.setenv("PRICE_PLANS_FILE", str(plans_file))
    monkeypatch.setenv("SMART_METER_ACCOUNTS", "meter-a=flat, meter-b=flat")
    monkeypatch.setenv("SEED_SAMPLE_READINGS", "TRUE")
    monkeypatch.setenv("LOG_LEVEL", "warning")

    config = load_config()
    assert config["PRICE_PLANS"][0].unit_rate == Decimal("0.25")
    assert config["ACCOUNTS"] == {"meter-a": "flat", "meter-b": "flat"}
    assert config["SEED_SAMPLE_READINGS"] is True
    assert config["LOG_LEVEL"] == "WARNING"


@pytest.mark.parametrize("text", ["meter-a", "meter-a=", "=flat"])
def test_parse_accounts_rejects(text):
    with pytest.raises(ValueError):
        parse_accounts(text)


def test_seeded_app(monkeypatch):
    for name in ("PRICE_PLANS_FILE", "SMART_METER_ACCOUNTS"):
        monkeypatch.delenv(name, raising=False)
    app = create_app({"SEED_SAMPLE_READINGS": True})
    client = app.test_client()
    assert client.get("/health").get_json()["meters"] == len(DEFAULT_ACCOUNTS)
    assert client.get("/price-plans/compare-all/smart-meter-0").status_code == 200


def test_generate_readings():
    readings = generate_readings(5, now=NOW, rng=random.Random(7))
    assert len(readings) == 5
    assert readings[-1].timestamp == NOW
    assert readings[0].timestamp == NOW - timedelta(seconds=40)
    assert all(Decimal("0") <= r.reading < Decimal("1") for r in readings)
    assert all(r.reading.as_tuple().exponent >= -4 for r in readings)
    assert readings == generate_readings(5, now=NOW, rng=random.Random(7))
    assert generate_readings(0) == []


def test_run_local(capsys, tmp_path):
    csv_path = tmp_path / "readings.csv"
    csv_path.write_text("smart_meter_id,time,reading\n"
                        "smart-meter-0,2025-11-01T00:00:00Z,15.0\n"
                        "smart-meter-0,2025-11-01T01:00:00Z,5.0\n")
    main([str(csv_path), "--rate", "10"])
    out = capsys.readouterr().out
    assert "smart-meter-0: 2 readings" in out
    assert " - price-plan-2: 10.0" in out
    assert " - flat rate 10: 100.0" in out


def test_unknown_log_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "loud")
    assert load_config()["LOG_LEVEL"] == "INFO"

    app = create_app({"LOG_LEVEL": "verbose", "SEED_SAMPLE_READINGS": False})
    assert app.config["LOG_LEVEL"] == "INFO"
    assert app.test_client().get("/health").status_code == 200
