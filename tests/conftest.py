import pytest

from backend.app import create_app
from tests.factories import PRICE_PLAN_1_ID, SMART_METER_ID, make_plans


@pytest.fixture
def app():
    return create_app({
        "PRICE_PLANS": make_plans(),
        "ACCOUNTS": {SMART_METER_ID: PRICE_PLAN_1_ID},
        "SEED_SAMPLE_READINGS": False,
        "LOG_LEVEL": "DEBUG",
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions["meter_reading_service"]
