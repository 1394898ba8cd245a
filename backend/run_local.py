# backend/run_local.py
import argparse
from decimal import Decimal
from pathlib import Path

from backend.config import DEFAULT_PRICE_PLANS
from backend.lib.energy_plan_core.estimator import PlanCostEstimator, estimate_cost
from backend.lib.energy_plan_core.io import parse_csv_string


def main(argv=None):
    parser = argparse.ArgumentParser(description="Rank the built-in price plans for readings in a CSV file.")
    parser.add_argument("csv_path", nargs="?", default="tests/sample.csv")
    parser.add_argument("--rate", type=Decimal, help="also price the readings at this flat unit rate")
    args = parser.parse_args(argv)

    grouped = parse_csv_string(Path(args.csv_path).read_text())
    estimator = PlanCostEstimator(DEFAULT_PRICE_PLANS)
    for meter_id, readings in grouped.items():
        print(f"{meter_id}: {len(readings)} readings")
        for plan_id, cost in estimator.rank_cheapest(readings):
            print(f" - {plan_id}: {cost}")
        if args.rate is not None:
            print(f" - flat rate {args.rate}: {estimate_cost(readings, args.rate)}")


if __name__ == "__main__":
    main()
