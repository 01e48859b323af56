"""Tests for the analytics marts (transactions.aggregate).

build_marts() is a pure function of the transaction set, so most tests feed
it a synthetic DataFrame; recompute_marts() is exercised against a
temporary data root.
"""

from datetime import datetime
from decimal import Decimal

import pandas as pd
import pytest

from pos_ingest.transactions import aggregate, core
from pos_ingest.transactions.metadata import read_stage_metadata

from conftest import make_txn


@pytest.fixture
def transactions(cafe, salon):
    return [
        # Wednesday 2024-12-25
        make_txn(cafe, "4.50", datetime(2024, 12, 25, 8, 15), category="Drinks", customer="1234"),
        make_txn(cafe, "6.00", datetime(2024, 12, 25, 8, 40), category="Food", customer="1234"),
        make_txn(cafe, "2.00", datetime(2024, 12, 26, 14, 5), category="Drinks", customer="9999"),
        # Tuesday 2024-03-05
        make_txn(salon, "45.00", datetime(2024, 3, 5, 14, 0), category="Nail Care"),
    ]


@pytest.fixture
def marts(transactions):
    df = pd.DataFrame([t.to_record() for t in transactions])
    return aggregate.build_marts(df)


class TestBuildMarts:
    def test_every_mart_is_built(self, marts) -> None:
        assert set(marts) == set(aggregate.MART_NAMES)

    def test_sales_summary(self, marts) -> None:
        summary = marts["sales_summary"].iloc[0]
        assert summary["transaction_count"] == 4
        assert summary["total_revenue"] == Decimal("57.50")
        assert summary["average_transaction_value"] == Decimal("14.375")
        assert summary["store_count"] == 2
        assert summary["first_date"] == "2024-03-05T14:00:00"

    def test_revenue_by_day(self, marts) -> None:
        by_day = marts["revenue_by_day"]
        cafe_xmas = by_day[(by_day["store_id"] == "cafe-1") & (by_day["day"] == datetime(2024, 12, 25).date())]
        assert cafe_xmas["transaction_count"].tolist() == [2]
        assert cafe_xmas["revenue"].tolist() == [Decimal("10.50")]
        assert len(by_day) == 3

    def test_demand_by_hour_is_zero_filled(self, marts) -> None:
        by_hour = marts["demand_by_hour"].set_index("hour")
        assert list(by_hour.index) == list(range(24))
        assert by_hour.loc[8, "transaction_count"] == 2
        assert by_hour.loc[14, "transaction_count"] == 2
        assert by_hour.loc[14, "revenue"] == Decimal("47.00")
        assert by_hour.loc[3, "transaction_count"] == 0
        assert by_hour.loc[3, "revenue"] == Decimal(0)

    def test_demand_by_weekday_starts_on_sunday(self, marts) -> None:
        by_day = marts["demand_by_weekday"]
        assert by_day["day_name"].tolist()[0] == "Sunday"
        assert len(by_day) == 7
        wednesday = by_day[by_day["day_name"] == "Wednesday"].iloc[0]
        assert wednesday["day_of_week"] == 3
        assert wednesday["transaction_count"] == 2
        assert by_day[by_day["day_name"] == "Sunday"]["transaction_count"].iloc[0] == 0

    def test_store_ranking(self, marts) -> None:
        ranking = marts["store_ranking"]
        assert ranking["store_id"].tolist() == ["salon-1", "cafe-1"]
        assert ranking["rank"].tolist() == [1, 2]
        assert ranking.iloc[1]["revenue"] == Decimal("12.50")
        assert ranking.iloc[1]["average_transaction_value"] == Decimal("12.50") / 3

    def test_category_mix_shares_per_platform(self, marts) -> None:
        mix = marts["category_mix"]
        cafe_mix = mix[mix["platform"] == "takemypayments"]
        assert sum(cafe_mix["revenue_share"]) == Decimal(1)
        drinks = cafe_mix[cafe_mix["category"] == "Drinks"].iloc[0]
        assert drinks["transaction_count"] == 2
        assert drinks["revenue"] == Decimal("6.50")

    def test_customer_behaviour(self, marts) -> None:
        behaviour = marts["customer_behaviour"].set_index("store_id")
        cafe_row = behaviour.loc["cafe-1"]
        assert cafe_row["identified_customers"] == 2
        assert cafe_row["repeat_customers"] == 1
        assert cafe_row["repeat_rate"] == Decimal("0.5")
        assert cafe_row["repeat_transactions"] == 2
        assert behaviour.loc["salon-1", "identified_customers"] == 0

    def test_empty_transaction_set(self, paths) -> None:
        marts = aggregate.build_marts(core.load(paths))
        assert marts["sales_summary"].iloc[0]["transaction_count"] == 0
        assert marts["demand_by_hour"]["transaction_count"].sum() == 0
        assert len(marts["demand_by_hour"]) == 24
        assert marts["store_ranking"].empty


class TestRecomputeMarts:
    def test_writes_marts_and_metadata(self, paths, cafe, salon, transactions) -> None:
        core.replace_store_transactions(paths, "cafe-1", transactions[:3])
        core.replace_store_transactions(paths, "salon-1", transactions[3:])

        written = aggregate.recompute_marts(paths)

        for name in aggregate.MART_NAMES:
            assert aggregate.mart_path(paths, name).exists()
        meta = read_stage_metadata(paths.mart_analytics, "analytics")
        assert meta.status == "ok"
        assert meta.stores == ["cafe-1", "salon-1"]
        assert meta.row_count == 4
        # Rounded to cents only at write time
        assert written["sales_summary"].iloc[0]["average_transaction_value"] == Decimal("14.38")

    def test_load_mart(self, paths, cafe, transactions) -> None:
        core.replace_store_transactions(paths, "cafe-1", transactions[:3])
        aggregate.recompute_marts(paths)

        by_hour = aggregate.load_mart(paths, "demand_by_hour")
        assert len(by_hour) == 24
        assert by_hour.loc[by_hour["hour"] == 8, "revenue"].iloc[0] == pytest.approx(10.5)

    def test_recompute_replaces_previous_marts(self, paths, cafe, transactions) -> None:
        core.replace_store_transactions(paths, "cafe-1", transactions[:3])
        aggregate.recompute_marts(paths)
        core.replace_store_transactions(paths, "cafe-1", transactions[:1])
        aggregate.recompute_marts(paths)

        summary = aggregate.load_mart(paths, "sales_summary")
        assert summary["transaction_count"].iloc[0] == 1

    def test_unknown_mart(self, paths) -> None:
        with pytest.raises(ValueError, match="Invalid mart"):
            aggregate.load_mart(paths, "forecast")

    def test_mart_not_built_yet(self, paths) -> None:
        with pytest.raises(FileNotFoundError):
            aggregate.load_mart(paths, "sales_summary")
