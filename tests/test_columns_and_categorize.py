"""Tests for header alias resolution and the product categorizer."""

import numpy as np
import pytest

from pos_ingest import Platform
from pos_ingest.etl.categorize import (
    CAFE_CATEGORIES,
    CAFE_DEFAULT,
    SERVICE_CATEGORIES,
    SERVICE_DEFAULT,
    categories_for_platform,
    categorize,
    categorize_for_platform,
    taxonomy_for,
)
from pos_ingest.etl.columns import find_column, found_columns


class TestFindColumn:
    def test_exact_match(self) -> None:
        assert find_column({"Invoice No": "A1"}, ["Invoice No"]) == "A1"

    def test_case_insensitive_match(self) -> None:
        assert find_column({"invoice no": "A1"}, ["Invoice No"]) == "A1"
        assert find_column({"TOTAL": "5"}, ["Total"]) == "5"

    def test_header_with_non_breaking_space(self) -> None:
        assert find_column({"Invoice\u00a0No": "A1"}, ["Invoice No"]) == "A1"

    def test_candidate_order_wins_over_row_order(self) -> None:
        row = {"Amount": "5", "Total": "7"}
        assert find_column(row, ["Total", "Amount"]) == "7"

    def test_blank_cells_fall_through_to_next_candidate(self) -> None:
        assert find_column({"Total": "", "Amount": "5"}, ["Total", "Amount"]) == "5"
        assert find_column({"Total": np.nan, "Amount": "5"}, ["Total", "Amount"]) == "5"
        assert find_column({"Total": None, "Amount": "5"}, ["Total", "Amount"]) == "5"

    def test_no_match_is_none(self) -> None:
        assert find_column({"Foo": "1"}, ["Total", "Amount"]) is None
        assert find_column({"Total": "  "}, ["Total"]) is None

    def test_zero_is_a_value(self) -> None:
        assert find_column({"Total": 0}, ["Total"]) == 0

    def test_found_columns(self) -> None:
        assert found_columns([{"Foo": 1, "Bar": 2}]) == "Foo, Bar"
        assert found_columns([]) == "none"


class TestCategorize:
    @pytest.mark.parametrize(
        "description,expected",
        [
            ("Cappuccino", "Drinks"),
            ("Iced Latte", "Drinks"),
            ("Chicken Sandwich", "Food"),
            ("Blueberry Muffin", "Food"),
            ("Gift Card", "Other"),
            ("", "Other"),
        ],
    )
    def test_cafe_taxonomy(self, description: str, expected: str) -> None:
        assert categorize(description, CAFE_CATEGORIES, CAFE_DEFAULT) == expected

    @pytest.mark.parametrize(
        "description,expected",
        [
            ("Full Highlights & Cut", "Hair Color"),
            ("Gents Haircut", "Haircut"),
            ("Gel Manicure", "Nail Care"),
            ("Swedish Massage 60min", "Massage"),
            ("Leg Wax", "Hair Removal"),
            ("Gift Voucher", "Other Services"),
        ],
    )
    def test_service_taxonomy(self, description: str, expected: str) -> None:
        assert categorize(description, SERVICE_CATEGORIES, SERVICE_DEFAULT) == expected

    def test_drinks_are_checked_before_food(self) -> None:
        # "iced" (Drinks) and "cake" (Food) both match
        assert categorize("Iced cake", CAFE_CATEGORIES, CAFE_DEFAULT) == "Drinks"

    def test_case_insensitive(self) -> None:
        assert categorize("CAPPUCCINO", CAFE_CATEGORIES, CAFE_DEFAULT) == "Drinks"

    def test_platform_taxonomy(self) -> None:
        assert categorize_for_platform("Cappuccino", Platform.TAKEMYPAYMENTS) == "Drinks"
        assert categorize_for_platform("Cappuccino", "booker") == "Other Services"
        assert taxonomy_for(Platform.BOOKER) == (SERVICE_CATEGORIES, SERVICE_DEFAULT)

    def test_categories_for_platform(self) -> None:
        assert categories_for_platform(Platform.TAKEMYPAYMENTS) == ["Drinks", "Food", "Other"]
        services = categories_for_platform(Platform.BOOKER)
        assert len(services) == 13
        assert services[-1] == "Other Services"
