"""
Tests for list screen tables and the entity registry.
"""

import pytest

from garage_admin.ui_logic.entities import ENTITIES, get_entity, list_entities
from garage_admin.ui_logic.table_manager import (
    TableManager,
    format_currency,
    format_days,
    format_percentage,
    format_time,
)


class TestFormatters:
    """Test cell formats."""

    def test_currency(self):
        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(None) == "-"

    def test_time(self):
        assert format_time(45) == "45 min"
        assert format_time(90) == "1h 30m"
        assert format_time(120) == "2h"

    def test_percentage_and_days(self):
        assert format_percentage(15) == "15%"
        assert format_percentage(12.5) == "12.5%"
        assert format_days(1) == "1 day"
        assert format_days(30) == "30 days"


class TestTableManager:
    """Test DataFrame construction."""

    def test_service_packages_table(self):
        items = [
            {"_id": "sp1", "name": "Basic", "price": 99, "duration": 30, "services": ["s1", "s2"]},
            {"_id": "sp2", "name": "Premium", "price": 249.99, "duration": 1, "services": []},
        ]
        df = TableManager().build_table("service_packages", items)
        assert list(df.columns) == ["Package Name", "Price", "Duration", "Services"]
        assert list(df.index) == ["sp1", "sp2"]
        assert df.loc["sp1", "Services"] == "2"
        assert df.loc["sp2", "Price"] == "$249.99"
        assert df.loc["sp2", "Duration"] == "1 day"

    def test_nested_and_missing_values(self):
        items = [{"_id": "g1", "name": "North", "address": "", "contact": {"phone": "+1 555 0100"}}]
        df = TableManager().build_table("garages", items)
        assert df.loc["g1", "Phone"] == "+1 555 0100"
        assert df.loc["g1", "Address"] == "-"

    def test_rows_without_id_skipped(self):
        df = TableManager().build_table("parts", [{"name": "No id"}, {"_id": "p1", "name": "Filter"}])
        assert list(df.index) == ["p1"]

    def test_empty_page(self):
        df = TableManager().build_table("services", [])
        assert df.empty
        assert "Discount" in df.columns

    def test_sortable_columns(self):
        assert TableManager().sortable_columns("service_packages") == ["Package Name", "Price", "Duration"]


class TestEntityRegistry:
    """Test entity configuration lookups."""

    def test_seven_entities(self):
        assert len(list_entities()) == 7

    def test_unknown_entity(self):
        with pytest.raises(KeyError):
            get_entity("tyres")

    def test_get_id_and_unwrap(self):
        fuel = ENTITIES["fuel_types"]
        assert fuel.endpoint == "fuel-types"
        assert fuel.get_id({"id": 7}) == "7"
        assert fuel.unwrap_detail({"fuelType": {"_id": "f1"}}) == {"_id": "f1"}
        assert fuel.unwrap_detail([1]) == [1]
