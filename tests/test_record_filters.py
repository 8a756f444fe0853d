import asyncio

import pytest

from sf_informal_review.records import FixtureRecordSource, OrderBy, RecordFilter
from sf_informal_review.records.filters import (
    contains,
    equals,
    greater_than,
    in_list,
    not_equals,
    not_null,
    within_circle,
)
from sf_informal_review.records.soda import compile_condition, compile_order, compile_where


def test_compile_where_joins_conditions_with_and():
    where = RecordFilter.where(
        contains("property_location", "PACIFIC"),
        equals("closed_roll_year", "2024"),
        in_list("use_code", ["SRES", "MRES"]),
    )
    assert compile_where(where) == (
        "property_location like '%PACIFIC%' AND closed_roll_year='2024' "
        "AND (use_code='SRES' OR use_code='MRES')"
    )


def test_compile_condition_escapes_quotes():
    assert compile_condition(contains("property_location", "O'FARRELL")) == (
        "property_location like '%O''FARRELL%'"
    )


def test_compile_geo_and_null_conditions():
    assert compile_condition(within_circle("the_geom", 37.79, -122.42, 805)) == (
        "within_circle(the_geom, 37.79, -122.42, 805)"
    )
    assert compile_condition(not_null("current_sales_date")) == "current_sales_date IS NOT NULL"
    assert compile_condition(greater_than("current_sales_date", "2023-02-15")) == (
        "current_sales_date > '2023-02-15'"
    )
    assert compile_condition(not_equals("parcel_number", "0595023")) == "parcel_number != '0595023'"
    assert compile_order(OrderBy("current_sales_date")) == "current_sales_date DESC"


def test_compile_rejects_injected_field_names():
    with pytest.raises(ValueError):
        compile_condition(equals("use_code OR 1=1", "x"))


def test_in_list_requires_values():
    with pytest.raises(ValueError):
        in_list("use_code", [])


def test_fixture_source_filters_orders_and_limits(rows):
    source = FixtureRecordSource(rows)
    where = RecordFilter.where(
        equals("closed_roll_year", "2024"),
        contains("property_location", "PACIFIC"),
    )
    found = asyncio.run(source.query(where, limit=2, order=OrderBy("current_sales_date")))
    assert [r["parcel_number"] for r in found] == ["0595040", "0595031"]
    assert source.calls[0][1] == 2


def test_fixture_source_within_circle_uses_geometry(rows):
    source = FixtureRecordSource(rows)
    # 0.2 mi around the Pacific Heights subject; Sea Cliff is miles away.
    where = RecordFilter.where(within_circle("the_geom", 37.7946, -122.4215, 322))
    found = asyncio.run(source.query(where, limit=50))
    parcels = {r["parcel_number"] for r in found}
    assert "0595031" in parcels
    assert "1306001" not in parcels
    # Rows without geometry never match a circle.
    assert "2030010" not in parcels


def test_fixture_source_returns_copies(rows):
    source = FixtureRecordSource(rows)
    found = asyncio.run(source.query(RecordFilter(), limit=1))
    found[0]["parcel_number"] = "changed"
    again = asyncio.run(source.query(RecordFilter(), limit=1))
    assert again[0]["parcel_number"] != "changed"


def test_fixture_source_can_simulate_outage(rows):
    from sf_informal_review.errors import SourceUnavailable

    source = FixtureRecordSource(rows)
    source.fail_with(503, "Service Unavailable")
    with pytest.raises(SourceUnavailable) as excinfo:
        asyncio.run(source.query(RecordFilter(), limit=1))
    assert excinfo.value.status == 503
    assert excinfo.value.transient
    source.recover()
    assert asyncio.run(source.query(RecordFilter(), limit=1))
