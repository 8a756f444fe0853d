import asyncio
from datetime import date

import pytest

from sf_informal_review.case import CaseRegistry, CaseStateStore
from sf_informal_review.errors import InvalidComparable, NotFound
from sf_informal_review.models import StrengthTier

from conftest import make_comparable


@pytest.fixture()
def filled(subject):
    store = CaseStateStore()
    store.set_property(subject)
    store.merge_comparables(
        [
            make_comparable("comp-a", 900000),
            make_comparable("comp-b", 1000000),
            make_comparable("comp-c", 1600000),
        ]
    )
    return store


def test_snapshot_derives_aggregates(filled):
    view = filled.snapshot()
    assert view.mean_included_price == pytest.approx(1166666.666, rel=1e-6)
    assert view.reference_value == view.mean_included_price
    assert view.strength is StrengthTier.STRONG


def test_reference_falls_back_to_property_when_nothing_included(subject):
    store = CaseStateStore()
    store.set_property(subject)
    view = store.snapshot()
    assert view.mean_included_price is None
    assert view.reference_value == subject.reference_value
    assert view.strength is StrengthTier.WEAK


def test_no_property_has_no_strength():
    view = CaseStateStore().snapshot()
    assert view.strength is None
    assert view.to_dict()["property"] is None


def test_toggle_is_self_inverse(filled):
    before = filled.snapshot()
    once = filled.toggle_comparable("comp-c")
    assert once.comparable.included is False
    assert once.mean_included_price == 950000
    twice = filled.toggle_comparable("comp-c")
    assert twice.comparable.included is True
    assert twice.mean_included_price == before.mean_included_price
    assert filled.snapshot() == before


def test_remove_unknown_id_leaves_list_unchanged(filled):
    before = filled.snapshot()
    with pytest.raises(NotFound):
        filled.remove_comparable("comp-missing")
    assert filled.snapshot() == before


def test_update_is_a_partial_merge(filled):
    result = filled.update_comparable("comp-a", {"sale_price": "920000", "notes": "Corner lot", "area": None})
    comp = result.comparable
    assert comp.sale_price == 920000
    assert comp.notes == "Corner lot"
    assert comp.address == "COMP-A TEST ST"
    assert comp.sale_date == date(2024, 6, 1)
    assert result.mean_included_price == pytest.approx((920000 + 1000000 + 1600000) / 3)


def test_update_rejects_unknown_fields_without_mutating(filled):
    before = filled.snapshot()
    with pytest.raises(InvalidComparable):
        filled.update_comparable("comp-a", {"sale_price": 1, "colour": "blue"})
    with pytest.raises(InvalidComparable):
        filled.update_comparable("comp-a", {"sale_date": "not a date"})
    assert filled.snapshot() == before


def test_add_requires_address_date_and_price(filled):
    with pytest.raises(InvalidComparable) as excinfo:
        filled.add_comparable({"address": "1 TEST ST"})
    assert excinfo.value.missing_fields == ["sale_date", "sale_price"]
    assert excinfo.value.to_dict()["missing_fields"] == ["sale_date", "sale_price"]
    assert len(filled.case.comparables) == 3


def test_add_generates_manual_id_and_distance(filled):
    result = filled.add_comparable(
        {
            "address": "1700 PACIFIC AV",
            "sale_date": "2024-12-01",
            "sale_price": 1100000,
            "latitude": 37.7950,
            "longitude": -122.4250,
        }
    )
    comp = result.comparable
    assert comp.id.startswith("comp-manual-")
    assert len(comp.id) == len("comp-manual-") + 10
    assert comp.sale_date == date(2024, 12, 1)
    assert 0 < comp.distance < 0.5
    assert filled.case.comparables[-1] == comp


def test_add_rejects_duplicate_id(filled):
    with pytest.raises(InvalidComparable):
        filled.add_comparable(
            {"id": "comp-a", "address": "X ST", "sale_date": "2024-01-01", "sale_price": 1}
        )


def test_merge_is_first_write_wins(filled):
    added, skipped = filled.merge_comparables(
        [make_comparable("comp-a", 1), make_comparable("comp-d", 800000)]
    )
    assert [c.id for c in added] == ["comp-d"]
    assert skipped == 1
    assert filled.case.comparables[0].sale_price == 900000


def test_distance_is_not_recomputed_when_property_changes(filled, subject):
    from dataclasses import replace

    filled.merge_comparables([make_comparable("comp-e", 700000, distance=0.3)])
    filled.set_property(replace(subject, latitude=37.70, longitude=-122.40))
    assert filled.case.comparables[-1].distance == 0.3


def test_registry_keeps_cases_independent(subject):
    registry = CaseRegistry()
    first_id, first = registry.create()
    second_id, second = registry.create()
    first.set_property(subject)
    assert first_id != second_id
    assert registry.get(second_id).snapshot().property is None
    assert len(registry) == 2
    with pytest.raises(NotFound):
        registry.get("nope")


def test_lock_serializes_on_one_event_loop(filled):
    async def scenario():
        async with filled.lock:
            assert filled.lock.locked()
        return filled.lock.locked()

    assert asyncio.run(scenario()) is False
