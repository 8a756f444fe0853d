import asyncio

import pytest

from sf_informal_review.errors import InvalidComparable, InvalidProperty, NotFound, SequencingViolation


def _resolve_pacific(service, store):
    return asyncio.run(service.resolve_property(store, address="1625 Pacific Ave"))


def test_full_pipeline(service, store):
    resolved = _resolve_pacific(service, store)
    assert resolved["status"] == "resolved"
    assert resolved["case"]["property"]["parcel_id"] == "0595023"
    assert "**Property found:** 1625 PACIFIC AV #7" in resolved["text"]

    found = asyncio.run(service.find_comparables(store))
    assert len(found["added"]) == 3
    assert found["case"]["strength"] == "strong"
    assert found["text"].startswith("Found 3 comparable sales within 0.5 miles.")

    drafted = asyncio.run(service.draft_argument(store, tone="formal"))
    assert drafted["argument"]["declared_value"] == 950000
    assert drafted["case"]["argument"]["tone"] == "formal"

    packet = asyncio.run(service.build_packet(store))
    assert drafted["argument"]["narrative"] in packet["markdown"]
    assert packet["strength"] == "strong"
    assert asyncio.run(service.export_packet(store)) == packet["markdown"]


def test_ambiguous_resolution_keeps_existing_property(service, store):
    _resolve_pacific(service, store)
    result = asyncio.run(service.resolve_property(store, address="990 Green St"))
    assert result["status"] == "ambiguous"
    assert "990 GREEN ST #1" in result["text"]
    assert store.case.property.parcel_id == "0595023"


def test_manage_comparable_actions(service, store):
    _resolve_pacific(service, store)
    asyncio.run(service.find_comparables(store))

    toggled = asyncio.run(service.manage_comparable(store, "toggle", {"id": "comp-0596012"}))
    assert toggled["comparable"]["included"] is False
    assert toggled["case"]["mean_included_price"] == 925000
    assert "now excluded" in toggled["text"]

    updated = asyncio.run(
        service.manage_comparable(store, "update", {"id": "comp-0595031", "notes": "Same building"})
    )
    assert updated["comparable"]["notes"] == "Same building"

    added = asyncio.run(
        service.manage_comparable(
            store,
            "add",
            {"address": "1700 PACIFIC AV", "sale_date": "2024-11-02", "sale_price": 980000},
        )
    )
    assert added["comparable"]["id"].startswith("comp-manual-")

    removed = asyncio.run(service.manage_comparable(store, "remove", {"id": "comp-0570044"}))
    assert removed["comparable"]["id"] == "comp-0570044"

    listed = asyncio.run(service.manage_comparable(store, "list"))
    assert len(listed["case"]["comparables"]) == 3
    assert listed["case"]["included_count"] == 2

    with pytest.raises(NotFound):
        asyncio.run(service.manage_comparable(store, "toggle", {"id": "comp-missing"}))
    with pytest.raises(InvalidComparable):
        asyncio.run(service.manage_comparable(store, "toggle", {}))
    with pytest.raises(InvalidComparable):
        asyncio.run(service.manage_comparable(store, "explode", {}))


def test_manage_property_validates_payload(service, store):
    saved = asyncio.run(
        service.manage_property(
            store,
            {
                "address": "55 LOCKSLEY AV",
                "parcel_id": "2030010",
                "property_type": "townhouse",
                "assessed_value": 700000,
            },
        )
    )
    assert saved["property"]["reference_value"] == 700000
    assert "No coordinates on file" in saved["text"]

    with pytest.raises(InvalidProperty):
        asyncio.run(service.manage_property(store, {"address": "X", "parcel_id": "1", "assessed_value": 0}))
    with pytest.raises(InvalidProperty):
        asyncio.run(
            service.manage_property(
                store, {"address": "X", "parcel_id": "1", "assessed_value": 1, "property_type": "castle"}
            )
        )
    assert store.case.property.parcel_id == "2030010"


def test_draft_before_prerequisites(service, store):
    with pytest.raises(SequencingViolation) as excinfo:
        asyncio.run(service.draft_argument(store))
    assert excinfo.value.missing == "property"

    _resolve_pacific(service, store)
    with pytest.raises(SequencingViolation) as excinfo:
        asyncio.run(service.draft_argument(store))
    assert excinfo.value.missing == "comparables"
    with pytest.raises(InvalidProperty):
        asyncio.run(service.draft_argument(store, tone="angry"))


def test_packet_before_argument(service, store):
    _resolve_pacific(service, store)
    asyncio.run(service.find_comparables(store))
    with pytest.raises(SequencingViolation) as excinfo:
        asyncio.run(service.build_packet(store))
    assert excinfo.value.missing == "argument"


def test_empty_search_suggests_manual_entry(service, store):
    asyncio.run(service.resolve_property(store, block="1306", lot="001"))
    found = asyncio.run(service.find_comparables(store))
    assert found["added"] == []
    assert "Add comparables manually" in found["text"]


def test_eligibility_and_submission_info(service):
    result = service.check_eligibility("sfh", 1000000, 900000)
    assert result["eligible"] and result["window_open"]
    assert result["strength"] == "medium"
    assert "**Eligible:** Yes" in result["text"]
    with pytest.raises(InvalidProperty):
        service.check_eligibility("sfh", 0, 1)

    info = service.submission_info()
    assert info["window_open"] is True
    assert info["fax"] == "(415) 554-7151"
    assert "## Filing Window" in info["text"]
