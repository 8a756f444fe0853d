from datetime import date

import pytest

from sf_informal_review.case import CaseStateStore
from sf_informal_review.errors import SequencingViolation
from sf_informal_review.narrative import compose_narrative
from sf_informal_review.packet import PacketBuilder, render_submission_guide
from sf_informal_review.policy import FilingPolicy

from conftest import TODAY, make_comparable


def _builder(**kwargs):
    return PacketBuilder(clock=lambda: TODAY, **kwargs)


def test_packet_requires_property_comparables_and_argument(subject):
    store = CaseStateStore()
    builder = _builder()
    with pytest.raises(SequencingViolation) as excinfo:
        builder.build(store.snapshot())
    assert excinfo.value.missing == "property"

    store.set_property(subject)
    store.merge_comparables([make_comparable("comp-a", 900000, included=False)])
    with pytest.raises(SequencingViolation) as excinfo:
        builder.build(store.snapshot())
    assert excinfo.value.missing == "comparables"

    store.toggle_comparable("comp-a")
    with pytest.raises(SequencingViolation) as excinfo:
        builder.build(store.snapshot())
    assert excinfo.value.missing == "argument"
    assert excinfo.value.to_dict()["error"] == "sequencing_violation"


def test_packet_contains_included_comparables_and_narrative(subject):
    store = CaseStateStore()
    store.set_property(subject)
    store.merge_comparables(
        [
            make_comparable("comp-a", 900000, address="2001 POLK ST #405"),
            make_comparable("comp-b", 1000000, address="1550 JACKSON ST"),
            make_comparable("comp-x", 3000000, address="SKIPPED ST", included=False),
        ]
    )
    argument = compose_narrative(subject, store.included_comparables())
    store.set_argument(argument)

    packet = _builder().build(store.snapshot())
    md = packet.markdown

    assert argument.narrative in md
    assert "| 2001 POLK ST #405 | 2024-06-01 | $900,000 |" in md
    assert "| 1550 JACKSON ST |" in md
    assert "SKIPPED ST" not in md
    assert "**Average Comparable Sale Price:** $950,000" in md
    assert "| **Reduction Requested** | $675,000 (41.5%) |" in md
    assert "| **Case Strength** | STRONG |" in md
    assert "| **Neighborhood** | Pacific Heights |" in md
    assert "**Filing Window:** OPEN (Jan 2 – Mar 31)" in md
    assert "- [ ] Keep a copy of everything you submit" in md
    assert "assessor@sfgov.org" in md
    assert md.rstrip().endswith("*")
    assert packet.window_open
    assert [c.id for c in packet.comparables] == ["comp-a", "comp-b"]


def test_packet_window_closed_outside_season(subject):
    store = CaseStateStore()
    store.set_property(subject)
    store.merge_comparables([make_comparable("comp-a", 900000)])
    store.set_argument(compose_narrative(subject, store.included_comparables()))
    packet = PacketBuilder(clock=lambda: date(2025, 7, 1)).build(store.snapshot())
    assert "**Filing Window:** CLOSED" in packet.markdown
    assert packet.window_open is False


def test_table_cells_escape_pipes(subject):
    store = CaseStateStore()
    store.set_property(subject)
    store.merge_comparables([make_comparable("comp-a", 900000, notes="view | garage")])
    store.set_argument(compose_narrative(subject, store.included_comparables()))
    md = _builder().build(store.snapshot()).markdown
    assert "view \\| garage" in md


def test_submission_guide_follows_policy():
    policy = FilingPolicy(fax="(000) 000-0000", window_end=(4, 15))
    guide = render_submission_guide(policy, date(2025, 4, 10))
    assert "**Status:** OPEN" in guide
    assert "Jan 2 – Apr 15" in guide
    assert "(000) 000-0000" in guide
    assert "## After Filing" in guide
    assert "**Status:** CLOSED" in render_submission_guide(policy, date(2025, 4, 16))
