"""Filing packet assembly.

The packet is one markdown document: the subject summary table, the
comparable table, the drafted narrative verbatim, then the checklist and
submission routes taken from the filing policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

from .case import CaseView
from .errors import SequencingViolation
from .formatting import format_area, format_currency, format_number, format_percent
from .models import Argument, Comparable, Property, StrengthTier
from .policy import DEFAULT_POLICY, FilingPolicy
from .scoring import case_strength, gap_percent


@dataclass(frozen=True)
class Packet:
    property: Property
    comparables: Sequence[Comparable]
    argument: Argument
    strength: StrengthTier
    average_price: float
    window_open: bool
    markdown: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "property": self.property.to_dict(),
            "comparables": [c.to_dict() for c in self.comparables],
            "argument": self.argument.to_dict(),
            "strength": str(self.strength),
            "average_price": self.average_price,
            "window_open": self.window_open,
            "markdown": self.markdown,
        }


def _table_cell(value: Any) -> str:
    return str(value).replace("|", "\\|").replace("\n", " ")


def comparable_row(comp: Comparable) -> str:
    cells = [
        comp.address,
        comp.sale_date.isoformat(),
        format_currency(comp.sale_price),
        format_area(comp.area),
        f"{format_number(comp.bedroom_count)}/{format_number(comp.bathroom_count)}",
        f"{format_number(comp.distance)} mi",
        comp.notes or "-",
    ]
    return "| " + " | ".join(_table_cell(c) for c in cells) + " |"


def _submission_routes(policy: FilingPolicy) -> List[str]:
    lines = [
        "\n### Online (Preferred)",
        f"{policy.jurisdiction} Assessor-Recorder Community Portal: {policy.portal_url}",
        "\n### By Mail",
        *policy.mail_lines,
        "\n### By Fax",
        policy.fax,
        "\n### By Email",
        policy.email,
    ]
    return lines


class PacketBuilder:
    def __init__(
        self,
        policy: FilingPolicy = DEFAULT_POLICY,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.policy = policy
        self.clock = clock

    def check_ready(self, view: CaseView) -> None:
        """Raise SequencingViolation naming the first missing prerequisite."""

        if view.property is None:
            raise SequencingViolation(
                "No property on file. Resolve or enter the property first.",
                missing="property",
            )
        if not view.included:
            raise SequencingViolation(
                "No comparable sales selected. Find or add comparables first.",
                missing="comparables",
            )
        if view.argument is None:
            raise SequencingViolation(
                "No value argument drafted. Draft the argument first.",
                missing="argument",
            )

    def build(self, view: CaseView) -> Packet:
        self.check_ready(view)
        prop = view.property
        argument = view.argument
        assert prop is not None and argument is not None

        included = view.included
        average = float(round(sum(c.sale_price for c in included) / len(included)))
        # Strength of the filed request, not of the working estimate.
        strength = case_strength(prop.assessed_value, argument.declared_value)
        window_open = self.policy.is_window_open(self.clock())

        return Packet(
            property=prop,
            comparables=tuple(included),
            argument=argument,
            strength=strength,
            average_price=average,
            window_open=window_open,
            markdown=self.render(prop, included, argument, strength, average, window_open),
        )

    def render(
        self,
        prop: Property,
        included: Sequence[Comparable],
        argument: Argument,
        strength: StrengthTier,
        average: float,
        window_open: bool,
    ) -> str:
        policy = self.policy
        gap = prop.assessed_value - argument.declared_value
        pct = format_percent(gap_percent(prop.assessed_value, argument.declared_value))

        summary: List[Optional[str]] = [
            f"# {policy.program} - Filing Packet",
            "\n## Subject Property",
            "| Field | Value |",
            "|-------|-------|",
            f"| **Address** | {prop.address} |",
            f"| **APN** | {prop.parcel_id} |",
            f"| **Property Type** | {prop.property_type} |",
            f"| **Neighborhood** | {prop.zone} |" if prop.zone else None,
            f"| **Current Assessed Value** | {format_currency(prop.assessed_value)} |",
            f"| **Declared Market Value** | {format_currency(argument.declared_value)} |",
            f"| **Reduction Requested** | {format_currency(gap)} ({pct}%) |",
            f"| **Case Strength** | {str(strength).upper()} |",
            f"| **Size** | {format_area(prop.area)} sqft |" if prop.area else None,
            (
                f"| **Beds/Baths** | {format_number(prop.bedroom_count)}/{format_number(prop.bathroom_count)} |"
                if prop.bedroom_count
                else None
            ),
        ]
        comps = [
            "\n## Comparable Sales Evidence",
            "| Address | Sale Date | Price | Sqft | Bed/Bath | Distance | Notes |",
            "|---------|-----------|-------|------|----------|----------|-------|",
            *(comparable_row(c) for c in included),
            f"\n**Average Comparable Sale Price:** {format_currency(average)}",
        ]
        status = f"OPEN ({policy.window_label()})" if window_open else "CLOSED"
        guidance = [
            "\n## Value Argument",
            argument.narrative,
            "\n## Submission Checklist",
            *(f"- [ ] {item}" for item in policy.checklist),
            "\n## How to Submit",
            f"**Filing Window:** {status}",
            *_submission_routes(policy),
            "\n## Important Reminders",
            *(f"- {item}" for item in policy.rules),
            *(f"- {item}" for item in policy.after_filing),
            "\n---",
            f"*{policy.disclaimer}*",
        ]
        return "\n".join(line for line in summary + comps + guidance if line)


def render_submission_guide(policy: FilingPolicy = DEFAULT_POLICY, today: Optional[date] = None) -> str:
    window_open = policy.is_window_open(today)
    lines = [
        f"# {policy.jurisdiction} {policy.program} - Submission Guide\n",
        "## Filing Window",
        f"**Status:** {'OPEN' if window_open else 'CLOSED'}",
        f"**Dates:** {policy.window_label()}",
        f"**Lien Date:** {policy.lien_date} (market value measured as of this date)\n",
        "## Submission Options",
        *_submission_routes(policy),
        "\n## Important Rules",
        *(f"- {rule}" for rule in policy.rules),
        "\n## After Filing",
        *(f"- {step}" for step in policy.after_filing),
        "\n## Disclaimer",
        policy.disclaimer,
    ]
    return "\n".join(lines)
