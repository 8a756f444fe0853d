"""Value-argument narratives in three fixed tones.

All tones share one assembly step (declared value, gap, comparable lines) and
differ only in how the sections are worded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from .errors import InvalidProperty, SequencingViolation
from .formatting import format_area, format_currency, format_number, format_percent
from .models import Argument, Comparable, Property, Tone
from .scoring import gap_percent


@dataclass(frozen=True)
class NarrativeContext:
    property: Property
    included: Sequence[Comparable]
    declared_value: float
    mean_price: float

    @property
    def gap(self) -> float:
        return self.property.assessed_value - self.declared_value

    @property
    def gap_percent(self) -> str:
        return format_percent(gap_percent(self.property.assessed_value, self.declared_value))

    def comparable_lines(self) -> str:
        return "\n".join(
            comparable_line(i, c) for i, c in enumerate(self.included, start=1)
        )


def comparable_line(position: int, comp: Comparable) -> str:
    line = (
        f"{position}. **{comp.address}** - Sold {comp.sale_date.isoformat()} for "
        f"{format_currency(comp.sale_price)} ({format_area(comp.area)} sqft, "
        f"{format_number(comp.bedroom_count)}bd/{format_number(comp.bathroom_count)}ba, "
        f"{format_number(comp.distance)} mi)"
    )
    if comp.notes:
        line += f" - {comp.notes}"
    return line


def default_declared_value(included: Sequence[Comparable]) -> float:
    """Rounded mean sale price of the included comparables."""

    if not included:
        raise SequencingViolation(
            "No comparable sales selected. Add comparables first.",
            missing="comparables",
        )
    return float(round(sum(c.sale_price for c in included) / len(included)))


def _render_formal(ctx: NarrativeContext) -> str:
    p = ctx.property
    return "\n".join(
        [
            "# Informal Review - Value Argument\n",
            "## Subject Property",
            f"- **Address:** {p.address}",
            f"- **APN:** {p.parcel_id}",
            f"- **Property Type:** {p.property_type}",
            f"- **Current Assessed Value:** {format_currency(p.assessed_value)}",
            f"- **Owner's Opinion of Market Value (as of Jan 1):** {format_currency(ctx.declared_value)}\n",
            "## Basis for Requested Reduction",
            f"The current assessed value of {format_currency(p.assessed_value)} exceeds the fair "
            "market value of the subject property as of the January 1 lien date. Based on "
            f"{len(ctx.included)} comparable neighborhood sales, the estimated market value is "
            f"{format_currency(ctx.declared_value)}, representing a {ctx.gap_percent}% decline "
            "from the assessed value.\n",
            "## Comparable Sales Evidence",
            ctx.comparable_lines(),
            "\n## Conclusion",
            f"The comparable sales data supports a market value of {format_currency(ctx.declared_value)} "
            "as of January 1. I respectfully request that the assessed value be reduced to "
            f"{format_currency(ctx.declared_value)} to reflect the current market conditions.",
        ]
    )


def _render_neutral(ctx: NarrativeContext) -> str:
    p = ctx.property
    return "\n".join(
        [
            f"# Value Argument for {p.address}\n",
            f"My property at {p.address} (APN: {p.parcel_id}) is currently assessed at "
            f"{format_currency(p.assessed_value)}. Based on recent comparable sales in the "
            f"neighborhood, I believe the market value as of January 1 is "
            f"{format_currency(ctx.declared_value)}, which is {ctx.gap_percent}% below the "
            f"assessed value (a difference of {format_currency(ctx.gap)}).\n",
            "## Comparable Sales",
            ctx.comparable_lines(),
            f"\nThe average sale price of these comparable properties is "
            f"{format_currency(round(ctx.mean_price))}. I am requesting that my assessed value be "
            f"reduced to {format_currency(ctx.declared_value)} to reflect current market conditions.",
        ]
    )


def _render_concise(ctx: NarrativeContext) -> str:
    p = ctx.property
    return "\n".join(
        [
            f"**Property:** {p.address} (APN: {p.parcel_id})",
            f"**Assessed:** {format_currency(p.assessed_value)} | "
            f"**Market Value:** {format_currency(ctx.declared_value)} | "
            f"**Gap:** {format_currency(ctx.gap)} ({ctx.gap_percent}%)\n",
            "**Comps:**",
            ctx.comparable_lines(),
            f"\nBased on these sales, market value is {format_currency(ctx.declared_value)}. "
            f"Requesting reduction to {format_currency(ctx.declared_value)}.",
        ]
    )


_RENDERERS: Dict[Tone, Callable[[NarrativeContext], str]] = {
    Tone.FORMAL: _render_formal,
    Tone.NEUTRAL: _render_neutral,
    Tone.CONCISE: _render_concise,
}


def compose_narrative(
    prop: Property,
    included: Sequence[Comparable],
    tone: Tone | str = Tone.NEUTRAL,
    declared_value: Optional[float] = None,
) -> Argument:
    """Draft the argument for ``prop`` from the included comparables.

    ``included`` keeps insertion order; it is rendered as given.
    """

    tone = Tone(tone)
    comps: List[Comparable] = [c for c in included if c.included]
    mean = default_declared_value(comps)
    if declared_value is None:
        declared = mean
    elif declared_value <= 0:
        raise InvalidProperty("declared value must be positive", field="declared_value")
    else:
        declared = float(declared_value)

    ctx = NarrativeContext(
        property=prop,
        included=comps,
        declared_value=declared,
        mean_price=sum(c.sale_price for c in comps) / len(comps),
    )
    return Argument(narrative=_RENDERERS[tone](ctx), declared_value=declared, tone=tone)
