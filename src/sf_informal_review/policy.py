"""Jurisdiction rules for San Francisco informal (Prop 8) review.

These are fixed business constants, injected wherever they are needed so a
different calendar or office can be swapped in without touching the case
logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, FrozenSet, Optional, Tuple

from .formatting import format_percent
from .models import PropertyType, StrengthTier
from .normalize import DEFAULT_REGION_TOKENS
from .scoring import case_strength, gap_percent

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass(frozen=True)
class FilingPolicy:
    jurisdiction: str = "San Francisco"
    program: str = "Prop 8 Informal Review"
    eligible_types: FrozenSet[PropertyType] = frozenset(PropertyType)
    # (month, day), inclusive on both ends.
    window_start: Tuple[int, int] = (1, 2)
    window_end: Tuple[int, int] = (3, 31)
    lien_date: str = "January 1"
    region_tokens: Tuple[str, ...] = tuple(DEFAULT_REGION_TOKENS)

    portal_url: str = "https://sfassessor.org/community-portal"
    mail_lines: Tuple[str, ...] = (
        "Office of the Assessor-Recorder, City Hall, Room 190",
        "1 Dr. Carlton B. Goodlett Place, San Francisco, CA 94102",
    )
    fax: str = "(415) 554-7151"
    email: str = "assessor@sfgov.org"

    rules: Tuple[str, ...] = (
        "Only the property **owner** may file (no third-party filings)",
        "Comparable sales should be as close to January 1 as possible",
        "Sales after March 31 will **not** be considered",
        "Keep a copy of everything you submit",
    )
    after_filing: Tuple[str, ...] = (
        "Results are mailed in **July** via Notice of Assessed Value",
        "If denied, you may file a formal Assessment Appeal with the Assessment Appeals Board (AAB)",
        "AAB filing has its own deadline, stated in the Notice",
    )
    checklist: Tuple[str, ...] = (
        "Review all property details above for accuracy",
        "Verify comparable sales are appropriate",
        "Review value argument narrative",
        "Submit via one of the methods below",
        "Keep a copy of everything you submit",
    )
    disclaimer: str = (
        "This packet provides informational and document-preparation support only, "
        "not legal or tax advice. No guarantee of assessment reduction is made or implied. "
        "The property owner is responsible for reviewing and submitting all materials."
    )

    def is_window_open(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self.window_start <= (today.month, today.day) <= self.window_end

    def window_label(self) -> str:
        (sm, sd), (em, ed) = self.window_start, self.window_end
        return f"{_MONTHS[sm - 1]} {sd} – {_MONTHS[em - 1]} {ed}"

    def is_eligible_type(self, property_type: PropertyType | str) -> bool:
        try:
            return PropertyType(property_type) in self.eligible_types
        except ValueError:
            return False


DEFAULT_POLICY = FilingPolicy()


@dataclass(frozen=True)
class EligibilityResult:
    property_type: str
    eligible: bool
    window_open: bool
    window_label: str
    assessed_value: float
    reference_value: float
    gap: float
    gap_percent: float
    strength: StrengthTier
    guidance: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "property_type": self.property_type,
            "eligible": self.eligible,
            "window_open": self.window_open,
            "window_label": self.window_label,
            "assessed_value": self.assessed_value,
            "reference_value": self.reference_value,
            "gap": self.gap,
            "gap_percent": float(format_percent(self.gap_percent)),
            "strength": str(self.strength),
            "guidance": self.guidance,
        }


def check_eligibility(
    property_type: PropertyType | str,
    assessed_value: float,
    reference_value: float,
    *,
    policy: FilingPolicy = DEFAULT_POLICY,
    today: Optional[date] = None,
) -> EligibilityResult:
    eligible = policy.is_eligible_type(property_type)
    window_open = policy.is_window_open(today)
    strength = case_strength(assessed_value, reference_value)

    if not eligible:
        allowed = ", ".join(sorted(str(t) for t in policy.eligible_types))
        guidance = (
            f"This property type is not eligible for {policy.jurisdiction} informal review. "
            f"Eligible types: {allowed}."
        )
    elif not window_open:
        guidance = (
            "The filing window is currently closed. Informal review requests are "
            f"accepted {policy.window_label()}."
        )
    elif reference_value >= assessed_value:
        guidance = (
            "Your estimated market value is at or above the assessed value. A reduction "
            "requires market value to be **below** the factored base year value."
        )
    else:
        guidance = (
            "Your property appears eligible. Next step: set up your property details "
            "and start gathering comparable sales."
        )

    return EligibilityResult(
        property_type=str(property_type),
        eligible=eligible,
        window_open=window_open,
        window_label=policy.window_label(),
        assessed_value=float(assessed_value),
        reference_value=float(reference_value),
        gap=float(assessed_value - reference_value),
        gap_percent=gap_percent(assessed_value, reference_value),
        strength=strength,
        guidance=guidance,
    )
