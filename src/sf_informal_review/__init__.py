"""Evidence builder for San Francisco Prop 8 informal review requests.

Resolves a subject property from the Assessor-Recorder roll, gathers nearby
recent sales as comparables, scores the case, and assembles a filing packet.
"""

from .case import Case, CaseRegistry, CaseStateStore
from .models import Argument, Comparable, Property, PropertyType, StrengthTier, Tone
from .normalize import parse_address
from .scoring import case_strength

__all__ = [
    "Argument",
    "Case",
    "CaseRegistry",
    "CaseStateStore",
    "Comparable",
    "Property",
    "PropertyType",
    "StrengthTier",
    "Tone",
    "case_strength",
    "parse_address",
]
