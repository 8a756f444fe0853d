"""Conversion of raw roll rows into case entities.

Numerics arrive as text; anything unparseable becomes zero rather than an
error, matching how the roll leaves fields blank.
"""

from __future__ import annotations

import hashlib
import math
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from ..models import Property, PropertyType
from ..normalize import parse_address
from .base import RawRow


def to_float(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    try:
        number = float(str(value).strip().replace(",", ""))
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _positive_or_none(value: Any) -> Optional[float]:
    number = to_float(value)
    return number if number > 0 else None


def geojson_point(value: Any) -> Optional[Tuple[float, float]]:
    """(lat, lng) from a GeoJSON point; the roll stores [lng, lat]."""

    if not isinstance(value, dict):
        return None
    coords = value.get("coordinates")
    if not isinstance(coords, (list, tuple)) or len(coords) < 2:
        return None
    try:
        lat, lng = float(coords[1]), float(coords[0])
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    return lat, lng


def assessed_total(row: RawRow) -> float:
    return to_float(row.get("assessed_land_value")) + to_float(
        row.get("assessed_improvement_value")
    )


def parse_sale_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text.split("T")[0])
    except ValueError:
        return None


def map_property_type(class_definition: Optional[str]) -> PropertyType:
    lower = (class_definition or "").lower()
    if "condominium" in lower and "live/work" in lower:
        return PropertyType.LIVE_WORK
    if "condominium" in lower:
        return PropertyType.CONDO
    if "town house" in lower or "townhouse" in lower:
        return PropertyType.TOWNHOUSE
    if "coop" in lower or "co-op" in lower or "cooperative" in lower:
        return PropertyType.CO_OP
    if "flat" in lower or "duplex" in lower:
        return PropertyType.CONDO
    # Dwelling, PUD and anything unrecognized.
    return PropertyType.SINGLE_FAMILY


def _year(value: Any) -> Optional[int]:
    number = int(to_float(value))
    return number if number > 0 else None


def row_to_property(row: RawRow, *, reference_value: Optional[float] = None) -> Property:
    assessed = float(round(assessed_total(row)))
    point = geojson_point(row.get("the_geom"))
    zone = (row.get("assessor_neighborhood") or "").strip() or None
    return Property(
        address=parse_address(row.get("property_location")),
        parcel_id=str(row.get("parcel_number") or ""),
        property_type=map_property_type(row.get("property_class_code_definition")),
        assessed_value=assessed,
        reference_value=reference_value if reference_value is not None else assessed,
        area=_positive_or_none(row.get("property_area")),
        bedroom_count=_positive_or_none(row.get("number_of_bedrooms")),
        bathroom_count=_positive_or_none(row.get("number_of_bathrooms")),
        latitude=point[0] if point else None,
        longitude=point[1] if point else None,
        zone=zone,
        year_built=_year(row.get("year_property_built")),
    )


@dataclass(frozen=True)
class CandidateSummary:
    """One row of a disambiguation list."""

    address: str
    parcel_id: str
    property_type: PropertyType
    assessed_value: float
    zone: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["property_type"] = str(self.property_type)
        return payload


def row_to_candidate(row: RawRow) -> CandidateSummary:
    return CandidateSummary(
        address=parse_address(row.get("property_location")),
        parcel_id=str(row.get("parcel_number") or ""),
        property_type=map_property_type(row.get("property_class_code_definition")),
        assessed_value=float(round(assessed_total(row))),
        zone=(row.get("assessor_neighborhood") or "").strip() or None,
    )


def comparable_id(row: RawRow) -> str:
    parcel = str(row.get("parcel_number") or "").strip()
    if parcel:
        return f"comp-{parcel}"
    seed = parse_address(row.get("property_location")).upper()
    digest = hashlib.sha256(seed.encode("utf-8")).hexdigest()
    return f"comp-{digest[:12]}"
