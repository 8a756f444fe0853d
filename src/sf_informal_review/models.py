from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from enum import StrEnum
from typing import Any, Dict, Optional, Tuple

from .errors import InvalidComparable, InvalidProperty


class PropertyType(StrEnum):
    """Residential categories eligible for informal review."""

    SINGLE_FAMILY = "sfh"
    CONDO = "condo"
    TOWNHOUSE = "townhouse"
    LIVE_WORK = "live-work"
    CO_OP = "co-op"


class Tone(StrEnum):
    FORMAL = "formal"
    NEUTRAL = "neutral"
    CONCISE = "concise"


class StrengthTier(StrEnum):
    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"


@dataclass(frozen=True)
class Property:
    address: str
    parcel_id: str
    property_type: PropertyType
    assessed_value: float
    # Owner's estimate of market value; defaults to the assessed value.
    reference_value: float

    area: Optional[float] = None
    bedroom_count: Optional[float] = None
    bathroom_count: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    zone: Optional[str] = None
    year_built: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.assessed_value or self.assessed_value <= 0:
            raise InvalidProperty(
                "assessed value must be positive", field="assessed_value"
            )
        if not self.reference_value or self.reference_value <= 0:
            raise InvalidProperty(
                "reference value must be positive", field="reference_value"
            )
        if self.area is not None and self.area <= 0:
            raise InvalidProperty("area must be positive when given", field="area")
        for name in ("bedroom_count", "bathroom_count"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvalidProperty(f"{name} cannot be negative", field=name)

    @property
    def coordinates(self) -> Optional[Tuple[float, float]]:
        if self.latitude is None or self.longitude is None:
            return None
        return float(self.latitude), float(self.longitude)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["property_type"] = str(self.property_type)
        return payload


@dataclass(frozen=True)
class Comparable:
    id: str
    address: str
    sale_date: date
    sale_price: float
    area: float = 0.0
    bedroom_count: float = 0.0
    bathroom_count: float = 0.0
    # Miles from the subject at insertion time, two decimals.
    distance: float = 0.0
    included: bool = True
    notes: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise InvalidComparable("comparable id is required", missing_fields=["id"])
        if not self.address:
            raise InvalidComparable("comparable address is required", missing_fields=["address"])
        if self.sale_price is None or self.sale_price <= 0:
            raise InvalidComparable("sale price must be positive", field="sale_price")
        if self.distance < 0:
            raise InvalidComparable("distance cannot be negative", field="distance")

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["sale_date"] = self.sale_date.isoformat()
        return payload


@dataclass(frozen=True)
class Argument:
    narrative: str
    declared_value: float
    tone: Tone

    def to_dict(self) -> Dict[str, Any]:
        return {
            "narrative": self.narrative,
            "declared_value": self.declared_value,
            "tone": str(self.tone),
        }
