from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class ResolvePropertyBody(BaseModel):
    address: Optional[str] = None
    block: Optional[str] = None
    lot: Optional[str] = None
    reference_value: Optional[float] = Field(default=None, gt=0)


class PropertyBody(BaseModel):
    address: str = Field(min_length=1)
    parcel_id: str = Field(min_length=1)
    property_type: str = "sfh"
    assessed_value: float = Field(gt=0)
    reference_value: Optional[float] = Field(default=None, gt=0)
    area: Optional[float] = Field(default=None, gt=0)
    bedroom_count: Optional[float] = Field(default=None, ge=0)
    bathroom_count: Optional[float] = Field(default=None, ge=0)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    zone: Optional[str] = None
    year_built: Optional[int] = None


class FindComparablesBody(BaseModel):
    radius: float = Field(default=0.5, gt=0)
    months_back: int = Field(default=24, ge=0)
    limit: int = Field(default=15, gt=0, le=100)


class ComparableBody(BaseModel):
    action: Literal["add", "update", "remove", "toggle", "list"]
    # Fields of the comparable; ``id`` selects it for update/remove/toggle.
    comparable: Dict[str, Any] = Field(default_factory=dict)


class ArgumentBody(BaseModel):
    tone: Literal["formal", "neutral", "concise"] = "neutral"
    declared_value: Optional[float] = Field(default=None, gt=0)


class EligibilityBody(BaseModel):
    property_type: str
    assessed_value: float = Field(gt=0)
    reference_value: float = Field(gt=0)
