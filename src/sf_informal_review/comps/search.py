from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..case import CaseStateStore, CaseView
from ..config import AppConfig
from ..errors import MissingCoordinates, NoActiveProperty
from ..geo import haversine_miles, miles_to_meters
from ..models import Comparable, Property
from ..normalize import address_tokens, parse_address
from ..records.base import RawRow, RecordSource
from ..records.convert import (
    assessed_total,
    comparable_id,
    geojson_point,
    parse_sale_date,
    to_float,
)
from ..records.filters import (
    OrderBy,
    RecordFilter,
    equals,
    greater_than,
    in_list,
    not_equals,
    not_null,
    within_circle,
)

logger = logging.getLogger("sfir.search")

RADIUS_CHECKPOINTS = (0.75, 1.0, 1.5, 2.0)
MAX_RADIUS_MILES = 2.0
SALE_DATE_FIELD = "current_sales_date"
GEOMETRY_FIELD = "the_geom"


def radius_ladder(requested: float) -> List[float]:
    """Radii to try, ascending: the request, then every larger checkpoint."""

    if requested <= 0:
        raise ValueError("radius must be positive")
    start = min(float(requested), MAX_RADIUS_MILES)
    return [start] + [r for r in RADIUS_CHECKPOINTS if r > start]


def cutoff_date(today: date, months_back: int) -> date:
    """``today`` moved back by whole calendar months, clamping the day."""

    if months_back < 0:
        raise ValueError("months_back cannot be negative")
    month_index = today.year * 12 + (today.month - 1) - int(months_back)
    year, month = divmod(month_index, 12)
    month += 1
    day = min(today.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


@dataclass(frozen=True)
class SearchOutcome:
    added: List[Comparable]
    requested_radius: float
    radius_used: float
    months_back: int
    cutoff: date
    rows_found: int
    skipped_duplicates: int
    discarded: int
    view: CaseView
    radii_tried: List[float] = field(default_factory=list)

    @property
    def expanded(self) -> bool:
        return self.radius_used > self.requested_radius

    @property
    def empty(self) -> bool:
        return self.rows_found == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added": [c.to_dict() for c in self.added],
            "requested_radius": self.requested_radius,
            "radius_used": self.radius_used,
            "expanded": self.expanded,
            "radii_tried": list(self.radii_tried),
            "months_back": self.months_back,
            "cutoff": self.cutoff.isoformat(),
            "rows_found": self.rows_found,
            "skipped_duplicates": self.skipped_duplicates,
            "discarded": self.discarded,
            "case": self.view.to_dict(),
        }


class ComparableSearchEngine:
    """Geo-radius search for recent residential sales near the subject.

    Tries successively larger radii and stops at the first one that returns
    any rows, so sparse areas still produce evidence without the caller
    guessing a workable radius.
    """

    def __init__(
        self,
        source: RecordSource,
        *,
        roll_year: str,
        residential_use_codes: Iterable[str] = ("SRES", "MRES"),
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.source = source
        self.roll_year = str(roll_year)
        self.residential_use_codes = tuple(residential_use_codes)
        self.clock = clock

    @classmethod
    def from_config(cls, source: RecordSource, config: AppConfig, **kwargs: Any) -> "ComparableSearchEngine":
        return cls(
            source,
            roll_year=config.roll_year,
            residential_use_codes=config.residential_use_codes,
            **kwargs,
        )

    def build_filter(self, subject: Property, radius_miles: float, cutoff: date) -> RecordFilter:
        lat, lng = subject.coordinates or (0.0, 0.0)
        return RecordFilter.where(
            within_circle(GEOMETRY_FIELD, lat, lng, miles_to_meters(radius_miles)),
            in_list("use_code", self.residential_use_codes),
            equals("closed_roll_year", self.roll_year),
            not_null(SALE_DATE_FIELD),
            greater_than(SALE_DATE_FIELD, cutoff.isoformat()),
            not_equals("parcel_number", subject.parcel_id),
        )

    def to_comparable(self, row: RawRow, subject: Property) -> Optional[Comparable]:
        """Comparable for one roll row, or None when the row cannot serve as one."""

        # Post-sale reassessment stands in for the sale price.
        price = float(round(assessed_total(row)))
        if price <= 0:
            return None
        sale_date = parse_sale_date(row.get(SALE_DATE_FIELD))
        if sale_date is None:
            return None

        parcel = str(row.get("parcel_number") or "").strip()
        if parcel and parcel == subject.parcel_id:
            return None
        if not parcel and address_tokens(row.get("property_location")) == address_tokens(subject.address):
            return None

        distance = 0.0
        point = geojson_point(row.get(GEOMETRY_FIELD))
        if point is not None and subject.coordinates is not None:
            distance = haversine_miles(
                subject.coordinates[0], subject.coordinates[1], point[0], point[1]
            )

        return Comparable(
            id=comparable_id(row),
            address=parse_address(row.get("property_location")),
            sale_date=sale_date,
            sale_price=price,
            area=to_float(row.get("property_area")),
            bedroom_count=to_float(row.get("number_of_bedrooms")),
            bathroom_count=to_float(row.get("number_of_bathrooms")),
            distance=round(distance, 2),
            included=True,
            notes=str(row.get("property_class_code_definition") or ""),
        )

    async def search(
        self,
        store: CaseStateStore,
        *,
        radius: float = 0.5,
        months_back: int = 24,
        limit: int = 15,
    ) -> SearchOutcome:
        """Find and merge comparables into ``store``.

        The caller holds ``store.lock`` for the duration when requests may
        run concurrently.
        """

        subject = store.case.property
        if subject is None:
            raise NoActiveProperty(
                "No subject property set. Use resolve-property or manage-property first."
            )
        if subject.coordinates is None:
            raise MissingCoordinates(
                "Subject property has no coordinates. Use resolve-property to load it from the assessor roll.",
                parcel_id=subject.parcel_id,
            )

        cutoff = cutoff_date(self.clock(), months_back)
        ladder = radius_ladder(radius)
        order = OrderBy(SALE_DATE_FIELD, descending=True)

        rows: List[RawRow] = []
        tried: List[float] = []
        used = ladder[0]
        for r in ladder:
            tried.append(r)
            used = r
            rows = await self.source.query(
                self.build_filter(subject, r, cutoff), limit=limit, order=order
            )
            logger.debug("radius %.2f mi returned %d row(s)", r, len(rows))
            if rows:
                break

        if not rows:
            logger.info("no comparable sales within %.2f mi", used)
            return SearchOutcome(
                added=[],
                requested_radius=float(radius),
                radius_used=used,
                months_back=months_back,
                cutoff=cutoff,
                rows_found=0,
                skipped_duplicates=0,
                discarded=0,
                view=store.snapshot(),
                radii_tried=tried,
            )

        candidates = [self.to_comparable(row, subject) for row in rows]
        usable = [c for c in candidates if c is not None]
        added, skipped = store.merge_comparables(usable)
        logger.info(
            "merged comparables",
            extra={
                "radius_used": used,
                "rows": len(rows),
                "added": len(added),
                "skipped": skipped,
            },
        )
        return SearchOutcome(
            added=added,
            requested_radius=float(radius),
            radius_used=used,
            months_back=months_back,
            cutoff=cutoff,
            rows_found=len(rows),
            skipped_duplicates=skipped,
            discarded=len(candidates) - len(usable),
            view=store.snapshot(),
            radii_tried=tried,
        )
