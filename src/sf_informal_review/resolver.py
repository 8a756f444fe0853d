from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Dict, Iterable, List, Optional

from .config import AppConfig
from .errors import InvalidProperty, NotFound, UnparseableQuery
from .models import Property
from .normalize import DEFAULT_REGION_TOKENS, query_terms
from .records.base import RecordSource
from .records.convert import CandidateSummary, row_to_candidate, row_to_property
from .records.filters import RecordFilter, contains, equals, in_list

logger = logging.getLogger("sfir.resolver")

ADDRESS_FIELD = "property_location"


class ResolveStatus(StrEnum):
    RESOLVED = "resolved"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ResolveOutcome:
    status: ResolveStatus
    property: Optional[Property] = None
    candidates: List[CandidateSummary] = field(default_factory=list)
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": str(self.status),
            "property": self.property.to_dict() if self.property else None,
            "candidates": [c.to_dict() for c in self.candidates],
            "message": self.message,
        }


class PropertyResolver:
    """Finds the subject property on the most recent closed roll.

    Free-text lookups require every significant word of the query to appear in
    the raw ``property_location`` and only consider residential use codes.
    Block/lot lookups are exact.
    """

    def __init__(
        self,
        source: RecordSource,
        *,
        roll_year: str,
        residential_use_codes: Iterable[str] = ("SRES", "MRES"),
        region_tokens: Iterable[str] = DEFAULT_REGION_TOKENS,
        address_limit: int = 10,
        identifier_limit: int = 5,
    ) -> None:
        self.source = source
        self.roll_year = str(roll_year)
        self.residential_use_codes = tuple(residential_use_codes)
        self.region_tokens = tuple(region_tokens)
        self.address_limit = address_limit
        self.identifier_limit = identifier_limit

    @classmethod
    def from_config(cls, source: RecordSource, config: AppConfig, **kwargs: Any) -> "PropertyResolver":
        return cls(
            source,
            roll_year=config.roll_year,
            residential_use_codes=config.residential_use_codes,
            **kwargs,
        )

    def address_filter(self, address: str) -> RecordFilter:
        terms = query_terms(address, region_tokens=self.region_tokens)
        if not terms:
            raise UnparseableQuery(
                "Could not parse a searchable address. Try '560 20TH' or provide block/lot.",
                query_field="address",
            )
        return RecordFilter.where(
            *(contains(ADDRESS_FIELD, t) for t in terms),
            equals("closed_roll_year", self.roll_year),
            in_list("use_code", self.residential_use_codes),
        )

    def parcel_filter(self, block: str, lot: str) -> RecordFilter:
        return RecordFilter.where(
            equals("block", block.strip().upper()),
            equals("lot", lot.strip().upper()),
            equals("closed_roll_year", self.roll_year),
        )

    async def resolve(
        self,
        *,
        address: Optional[str] = None,
        block: Optional[str] = None,
        lot: Optional[str] = None,
        reference_value: Optional[float] = None,
    ) -> ResolveOutcome:
        if reference_value is not None and reference_value <= 0:
            raise InvalidProperty("reference value must be positive", field="reference_value")

        block = (block or "").strip()
        lot = (lot or "").strip()
        if block and lot:
            rows = await self.source.query(
                self.parcel_filter(block, lot), limit=self.identifier_limit
            )
            if not rows:
                raise NotFound(
                    f"No property found for block {block}, lot {lot} on the {self.roll_year} roll.",
                    block=block,
                    lot=lot,
                )
        elif (address or "").strip():
            rows = await self.source.query(
                self.address_filter(address or ""), limit=self.address_limit
            )
        else:
            raise UnparseableQuery(
                "Provide either an address or both block and lot numbers.",
                query_field="address",
            )

        logger.info("resolver matched %d row(s)", len(rows))
        if not rows:
            return ResolveOutcome(
                status=ResolveStatus.NOT_FOUND,
                message=(
                    "No properties found. Try a different address format "
                    "(e.g., '1625 PACIFIC AV') or search by block/lot number."
                ),
            )
        if len(rows) == 1:
            prop = row_to_property(rows[0], reference_value=reference_value)
            return ResolveOutcome(status=ResolveStatus.RESOLVED, property=prop)

        candidates = [row_to_candidate(r) for r in rows]
        return ResolveOutcome(
            status=ResolveStatus.AMBIGUOUS,
            candidates=candidates,
            message="Specify a more precise address or use block/lot to select one.",
        )
