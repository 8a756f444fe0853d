"""The case aggregate and the store that owns its mutations.

A case holds at most one subject property, the comparable list and the
drafted argument. Aggregates (mean included sale price, strength tier) are
never stored; every view recomputes them from the comparables.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .errors import InvalidComparable, NotFound
from .geo import haversine_miles
from .models import Argument, Comparable, Property, StrengthTier
from .records.convert import parse_sale_date
from .scoring import case_strength, mean_price

logger = logging.getLogger("sfir.case")

REQUIRED_ON_ADD = ("address", "sale_date", "sale_price")
_FLOAT_FIELDS = ("sale_price", "area", "bedroom_count", "bathroom_count", "distance")
UPDATABLE_FIELDS = frozenset(
    {"address", "sale_date", "notes", "included", *_FLOAT_FIELDS}
)


@dataclass
class Case:
    property: Optional[Property] = None
    comparables: List[Comparable] = field(default_factory=list)
    argument: Optional[Argument] = None
    # Identifiers the owner removed; searches never bring them back.
    removed_ids: Set[str] = field(default_factory=set)


@dataclass(frozen=True)
class CaseView:
    property: Optional[Property]
    comparables: Tuple[Comparable, ...]
    argument: Optional[Argument]
    mean_included_price: Optional[float]
    reference_value: Optional[float]
    strength: Optional[StrengthTier]

    @property
    def included(self) -> List[Comparable]:
        return [c for c in self.comparables if c.included]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "property": self.property.to_dict() if self.property else None,
            "comparables": [c.to_dict() for c in self.comparables],
            "included_count": len(self.included),
            "mean_included_price": self.mean_included_price,
            "reference_value": self.reference_value,
            "strength": str(self.strength) if self.strength else None,
            "argument": self.argument.to_dict() if self.argument else None,
        }


@dataclass(frozen=True)
class MutationResult:
    view: CaseView
    comparable: Optional[Comparable] = None

    @property
    def mean_included_price(self) -> Optional[float]:
        return self.view.mean_included_price

    @property
    def strength(self) -> Optional[StrengthTier]:
        return self.view.strength


def _coerce(name: str, value: Any) -> Any:
    if name == "sale_date":
        parsed = parse_sale_date(value)
        if parsed is None:
            raise InvalidComparable(f"sale_date is not a valid date: {value!r}", field=name)
        return parsed
    if name in _FLOAT_FIELDS:
        if isinstance(value, bool):
            raise InvalidComparable(f"{name} must be a number", field=name)
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise InvalidComparable(f"{name} must be a number", field=name) from exc
    if name == "included":
        if not isinstance(value, bool):
            raise InvalidComparable("included must be true or false", field=name)
        return value
    return str(value).strip()


def _present(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None; those count as omitted."""

    return {k: v for k, v in payload.items() if v is not None}


class CaseStateStore:
    """Single owner of one case's state.

    Mutations validate everything before touching the case, so a failed call
    leaves it exactly as it was. ``lock`` serializes multi-step operations
    (search then merge) against concurrent requests on the same case.
    """

    def __init__(self, case: Optional[Case] = None) -> None:
        self.case = case or Case()
        self.lock = asyncio.Lock()

    # -- reads -----------------------------------------------------------

    def included_comparables(self) -> List[Comparable]:
        return [c for c in self.case.comparables if c.included]

    def snapshot(self) -> CaseView:
        prop = self.case.property
        mean = mean_price(self.case.comparables)
        reference: Optional[float] = None
        strength: Optional[StrengthTier] = None
        if prop is not None:
            reference = mean if mean is not None else prop.reference_value
            strength = case_strength(prop.assessed_value, reference)
        return CaseView(
            property=prop,
            comparables=tuple(self.case.comparables),
            argument=self.case.argument,
            mean_included_price=mean,
            reference_value=reference,
            strength=strength,
        )

    def comparable_ids(self) -> Set[str]:
        return {c.id for c in self.case.comparables}

    def _index(self, comp_id: str) -> int:
        for i, comp in enumerate(self.case.comparables):
            if comp.id == comp_id:
                return i
        raise NotFound(f"Comparable not found: {comp_id}", comparable_id=comp_id)

    # -- property and argument ------------------------------------------

    def set_property(self, prop: Property) -> CaseView:
        # Distances already attached to comparables stay as discovered.
        self.case.property = prop
        logger.info("subject property set", extra={"parcel_id": prop.parcel_id})
        return self.snapshot()

    def set_argument(self, argument: Argument) -> CaseView:
        self.case.argument = argument
        return self.snapshot()

    # -- comparables -----------------------------------------------------

    def merge_comparables(self, comparables: Iterable[Comparable]) -> Tuple[List[Comparable], int]:
        """Append comparables whose id is new; first write wins.

        Returns the appended comparables and how many were skipped.
        """

        known = self.comparable_ids() | self.case.removed_ids
        added: List[Comparable] = []
        skipped = 0
        for comp in comparables:
            if comp.id in known:
                skipped += 1
                continue
            known.add(comp.id)
            added.append(comp)
        self.case.comparables.extend(added)
        return added, skipped

    def add_comparable(self, payload: Mapping[str, Any]) -> MutationResult:
        data = _present(payload)
        missing = [f for f in REQUIRED_ON_ADD if data.get(f) in (None, "", 0)]
        if missing:
            raise InvalidComparable(
                "To add a comparable, provide at least address, sale_date, and sale_price.",
                missing_fields=missing,
            )

        comp_id = str(data.get("id") or "").strip() or f"comp-manual-{uuid.uuid4().hex[:10]}"
        if comp_id in self.comparable_ids():
            raise InvalidComparable(f"Comparable id already exists: {comp_id}", field="id")

        fields = {k: _coerce(k, data[k]) for k in UPDATABLE_FIELDS if k in data}
        if "distance" not in fields:
            fields["distance"] = self._distance_from_subject(data)
        comp = Comparable(id=comp_id, **fields)

        self.case.comparables.append(comp)
        self.case.removed_ids.discard(comp_id)
        return MutationResult(view=self.snapshot(), comparable=comp)

    def _distance_from_subject(self, data: Mapping[str, Any]) -> float:
        prop = self.case.property
        lat, lng = data.get("latitude"), data.get("longitude")
        if prop is None or prop.coordinates is None or lat is None or lng is None:
            return 0.0
        try:
            miles = haversine_miles(prop.coordinates[0], prop.coordinates[1], float(lat), float(lng))
        except (TypeError, ValueError) as exc:
            raise InvalidComparable("latitude/longitude must be numbers", field="latitude") from exc
        return round(miles, 2)

    def update_comparable(self, comp_id: str, changes: Mapping[str, Any]) -> MutationResult:
        idx = self._index(comp_id)
        data = _present(changes)
        data.pop("id", None)
        unknown = sorted(set(data) - UPDATABLE_FIELDS)
        if unknown:
            raise InvalidComparable(
                f"Unknown comparable field(s): {', '.join(unknown)}", fields=unknown
            )
        coerced = {k: _coerce(k, v) for k, v in data.items()}
        updated = dataclasses.replace(self.case.comparables[idx], **coerced)
        self.case.comparables[idx] = updated
        return MutationResult(view=self.snapshot(), comparable=updated)

    def remove_comparable(self, comp_id: str) -> MutationResult:
        idx = self._index(comp_id)
        removed = self.case.comparables.pop(idx)
        self.case.removed_ids.add(removed.id)
        return MutationResult(view=self.snapshot(), comparable=removed)

    def toggle_comparable(self, comp_id: str) -> MutationResult:
        idx = self._index(comp_id)
        current = self.case.comparables[idx]
        flipped = dataclasses.replace(current, included=not current.included)
        self.case.comparables[idx] = flipped
        return MutationResult(view=self.snapshot(), comparable=flipped)


class CaseRegistry:
    """Independent cases keyed by id; nothing is shared between them."""

    def __init__(self) -> None:
        self._stores: Dict[str, CaseStateStore] = {}

    def create(self) -> Tuple[str, CaseStateStore]:
        case_id = uuid.uuid4().hex
        store = CaseStateStore()
        self._stores[case_id] = store
        return case_id, store

    def get(self, case_id: str) -> CaseStateStore:
        store = self._stores.get(case_id)
        if store is None:
            raise NotFound(f"Case not found: {case_id}", case_id=case_id)
        return store

    def __len__(self) -> int:
        return len(self._stores)
