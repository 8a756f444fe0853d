from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

from ..errors import SourceUnavailable
from ..geo import METERS_PER_MILE, haversine_miles
from .base import RawRow, RecordSource
from .convert import geojson_point
from .filters import Circle, Condition, OrderBy, RecordFilter


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def matches(row: RawRow, cond: Condition) -> bool:
    raw = row.get(cond.field)
    if cond.op == "not_null":
        return raw is not None and raw != ""
    if cond.op == "within_circle":
        circle: Circle = cond.value
        point = geojson_point(raw)
        if point is None:
            return False
        miles = haversine_miles(circle.latitude, circle.longitude, point[0], point[1])
        return miles * METERS_PER_MILE <= circle.meters

    text = _text(raw)
    if text is None:
        return False
    if cond.op == "equals":
        return text == str(cond.value)
    if cond.op == "not_equals":
        return text != str(cond.value)
    if cond.op == "contains":
        return str(cond.value) in text
    if cond.op == "in_list":
        return text in {str(v) for v in cond.value}
    if cond.op == "gt":
        return text > str(cond.value)
    raise ValueError(f"Unsupported operator: {cond.op}")


class FixtureRecordSource(RecordSource):
    """Deterministic, offline record source over in-memory rows.

    Evaluates the same predicates the live feed receives. Every call is kept
    in ``calls`` as ``(where, limit, order)``.
    """

    name = "fixture"

    def __init__(self, rows: Union[Sequence[RawRow], str, Path, None] = None) -> None:
        if rows is None:
            rows = []
        if isinstance(rows, (str, Path)):
            raw = json.loads(Path(rows).read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("fixture file must contain a JSON array of rows")
            rows = raw
        self._rows: List[RawRow] = [dict(r) for r in rows if isinstance(r, dict)]
        self.calls: List[Tuple[RecordFilter, int, Optional[OrderBy]]] = []
        self._failure: Optional[SourceUnavailable] = None

    def fail_with(self, status: Optional[int] = 503, message: str = "Service Unavailable") -> None:
        self._failure = SourceUnavailable(f"SF OpenData API error: {status} {message}", status=status)

    def recover(self) -> None:
        self._failure = None

    async def query(
        self,
        where: RecordFilter,
        *,
        limit: int,
        order: Optional[OrderBy] = None,
    ) -> List[RawRow]:
        self.calls.append((where, limit, order))
        if self._failure is not None:
            raise self._failure

        found = [r for r in self._rows if all(matches(r, c) for c in where.conditions)]
        if order is not None:
            present = [r for r in found if r.get(order.field) not in (None, "")]
            missing = [r for r in found if r.get(order.field) in (None, "")]
            present.sort(key=lambda r: str(r.get(order.field)), reverse=order.descending)
            found = present + missing
        return copy.deepcopy(found[: max(0, int(limit))])
