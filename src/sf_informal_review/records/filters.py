"""Structured predicates understood by every record source.

Sources compile these into their own query language (SoQL for the live feed)
or evaluate them directly (fixtures), so matching logic stays testable
without a network.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Literal, Optional, Sequence, Tuple

Op = Literal[
    "equals",
    "not_equals",
    "contains",
    "in_list",
    "gt",
    "not_null",
    "within_circle",
]


@dataclass(frozen=True)
class Circle:
    latitude: float
    longitude: float
    meters: int


@dataclass(frozen=True)
class Condition:
    field: str
    op: Op
    value: Any = None


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = True


@dataclass(frozen=True)
class RecordFilter:
    """Conjunction of conditions; an empty filter matches every row."""

    conditions: Tuple[Condition, ...] = ()

    @classmethod
    def where(cls, *conditions: Condition) -> "RecordFilter":
        return cls(tuple(conditions))

    def and_(self, *conditions: Condition) -> "RecordFilter":
        return RecordFilter(self.conditions + tuple(conditions))

    def fields(self) -> Sequence[str]:
        return [c.field for c in self.conditions]


def equals(field: str, value: Any) -> Condition:
    return Condition(field, "equals", value)


def not_equals(field: str, value: Any) -> Condition:
    return Condition(field, "not_equals", value)


def contains(field: str, value: str) -> Condition:
    return Condition(field, "contains", value)


def in_list(field: str, values: Iterable[Any]) -> Condition:
    items = tuple(values)
    if not items:
        raise ValueError("in_list must contain at least one item")
    return Condition(field, "in_list", items)


def greater_than(field: str, value: Any) -> Condition:
    return Condition(field, "gt", value)


def not_null(field: str) -> Condition:
    return Condition(field, "not_null")


def within_circle(field: str, latitude: float, longitude: float, meters: int) -> Condition:
    return Condition(field, "within_circle", Circle(float(latitude), float(longitude), int(meters)))


def find_condition(where: RecordFilter, field: str, op: Optional[Op] = None) -> Optional[Condition]:
    for cond in where.conditions:
        if cond.field == field and (op is None or cond.op == op):
            return cond
    return None
