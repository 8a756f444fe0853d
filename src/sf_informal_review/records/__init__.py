from .base import RawRow, RecordSource
from .filters import Condition, OrderBy, RecordFilter
from .fixture import FixtureRecordSource
from .soda import SodaRecordSource

__all__ = [
    "Condition",
    "FixtureRecordSource",
    "OrderBy",
    "RawRow",
    "RecordFilter",
    "RecordSource",
    "SodaRecordSource",
]
