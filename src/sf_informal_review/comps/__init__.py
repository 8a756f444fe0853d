"""Comparable-sales discovery around the subject property."""

from .search import ComparableSearchEngine, SearchOutcome, cutoff_date, radius_ladder

__all__ = ["ComparableSearchEngine", "SearchOutcome", "cutoff_date", "radius_ladder"]
