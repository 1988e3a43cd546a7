"""Imperative shell: services composing selectors, config and engines."""

from procure_services.match_cache import MatchResultCache
from procure_services.three_way_match_service import MatchSummary, ThreeWayMatchService

__all__ = [
    "MatchResultCache",
    "MatchSummary",
    "ThreeWayMatchService",
]
