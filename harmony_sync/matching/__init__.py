"""
Track identity resolution.

Given a track known only by free text in one catalog, find the
corresponding entry in another catalog's search results.

Components:
    - normalize: title/artist canonicalization pipeline
    - similarity: token similarity, duration and album heuristics
    - scoring: weighted multi-factor score with explanation flags
    - selector: deterministic best-match decision
    - resolver: search strategies driving a catalog client

Usage:
    from harmony_sync.matching import TrackQuery, TrackResolver

    resolver = TrackResolver(catalog)
    remote_id = resolver.resolve_track(TrackQuery(name="Song", artist="Artist"))
"""

from harmony_sync.matching.models import Candidate, MatchDetails, MatchResult, TrackQuery
from harmony_sync.matching.normalize import clean_text, normalize_artist, normalize_title
from harmony_sync.matching.scoring import DEFAULT_WEIGHTS, MatchWeights, score_match
from harmony_sync.matching.selector import (
    DEFAULT_THRESHOLDS,
    SelectionThresholds,
    find_best_match,
)
from harmony_sync.matching.similarity import are_equivalent_titles, duration_score, similarity
from harmony_sync.matching.resolver import TrackResolver

__all__ = [
    # Models
    "TrackQuery",
    "Candidate",
    "MatchDetails",
    "MatchResult",
    # Text
    "normalize_title",
    "normalize_artist",
    "clean_text",
    "similarity",
    "duration_score",
    "are_equivalent_titles",
    # Scoring and selection
    "MatchWeights",
    "DEFAULT_WEIGHTS",
    "score_match",
    "SelectionThresholds",
    "DEFAULT_THRESHOLDS",
    "find_best_match",
    # Resolver
    "TrackResolver",
]
