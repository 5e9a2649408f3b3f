"""
Deterministic best-match selection from a set of scored candidates.

Selection Rules:
    1. Exact match short-circuit: a candidate with an equivalent title,
       by the original artist and not a cover wins regardless of score,
       even over a higher-scored candidate by another artist.
    2. Otherwise the highest-scored candidate is accepted only if its
       score is >= min_score AND one of:
         - original artist and score >= 0.75
         - title match and score >= 0.7
         - album match and score >= 0.7
         - score >= 0.9
    3. Otherwise there is no acceptable match (None). The caller records
       a failure; we never guess.

Ties in score keep the input order (stable sort), so the same candidates
and query always give the same answer.
"""

from dataclasses import dataclass

from harmony_sync.matching.models import MatchResult, TrackQuery


@dataclass(frozen=True)
class SelectionThresholds:
    """Acceptance thresholds for find_best_match()."""

    min_score: float = 0.6
    original_artist_score: float = 0.75
    title_match_score: float = 0.7
    album_match_score: float = 0.7
    high_score: float = 0.9


DEFAULT_THRESHOLDS = SelectionThresholds()


def rank_results(results: list[MatchResult]) -> list[MatchResult]:
    """Sort by score descending; equal scores keep their input order."""
    return sorted(results, key=lambda result: result.score, reverse=True)


def is_exact_match(result: MatchResult) -> bool:
    details = result.details
    return details.equivalent_titles and details.is_original_artist and not details.is_cover


def find_exact_match(results: list[MatchResult], query: TrackQuery) -> MatchResult | None:
    """
    Return the highest-scored exact identity match, or None.

    Args:
        results: Scored candidates, in any order.
        query: The track being searched for.
    """
    for result in rank_results(results):
        if is_exact_match(result):
            return result
    return None


def find_best_match(
    results: list[MatchResult],
    query: TrackQuery,
    thresholds: SelectionThresholds = DEFAULT_THRESHOLDS
) -> MatchResult | None:
    """
    Pick the best candidate or declare no match.

    Args:
        results: Scored candidates from score_match().
        query: The track being searched for.
        thresholds: Acceptance thresholds, DEFAULT_THRESHOLDS unless configured.

    Returns:
        The accepted MatchResult, or None if no candidate is acceptable.
    """
    if not results:
        return None

    exact = find_exact_match(results, query)
    if exact is not None:
        return exact

    best = rank_results(results)[0]
    if best.score < thresholds.min_score:
        return None

    details = best.details
    if details.is_original_artist and best.score >= thresholds.original_artist_score:
        return best
    if details.is_title_match and best.score >= thresholds.title_match_score:
        return best
    if details.album_match and best.score >= thresholds.album_match_score:
        return best
    if best.score >= thresholds.high_score:
        return best

    return None
