"""
Track resolution: find a track's id in a target catalog.

TrackResolver drives the search side of matching. For one TrackQuery it
runs an ordered list of search strategies against a CatalogClient,
scores what comes back and asks the selector for a decision.

Search Strategies (in order):
    1. standard         "<normalized title> <normalized artist>", limit 15
    2. artist_anchored  "<normalized artist>", limit 25, keeping only
                        candidates whose title overlaps the query title

For every strategy:
    - Candidates whose artist does not contain (or is not contained in)
      the query artist, case-folded, are dropped before scoring
    - Survivors are scored with score_match() and added to a shared pool,
      de-duplicated by remote id
    - find_best_match() runs on this strategy's results; an accepted
      match ends the search

If no strategy accepts a candidate, one last pass over the whole pool
returns the highest-scored candidate by the original artist with an
equivalent title, if any.

A transient CatalogError only abandons the current strategy. Other
catalog errors propagate to the caller.

Usage:
    resolver = TrackResolver(catalog)
    remote_id = resolver.resolve_track(TrackQuery(name="Song", artist="Artist"))
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from harmony_sync.core.exceptions import CatalogError
from harmony_sync.core.logger import get_logger
from harmony_sync.matching.models import Candidate, MatchResult, TrackQuery
from harmony_sync.matching.normalize import normalize_artist, normalize_title
from harmony_sync.matching.scoring import DEFAULT_WEIGHTS, MatchWeights, score_match
from harmony_sync.matching.selector import (
    DEFAULT_THRESHOLDS,
    SelectionThresholds,
    find_best_match,
    rank_results,
)
from harmony_sync.matching.similarity import are_equivalent_titles

if TYPE_CHECKING:
    from harmony_sync.catalogs.base import CatalogClient

logger = get_logger(__name__)


# =============================================================================
# SEARCH LIMITS
# =============================================================================

STANDARD_SEARCH_LIMIT = 15
ARTIST_SEARCH_LIMIT = 25


@dataclass(frozen=True)
class SearchStrategy:
    """
    One way of querying the catalog for a track.

    Attributes:
        name: Label used in log messages.
        build_query: Builds the search text from the query track.
        limit: Maximum number of results requested.
        keep: Optional post-filter applied to raw results.
    """

    name: str
    build_query: Callable[[TrackQuery], str]
    limit: int
    keep: Callable[[Candidate, TrackQuery], bool] | None = None


def _standard_query(query: TrackQuery) -> str:
    return f"{normalize_title(query.name)} {normalize_artist(query.artist)}"


def _artist_query(query: TrackQuery) -> str:
    return normalize_artist(query.artist)


def titles_overlap(candidate: Candidate, query: TrackQuery) -> bool:
    """True if one normalized title contains the other, or they are equivalent."""
    found = normalize_title(candidate.name).casefold()
    wanted = normalize_title(query.name).casefold()
    if found and wanted and (found in wanted or wanted in found):
        return True
    return are_equivalent_titles(candidate.name, query.name)


def artist_contains(candidate: Candidate, query: TrackQuery) -> bool:
    """Strict artist gate: case-folded containment in either direction."""
    found = normalize_artist(candidate.artist).casefold()
    wanted = normalize_artist(query.artist).casefold()
    if not found or not wanted:
        return False
    return wanted in found or found in wanted


DEFAULT_STRATEGIES = (
    SearchStrategy("standard", _standard_query, STANDARD_SEARCH_LIMIT),
    SearchStrategy("artist_anchored", _artist_query, ARTIST_SEARCH_LIMIT, keep=titles_overlap),
)


class TrackResolver:
    """
    Resolves TrackQuery objects to remote ids in one catalog.

    Attributes:
        _catalog: Catalog searched for candidates.
        _weights: Scoring weights passed to score_match().
        _thresholds: Acceptance thresholds passed to find_best_match().
        _strategies: Ordered search strategies.

    Thread Safety:
        resolve() keeps all per-query state in local variables, so one
        resolver can serve every worker of a batch. Thread safety of the
        catalog itself is the catalog's concern.
    """

    def __init__(
        self,
        catalog: "CatalogClient",
        weights: MatchWeights = DEFAULT_WEIGHTS,
        thresholds: SelectionThresholds = DEFAULT_THRESHOLDS,
        strategies: tuple[SearchStrategy, ...] = DEFAULT_STRATEGIES
    ) -> None:
        self._catalog = catalog
        self._weights = weights
        self._thresholds = thresholds
        self._strategies = strategies

    def resolve(self, query: TrackQuery) -> MatchResult | None:
        """
        Find the best catalog match for a track.

        Args:
            query: Track to resolve.

        Returns:
            The accepted MatchResult, or None when nothing acceptable exists.

        Raises:
            ValidationError: If the query has no name or no artist.
            CatalogError: For non-transient catalog failures.
        """
        query.validate()
        logger.debug(f"Resolving: {query.display_name}")

        pool: dict[str, MatchResult] = {}

        for strategy in self._strategies:
            try:
                results = self._run_strategy(strategy, query)
            except CatalogError as e:
                if not e.is_transient:
                    raise
                logger.warning(
                    f"Strategy '{strategy.name}' aborted for {query.display_name}: {e}"
                )
                continue

            for result in results:
                pool.setdefault(result.remote_id, result)

            best = find_best_match(results, query, self._thresholds)
            if best is not None:
                logger.debug(
                    f"Strategy '{strategy.name}' matched {query.display_name} -> "
                    f"{best.remote_id} (score: {best.score:.3f})"
                )
                return best

        return self._final_pass(list(pool.values()), query)

    def resolve_track(self, query: TrackQuery) -> str | None:
        """Return the remote id of the best match, or None."""
        result = self.resolve(query)
        return result.remote_id if result is not None else None

    def _run_strategy(self, strategy: SearchStrategy, query: TrackQuery) -> list[MatchResult]:
        search_text = strategy.build_query(query)
        candidates = self._catalog.search(search_text, strategy.limit)

        results = []
        for candidate in candidates:
            if not candidate.remote_id:
                continue
            if strategy.keep is not None and not strategy.keep(candidate, query):
                continue
            if not artist_contains(candidate, query):
                continue
            results.append(score_match(candidate, query, self._weights))

        logger.debug(
            f"Strategy '{strategy.name}' query '{search_text}': "
            f"{len(candidates)} results, {len(results)} scored"
        )
        return results

    def _final_pass(self, pool: list[MatchResult], query: TrackQuery) -> MatchResult | None:
        for result in rank_results(pool):
            if result.details.is_original_artist and result.details.equivalent_titles:
                logger.debug(
                    f"Cross-strategy match for {query.display_name} -> {result.remote_id}"
                )
                return result

        logger.debug(f"No acceptable candidate for {query.display_name} ({len(pool)} scored)")
        return None
