"""
Weighted multi-factor scoring of a catalog candidate against a query.

Scoring Components:
    1. Name score (weight 0.45): title similarity, x1.5 when titles are
       equivalent
    2. Artist score (weight 0.40): artist similarity, x1.5 when the
       candidate is by the original artist
    3. Duration score (weight 0.05): banded closeness of durations
    4. Album score (weight 0.10): 1.0 on album match (or unknown album)
    5. Cover penalty: the whole sum x0.3 for karaoke/tribute/cover/remix
    6. Original artist bonus: x1.2 when both title and artist match

The weights were chosen empirically; they are kept as defaults in
MatchWeights and can be overridden from config.yaml, but should not be
changed without new calibration data.

Usage:
    from harmony_sync.matching.scoring import score_match

    result = score_match(candidate, query)
    if result.details.is_cover:
        ...
"""

from dataclasses import dataclass

from harmony_sync.matching.models import Candidate, MatchDetails, MatchResult, TrackQuery
from harmony_sync.matching.normalize import clean_text, normalize_artist, normalize_title
from harmony_sync.matching.similarity import (
    are_equivalent_titles,
    duration_score,
    is_album_match,
    similarity,
)


# Keywords in a candidate TITLE that indicate it is not the original recording
COVER_TITLE_KEYWORDS = (
    "karaoke",
    "originally performed",
    "made popular",
    "tribute",
    "as made famous",
    "in the style of",
    "instrumental version",
    "cover",
    "remix",
    "version",
)

# Keywords in a candidate ARTIST credit that indicate a cover act
COVER_ARTIST_KEYWORDS = (
    "karaoke",
    "tribute",
    "studio musicians",
)

ARTIST_SIMILARITY_THRESHOLD = 0.7
TITLE_EXACT_SIMILARITY = 0.9


@dataclass(frozen=True)
class MatchWeights:
    """
    Weights and multipliers for score_match().

    Attributes:
        name: Weight of the title similarity.
        artist: Weight of the artist similarity.
        duration: Weight of the duration closeness.
        album: Weight of the album match.
        cover_penalty: Multiplier for cover/karaoke/remix candidates.
        original_artist_bonus: Multiplier when title AND artist match.
        exact_title_bonus: Multiplier on the name term for equivalent titles.
        artist_match_multiplier: Multiplier on the artist term for the
                                 original artist.
    """

    name: float = 0.45
    artist: float = 0.40
    duration: float = 0.05
    album: float = 0.10
    cover_penalty: float = 0.3
    original_artist_bonus: float = 1.2
    exact_title_bonus: float = 1.5
    artist_match_multiplier: float = 1.5


DEFAULT_WEIGHTS = MatchWeights()


def is_cover_version(title: str, artist: str) -> bool:
    """
    Check if a catalog entry is likely a cover, karaoke or tribute version.

    Args:
        title: Candidate title (raw, before normalization, so that
               bracketed markers like "(Karaoke Version)" are still seen).
        artist: Candidate artist credit.

    Returns:
        True if a cover keyword appears in the title or artist.

    Example:
        is_cover_version("Song", "Artist A Tribute Band")   # True
        is_cover_version("Song (Remix)", "Artist A")        # True
    """
    lower_title = (title or "").lower()
    lower_artist = (artist or "").lower()

    if any(keyword in lower_title for keyword in COVER_TITLE_KEYWORDS):
        return True
    return any(keyword in lower_artist for keyword in COVER_ARTIST_KEYWORDS)


def is_original_artist(found_artist: str, original_artist: str) -> bool:
    """
    Check if the found artist credit likely names the original artist.

    Matches when one normalized name contains the other (with or without
    accents), when the first words agree, or when similarity is >= 0.7.
    """
    if not found_artist or not original_artist:
        return False

    found = normalize_artist(found_artist).lower()
    original = normalize_artist(original_artist).lower()
    if not found or not original:
        return False

    if found in original or original in found:
        return True

    found_folded = clean_text(found_artist)
    original_folded = clean_text(original_artist)
    if found_folded and original_folded and (
        found_folded in original_folded or original_folded in found_folded
    ):
        return True

    found_first = found.split(" ")[0]
    original_first = original.split(" ")[0]
    if found_first == original_first and len(found_first) > 1:
        return True

    return similarity(original, found) >= ARTIST_SIMILARITY_THRESHOLD


def compare_titles(candidate_title: str, query_title: str) -> tuple[float, bool]:
    """
    Compare two titles, ignoring featured artists and version suffixes.

    Returns:
        Tuple of (score, is_exact). Equivalent titles score 1.0 and are
        exact; otherwise the similarity of the normalized titles, exact
        when at least 0.9.
    """
    if not candidate_title or not query_title:
        return 0.0, False

    if are_equivalent_titles(candidate_title, query_title):
        return 1.0, True

    score = similarity(
        normalize_title(query_title).lower(),
        normalize_title(candidate_title).lower()
    )
    return score, score >= TITLE_EXACT_SIMILARITY


def score_match(
    candidate: Candidate,
    query: TrackQuery,
    weights: MatchWeights = DEFAULT_WEIGHTS
) -> MatchResult:
    """
    Score one catalog candidate against the query track.

    Args:
        candidate: Search result from the target catalog.
        query: Track being searched for (always the similarity anchor).
        weights: Scoring weights, DEFAULT_WEIGHTS unless configured.

    Returns:
        MatchResult with the final score, the decision flags the selector
        relies on, and a per-factor breakdown for logging.
    """
    is_cover = is_cover_version(candidate.name, candidate.artist)
    artist_matches = is_original_artist(candidate.artist, query.artist)
    name_score, title_exact = compare_titles(candidate.name, query.name)
    album_matches = is_album_match(candidate.album, query.album)

    artist_score = similarity(normalize_artist(query.artist), normalize_artist(candidate.artist))

    if query.album:
        album_score = 1.0 if album_matches else similarity(query.album, candidate.album)
    else:
        album_score = 1.0

    time_score = duration_score(query.duration_ms, candidate.duration_ms)

    title_multiplier = weights.exact_title_bonus if title_exact else 1.0
    artist_multiplier = weights.artist_match_multiplier if artist_matches else 1.0
    cover_multiplier = weights.cover_penalty if is_cover else 1.0

    base_score = (
        name_score * title_multiplier * weights.name
        + artist_score * artist_multiplier * weights.artist
        + time_score * weights.duration
        + album_score * weights.album
    ) * cover_multiplier

    final_score = base_score * weights.original_artist_bonus if (title_exact and artist_matches) else base_score

    details = MatchDetails(
        is_original_artist=artist_matches,
        is_cover=is_cover,
        is_title_match=title_exact,
        album_match=album_matches,
        equivalent_titles=are_equivalent_titles(candidate.name, query.name),
        normalized_name=normalize_title(candidate.name),
    )

    return MatchResult(
        score=final_score,
        remote_id=candidate.remote_id,
        details=details,
        candidate=candidate,
        scores={
            "name": name_score,
            "artist": artist_score,
            "album": album_score,
            "duration": time_score,
            "title_multiplier": title_multiplier,
            "artist_multiplier": artist_multiplier,
            "cover_multiplier": cover_multiplier,
        },
    )
