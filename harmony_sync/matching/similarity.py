"""
String, duration and album similarity for track matching.

All functions here are pure and return plain numbers or booleans; the
weighting of these signals happens in scoring.py.

Similarity Algorithm:
    similarity(a, b) is token based and deliberately asymmetric: every
    token of `a` (the query side) looks for its best partner in `b`
    (the candidate side).

    1. Both strings are folded with clean_text()
    2. Single-letter tokens and filler words are dropped
    3. Per token of `a`:
         exact match                              -> 1.0 (weighted 1.5x)
         both tokens >= 3 chars, one contains other -> 0.8
         both tokens >= 3 chars, Levenshtein ratio > 0.7 -> ratio
    4. Sum divided by len(a) * 1.5, so a perfect match is exactly 1.0

Dependencies:
    - rapidfuzz: Levenshtein edit distance
"""

import re

from rapidfuzz.distance import Levenshtein

from harmony_sync.matching.normalize import clean_text, normalize_title


# Words that carry no identity information in titles or artist credits
FILLER_WORDS = frozenset({
    "feat", "ft", "featuring", "with", "prod", "produced", "by", "the", "a", "an",
})

EXACT_MATCH_WEIGHT = 1.5
SUBSTRING_MATCH_SCORE = 0.8
MIN_TOKEN_LENGTH_FOR_PARTIAL = 3
MIN_LEVENSHTEIN_SIMILARITY = 0.7

# Title equivalence
EQUIVALENT_TITLE_SIMILARITY = 0.9
MIN_STRIPPED_TITLE_LENGTH = 3

# Album heuristics ignore strings shorter than this
MIN_ALBUM_MATCH_LENGTH = 4

# Duration bands: (max relative difference, score)
DURATION_BANDS = (
    (0.10, 0.9),
    (0.15, 0.8),
    (0.25, 0.7),
)
# Strict below 5% of the shorter duration: 200000 vs 210000 ms scores 0.9
DURATION_PERFECT_LIMIT = 0.05
DURATION_FLOOR_SCORE = 0.6

_ALBUM_BASE_SEPARATOR = re.compile(r"\s+[-–—(]")
_NON_WORD = re.compile(r"[^\w]")


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit cost for insertion, deletion and substitution."""
    return Levenshtein.distance(a, b)


def _tokens(text: str) -> list[str]:
    return [
        token for token in clean_text(text).split()
        if len(token) > 1 and token not in FILLER_WORDS
    ]


def _best_token_score(token: str, others: list[str]) -> tuple[float, bool]:
    """Return (best score, is_exact) for one anchor token."""
    best = 0.0
    for other in others:
        if token == other:
            return 1.0, True
        if len(token) < MIN_TOKEN_LENGTH_FOR_PARTIAL or len(other) < MIN_TOKEN_LENGTH_FOR_PARTIAL:
            continue
        if token in other or other in token:
            best = max(best, SUBSTRING_MATCH_SCORE)
            continue
        ratio = 1 - levenshtein(token, other) / max(len(token), len(other))
        if ratio > MIN_LEVENSHTEIN_SIMILARITY:
            best = max(best, ratio)
    return best, False


def similarity(a: str | None, b: str | None) -> float:
    """
    Token-overlap similarity of `b` as seen from `a`.

    Args:
        a: Anchor string (the query side).
        b: String searched for the anchor's tokens (the candidate side).

    Returns:
        Score in [0, 1]. 1.0 for identical non-empty text, 0.0 when either
        side has no meaningful tokens.

    Example:
        similarity("Bohemian Rhapsody", "bohemian rhapsody")   # 1.0
        similarity("Bohemian Rhapsody", "Bohemian")             # 0.5
    """
    folded_a = clean_text(a)
    folded_b = clean_text(b)
    if folded_a and folded_a == folded_b:
        return 1.0

    tokens_a = _tokens(folded_a)
    tokens_b = _tokens(folded_b)
    if not tokens_a or not tokens_b:
        return 0.0

    total = 0.0
    for token in tokens_a:
        score, is_exact = _best_token_score(token, tokens_b)
        total += EXACT_MATCH_WEIGHT if is_exact else score

    return total / (len(tokens_a) * EXACT_MATCH_WEIGHT)


def duration_score(duration1_ms: int | None, duration2_ms: int | None) -> float:
    """
    Score how close two durations are.

    The relative difference is measured against the shorter duration.
    A missing duration is not evidence either way and scores 1.0.

    Returns:
        1.0 below 5% difference, 0.9 up to 10%, 0.8 up to 15%,
        0.7 up to 25%, 0.6 beyond.

    Example:
        duration_score(200000, 210000)   # 0.9 (exactly 5% of the shorter)
    """
    if not duration1_ms or not duration2_ms:
        return 1.0

    difference = abs(duration1_ms - duration2_ms)
    relative = difference / min(duration1_ms, duration2_ms)

    if relative < DURATION_PERFECT_LIMIT:
        return 1.0
    for limit, score in DURATION_BANDS:
        if relative <= limit:
            return score
    return DURATION_FLOOR_SCORE


def is_album_match(album1: str | None, album2: str | None) -> bool:
    """
    Check whether two album titles name the same release.

    Handles variations such as "Album" vs "Album - Single" or
    "Album (Deluxe Edition)". Containment and prefix checks require
    at least MIN_ALBUM_MATCH_LENGTH characters on the shorter side.
    """
    if not album1 or not album2:
        return False

    first = album1.casefold().strip()
    second = album2.casefold().strip()
    if not first or not second:
        return False

    if first == second:
        return True

    shorter = min(len(first), len(second))
    if shorter >= MIN_ALBUM_MATCH_LENGTH and (first in second or second in first):
        return True

    base1 = _ALBUM_BASE_SEPARATOR.split(first, maxsplit=1)[0].strip()
    base2 = _ALBUM_BASE_SEPARATOR.split(second, maxsplit=1)[0].strip()
    return base1 == base2 and len(base1) >= MIN_ALBUM_MATCH_LENGTH


def are_equivalent_titles(title1: str | None, title2: str | None) -> bool:
    """
    Check whether two titles name the same song despite formatting.

    Equivalent when, after normalize_title() and case folding:
        - the titles are equal, or
        - they are equal once every non-word character is removed
          ("Red Nosed" == "Rednosed") and longer than 3 characters, or
        - similarity() is at least 0.9.
    """
    if not title1 or not title2:
        return False

    normalized1 = normalize_title(title1).casefold()
    normalized2 = normalize_title(title2).casefold()
    if normalized1 == normalized2:
        return True

    stripped1 = _NON_WORD.sub("", normalized1)
    stripped2 = _NON_WORD.sub("", normalized2)
    if stripped1 == stripped2 and len(stripped1) > MIN_STRIPPED_TITLE_LENGTH:
        return True

    return similarity(normalized1, normalized2) >= EQUIVALENT_TITLE_SIMILARITY
