"""
Data models for track identity resolution.

This module defines the immutable value types that flow through the
matching engine: the track being searched for, the catalog results being
evaluated, and the scored outcome of each evaluation.

Design Decisions:
    - All dataclasses are frozen (immutable) to prevent accidental modification
    - Durations are always milliseconds, None when unknown
    - Models are independent of any catalog's API response structure;
      catalog adapters convert their payloads into Candidate objects

Usage:
    from harmony_sync.matching.models import TrackQuery, Candidate

    query = TrackQuery(name="Song Title", artist="Artist Name", duration_ms=200000)
"""

from dataclasses import dataclass, field
from typing import Any

from harmony_sync.core.exceptions import ValidationError


@dataclass(frozen=True)
class TrackQuery:
    """
    Immutable description of the track being searched for.

    Only free text is available: the two catalogs share no identifiers,
    so name and artist form the fingerprint used for matching.

    Attributes:
        name: Track title as it appears in the source catalog.
        artist: Primary artist name.
        album: Album name, if known.
        duration_ms: Track duration in milliseconds, if known.
        remote_id: Identifier in the SOURCE catalog (for reporting only).
    """

    name: str
    artist: str
    album: str | None = None
    duration_ms: int | None = None
    remote_id: str | None = None

    def validate(self) -> None:
        """
        Check that the query can be matched at all.

        Raises:
            ValidationError: If name or artist is missing or blank.
        """
        for field_name in ("name", "artist"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(
                    f"Track query requires a non-empty {field_name}",
                    details={"field": field_name, "name": self.name, "artist": self.artist}
                )

    @property
    def display_name(self) -> str:
        """Artist - Title string for log messages."""
        return f"{self.artist} - {self.name}"


@dataclass(frozen=True)
class Candidate:
    """
    One result from a catalog search.

    Candidates are created by catalog adapters and only live as long as
    the resolution call that requested them.

    Attributes:
        name: Title in the target catalog.
        artist: Artist credit string (may list several artists).
        album: Album name ("" when the catalog has none).
        duration_ms: Duration in milliseconds, None when unknown.
        remote_id: Identifier in the TARGET catalog (URI or video id).
    """

    name: str
    artist: str
    album: str
    duration_ms: int | None
    remote_id: str


@dataclass(frozen=True)
class MatchDetails:
    """
    Structured explanation of a score.

    The selector makes its decision from these flags, not only from the
    numeric score, so they are always carried along with the result.
    """

    is_original_artist: bool
    is_cover: bool
    is_title_match: bool
    album_match: bool
    equivalent_titles: bool
    normalized_name: str


@dataclass(frozen=True)
class MatchResult:
    """
    Scored evaluation of one candidate against one query.

    Attributes:
        score: Weighted match score (can exceed 1.0 with bonuses).
        remote_id: Target catalog identifier of the candidate.
        details: Boolean flags used by the selector.
        candidate: The evaluated candidate.
        scores: Per-factor breakdown (name, artist, album, duration and
                the multipliers applied), kept for logging.
    """

    score: float
    remote_id: str
    details: MatchDetails
    candidate: Candidate
    scores: dict[str, Any] = field(default_factory=dict, compare=False)
