"""
Interfaces between the matching/sync core and remote music catalogs.

The core never talks to an HTTP API directly. It consumes three narrow
interfaces, expressed as typing Protocols so that any object with the
right methods (a real adapter, or a fake in tests) can be plugged in:

    CatalogClient     search, paginated track listing, playlist metadata
    PlaylistWriter    create a playlist, add tracks to it
    PersistenceSink   best-effort store for resolved playlists

This module also holds the small value types those interfaces exchange
(Page, PlaylistMetadata) and the retry helper shared by the adapters.

Retry Strategy (with_retry):
    - Exponential backoff: 2s -> 4s -> 8s ... capped at 30s
    - Jitter: +-30% randomization so parallel workers don't retry in lockstep
    - Rate limit detection: 2x delay multiplier for 429 errors
    - Only transient CatalogErrors are retried; everything else propagates
"""

import random
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Generic, Protocol, Sequence, TypeVar

from harmony_sync.core.exceptions import CatalogError
from harmony_sync.core.logger import get_logger
from harmony_sync.matching.models import Candidate

if TYPE_CHECKING:
    from harmony_sync.sync.cache import ResolutionCacheEntry


logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# RETRY CONFIGURATION FOR TRANSIENT ERRORS
# =============================================================================

MAX_RETRIES = 3
RETRY_DELAY_BASE = 2.0
RETRY_DELAY_MAX = 30.0
RETRY_JITTER_FACTOR = 0.3
RATE_LIMIT_DELAY_MULTIPLIER = 2.0

# Substrings of error messages that indicate a temporary failure
TRANSIENT_ERROR_PATTERNS = (
    # JSON/parsing errors (empty or malformed response)
    "expecting value",
    "json",
    "decode",

    # Rate limiting
    "429",
    "rate",
    "too many",
    "quota",
    "throttl",

    # Connection errors
    "connection",
    "timeout",
    "timed out",
    "reset",
    "refused",
    "ssl",

    # Server errors
    "500",
    "502",
    "503",
    "504",
    "temporarily",
    "unavailable",
    "server error",

    # Network errors
    "network",
    "unreachable",
    "dns",
)


def is_transient_error_message(message: str) -> bool:
    """Check if an error message indicates a transient (temporary) error."""
    lowered = message.lower()
    return any(pattern in lowered for pattern in TRANSIENT_ERROR_PATTERNS)


# =============================================================================
# Value types
# =============================================================================

@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One page of a paginated remote listing.

    Attributes:
        items: Items on this page, in catalog order.
        next_cursor: Opaque token for the next page, None on the last page.
    """

    items: tuple[T, ...]
    next_cursor: str | None = None


@dataclass(frozen=True)
class PlaylistMetadata:
    """
    Catalog-independent playlist header.

    Attributes:
        remote_id: Playlist identifier in its catalog.
        name: Playlist title.
        description: Playlist description ("" when none).
        owner: Display name of the owner.
        origin: Catalog name ("Spotify", "YouTube Music").
        track_total: Number of tracks the catalog reports.
        image_url: Cover image URL, if any.
    """

    remote_id: str
    name: str
    description: str = ""
    owner: str = ""
    origin: str = ""
    track_total: int = 0
    image_url: str | None = None


# =============================================================================
# Interfaces
# =============================================================================

class CatalogClient(Protocol):
    """Read side of a remote catalog."""

    def search(self, query: str, limit: int) -> list[Candidate]:
        """Text search for tracks."""
        ...

    def fetch_tracks_page(self, playlist_id: str, cursor: str | None = None) -> Page[Candidate]:
        """One page of a playlist's tracks."""
        ...

    def fetch_playlist_metadata(self, playlist_id: str) -> PlaylistMetadata:
        """Playlist header. Raises CatalogError(is_not_found=True) if absent."""
        ...


class PlaylistWriter(Protocol):
    """Write side of a remote catalog."""

    def create_playlist(self, name: str, description: str) -> str:
        """Create an empty playlist and return its id."""
        ...

    def add_tracks_to_playlist(self, playlist_id: str, track_ids: Sequence[str]) -> None:
        """Append tracks to a playlist."""
        ...


class PersistenceSink(Protocol):
    """Best-effort store for resolved playlists. Failures are non-fatal."""

    def persist_resolved_playlist(self, entry: "ResolutionCacheEntry") -> None:
        ...


# =============================================================================
# Retry helper
# =============================================================================

def with_retry(
    operation: Callable[[], T],
    description: str,
    max_retries: int = MAX_RETRIES,
    sleep: Callable[[float], None] = time.sleep
) -> T:
    """
    Run a catalog operation, retrying transient failures with backoff.

    Args:
        operation: Zero-argument callable performing one remote call.
        description: Short text for log messages (e.g. the search query).
        max_retries: Total number of attempts.
        sleep: Sleep function (injected by tests).

    Returns:
        Whatever the operation returns.

    Raises:
        CatalogError: The last error if every attempt failed transiently,
                      or immediately for non-transient errors.
    """
    for attempt in range(max_retries):
        try:
            return operation()
        except CatalogError as e:
            if not e.is_transient or attempt == max_retries - 1:
                raise

            base_delay = min(RETRY_DELAY_BASE * (2 ** attempt), RETRY_DELAY_MAX)
            if e.is_rate_limit:
                base_delay = min(base_delay * RATE_LIMIT_DELAY_MULTIPLIER, RETRY_DELAY_MAX)

            jitter = base_delay * RETRY_JITTER_FACTOR * (2 * random.random() - 1)
            delay = max(0.5, base_delay + jitter)

            log_msg = (
                f"{description}: attempt {attempt + 1}/{max_retries} failed: {e}. "
                f"Retrying in {delay:.1f}s"
            )
            if e.is_rate_limit:
                logger.warning(log_msg + " (rate limit detected)")
            else:
                logger.debug(log_msg)

            sleep(delay)

    # Unreachable with max_retries >= 1
    raise CatalogError(f"{description}: no attempts made", details={"max_retries": max_retries})
