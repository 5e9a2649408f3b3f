"""
Utility functions for harmony-sync.

    - Playlist id extraction from Spotify and YouTube Music URLs
    - Duration parsing and formatting
    - Path helpers

Usage:
    from harmony_sync.utils import extract_playlist_id, format_duration
"""

from pathlib import Path
from urllib.parse import parse_qs, urlparse


def ensure_directory(path: Path) -> Path:
    """Create a directory (and parents) if missing; returns the path."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def extract_spotify_id(url_or_id: str) -> str:
    """
    Extract a Spotify id from a URL or URI, or return the id as-is.

    Examples:
        extract_spotify_id("https://open.spotify.com/playlist/abc123?si=xyz")
        # Returns: "abc123"

        extract_spotify_id("spotify:playlist:abc123")
        # Returns: "abc123"
    """
    if url_or_id.startswith("spotify:"):
        return url_or_id.split(":")[-1]

    if "spotify.com" in url_or_id:
        url_or_id = url_or_id.split("?")[0]
        return url_or_id.rstrip("/").split("/")[-1]

    return url_or_id


def extract_playlist_id(url_or_id: str) -> str:
    """
    Extract a playlist id from a Spotify or YouTube Music playlist URL.

    Bare ids are returned unchanged (stripped of whitespace).

    Args:
        url_or_id: Playlist URL, spotify: URI or bare id.

    Returns:
        The playlist id.

    Raises:
        ValueError: If a URL is given that does not point to a playlist.

    Examples:
        extract_playlist_id("https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M")
        # Returns: "37i9dQZF1DXcBWIGoYBM5M"

        extract_playlist_id("https://music.youtube.com/playlist?list=PLabc")
        # Returns: "PLabc"
    """
    value = url_or_id.strip()
    if not value:
        raise ValueError("Playlist id must not be empty")

    if value.startswith("spotify:"):
        if ":playlist:" not in value:
            raise ValueError(f"Not a playlist URI: {value}")
        return extract_spotify_id(value)

    if "://" not in value:
        return value

    parsed = urlparse(value)
    if "spotify.com" in parsed.netloc:
        if "/playlist/" not in parsed.path:
            raise ValueError(f"Not a playlist URL: {value}")
        return extract_spotify_id(value)

    if "youtube.com" in parsed.netloc:
        playlist_ids = parse_qs(parsed.query).get("list")
        if not playlist_ids or not playlist_ids[0]:
            raise ValueError(f"Not a playlist URL: {value}")
        return playlist_ids[0]

    raise ValueError(f"Unsupported playlist URL: {value}")


def format_duration(seconds: int) -> str:
    """
    Format a duration in seconds as "M:SS" or "H:MM:SS".

    Examples:
        format_duration(225)   # "3:45"
        format_duration(3750)  # "1:02:30"
    """
    seconds = max(0, int(seconds))
    if seconds < 3600:
        minutes = seconds // 60
        secs = seconds % 60
        return f"{minutes}:{secs:02d}"
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    return f"{hours}:{minutes:02d}:{secs:02d}"


def parse_duration(duration_str: str | None) -> int:
    """
    Parse a "3:45" or "1:02:30" duration string to seconds.

    Returns 0 for None or anything that is not colon-separated digits.
    """
    if not duration_str:
        return 0
    try:
        parts = [int(p) for p in duration_str.strip().split(":")]
    except ValueError:
        return 0

    if len(parts) == 2:
        return parts[0] * 60 + parts[1]
    if len(parts) == 3:
        return parts[0] * 3600 + parts[1] * 60 + parts[2]
    if len(parts) == 1:
        return parts[0]
    return 0
