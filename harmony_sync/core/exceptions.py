"""
Exception classes for harmony-sync.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional details
dictionary, and the catalog exception additionally classifies the failure
so callers can decide between caching, skipping and aborting.

Exception Hierarchy:
    HarmonyError (base)
        ConfigError - Configuration file issues
        DatabaseError - SQLite persistence issues
        ValidationError - Malformed input (missing name/artist, bad playlist)
        CatalogError - Remote catalog issues (not found, rate limit, auth)

Note:
    "No acceptable match" is NOT an exception. The resolver returns None
    and the caller records the track as a failure.
"""


class HarmonyError(Exception):
    """
    Base exception for all harmony-sync errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all harmony-sync errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., playlist id).

    Example:
        try:
            report = synchronizer.sync_playlist(source, create, add)
        except HarmonyError as e:
            logger.error(f"Transfer failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'playlist_id': Remote playlist involved in the error
                     - 'query': Search query that failed
                     - 'original_error': The underlying exception text
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(HarmonyError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml not found
        - config.yaml has invalid YAML syntax
        - Invalid field values (e.g., zero batch size, negative delay)

    Example:
        raise ConfigError(
            "'sync.resolve_batch_size' must be a positive integer",
            details={'field': 'sync.resolve_batch_size', 'value': 0}
        )
    """
    pass


class DatabaseError(HarmonyError):
    """
    Raised when the SQLite playlist store cannot be opened or written.

    The resolution cache treats this as non-fatal: a playlist whose
    metadata was resolved stays resolved even if persisting it fails.
    """
    pass


class ValidationError(HarmonyError):
    """
    Raised when input is malformed.

    Short-circuits work for the offending item only. Typical cases are a
    TrackQuery without a name or artist, or a resolved playlist that does
    not satisfy the persistence schema.

    Example:
        raise ValidationError(
            "Track query requires a non-empty artist",
            details={'field': 'artist', 'name': 'Song Title'}
        )
    """
    pass


class CatalogError(HarmonyError):
    """
    Raised when a remote catalog (Spotify, YouTube Music) call fails.

    The flags classify the failure:

    Attributes:
        is_not_found: The remote entity is absent (HTTP 404). Cached
                      permanently by the resolution cache, never retried.
        is_rate_limit: The catalog throttled us (HTTP 429). Transient.
        is_auth_error: Credentials are missing/invalid (HTTP 401/403, with
                       details["http_status"] set), or the client was used
                       before being connected (no status: a contract
                       violation, see is_contract_violation).
        is_transient: Network or server hiccup. Aborts only the current
                      page or search strategy, never the whole run.

    Example:
        raise CatalogError(
            f"Playlist not found: {playlist_id}",
            details={'playlist_id': playlist_id, 'http_status': 404},
            is_not_found=True
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_not_found: bool = False,
        is_rate_limit: bool = False,
        is_auth_error: bool = False,
        is_transient: bool = False
    ) -> None:
        super().__init__(message, details)
        self.is_not_found = is_not_found
        self.is_rate_limit = is_rate_limit
        self.is_auth_error = is_auth_error
        # Rate limiting is always worth retrying later
        self.is_transient = is_transient or is_rate_limit

    @property
    def is_contract_violation(self) -> bool:
        """Auth error raised locally before any request (client not connected)."""
        return self.is_auth_error and "http_status" not in self.details
