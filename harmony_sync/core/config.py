"""
Configuration management for harmony-sync.

Loads and validates config.yaml into frozen dataclasses.

Sections:
    - spotify: API credentials (required for any Spotify operation)
    - ytmusic: optional auth file for YouTube Music playlist mutations
    - output: base directory for logs and the playlist database (required)
    - sync: batch sizes and delays used when talking to remote catalogs
    - matching: optional overrides of the scoring weights and thresholds

Configuration File Location:
    config.yaml in the current working directory, or the path passed
    with --config.

Example config.yaml:
    spotify:
      client_id: "your_client_id_here"
      client_secret: "your_client_secret_here"
      user_auth: true

    ytmusic:
      auth_file: "~/.harmony/browser.json"

    output:
      directory: "~/.harmony"

    sync:
      resolve_batch_size: 5
      resolve_delay: 1.0
      add_batch_size: 25
      add_delay: 1.0
      page_delay: 0.5
      description_suffix: "(Transferred using Harmony)"

    matching:
      thresholds:
        min_score: 0.6

The matching defaults were calibrated on real transfers; override them
only with new calibration data.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from harmony_sync.core.exceptions import ConfigError
from harmony_sync.matching.scoring import DEFAULT_WEIGHTS, MatchWeights
from harmony_sync.matching.selector import DEFAULT_THRESHOLDS, SelectionThresholds


# Default configuration file name (in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"
DEFAULT_DESCRIPTION_SUFFIX = "(Transferred using Harmony)"


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify API credentials.

    Obtained from the Spotify Developer Dashboard:
    https://developer.spotify.com/dashboard

    Attributes:
        client_id: The Spotify application client ID.
        client_secret: The Spotify application client secret.
        user_auth: Use the OAuth user flow (needed to create playlists and
                   list the user's library). False uses client credentials.
        redirect_uri: OAuth redirect URI registered for the application.
    """
    client_id: str
    client_secret: str
    user_auth: bool = True
    redirect_uri: str = DEFAULT_REDIRECT_URI


@dataclass(frozen=True)
class YTMusicConfig:
    """
    YouTube Music settings.

    Attributes:
        auth_file: Browser/OAuth header file produced by `ytmusicapi
                   browser`. Searches work without it; creating and
                   editing playlists does not.
        language: Language for search results.
    """
    auth_file: Path | None = None
    language: str = "en"


@dataclass(frozen=True)
class OutputConfig:
    """
    Attributes:
        directory: Base directory, ~ expanded. Holds logs/ and the SQLite
                   playlist database.
    """
    directory: Path

    @property
    def database_path(self) -> Path:
        return self.directory / "playlists.db"


@dataclass(frozen=True)
class SyncSettings:
    """
    Rate-limit settings for remote catalog traffic.

    Attributes:
        resolve_batch_size: Tracks resolved concurrently per chunk.
        resolve_delay: Seconds between resolution chunks.
        add_batch_size: Track ids per add-to-playlist request.
        add_delay: Seconds between add-to-playlist requests.
        page_delay: Seconds between paginated listing requests.
        description_suffix: Appended to a transferred playlist's description.
    """
    resolve_batch_size: int = 5
    resolve_delay: float = 1.0
    add_batch_size: int = 25
    add_delay: float = 1.0
    page_delay: float = 0.5
    description_suffix: str = DEFAULT_DESCRIPTION_SUFFIX


@dataclass(frozen=True)
class MatchingConfig:
    """Scoring weights and selection thresholds."""
    weights: MatchWeights = DEFAULT_WEIGHTS
    thresholds: SelectionThresholds = DEFAULT_THRESHOLDS


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration, as returned by load_config().

    Attributes:
        output: Output directory settings.
        spotify: Spotify credentials, None when the section is absent.
        ytmusic: YouTube Music settings.
        sync: Batch sizes and delays.
        matching: Scoring weights and thresholds.

    Example:
        config = load_config()
        print(f"Logs in: {config.output.directory / 'logs'}")
    """
    output: OutputConfig
    spotify: SpotifyConfig | None = None
    ytmusic: YTMusicConfig = field(default_factory=YTMusicConfig)
    sync: SyncSettings = field(default_factory=SyncSettings)
    matching: MatchingConfig = field(default_factory=MatchingConfig)


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Explicit path to the config file. If None, looks for
                     config.yaml in the current working directory.

    Returns:
        Config: Frozen configuration with defaults applied.

    Raises:
        ConfigError: If the file is missing, is not valid YAML, lacks the
                     output section, or holds an invalid value. The error
                     details name the offending field.

    Example:
        try:
            config = load_config()
        except ConfigError as e:
            print(f"Configuration error: {e.message}")
            sys.exit(1)
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return parse_config(raw_config)


def parse_config(raw_config: dict[str, Any]) -> Config:
    """Build a Config from an already-parsed dictionary."""
    if "output" not in raw_config:
        raise ConfigError(
            "Missing required section: 'output'",
            details={"missing_section": "output"}
        )

    spotify_section = _section(raw_config, "spotify")

    return Config(
        output=_parse_output_config(_section(raw_config, "output")),
        spotify=_parse_spotify_config(spotify_section) if spotify_section is not None else None,
        ytmusic=_parse_ytmusic_config(_section(raw_config, "ytmusic")),
        sync=_parse_sync_settings(_section(raw_config, "sync")),
        matching=_parse_matching_config(_section(raw_config, "matching")),
    )


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any] | None:
    value = raw_config.get(name)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return value


def _required_string(section: dict[str, Any], key: str, field_name: str) -> str:
    value = section.get(key, "")
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{field_name}' must be a non-empty string",
            details={"field": field_name}
        )
    return value.strip()


def _parse_spotify_config(spotify_section: dict[str, Any]) -> SpotifyConfig:
    client_id = _required_string(spotify_section, "client_id", "spotify.client_id")
    client_secret = _required_string(spotify_section, "client_secret", "spotify.client_secret")

    user_auth = spotify_section.get("user_auth", True)
    if not isinstance(user_auth, bool):
        raise ConfigError(
            "'spotify.user_auth' must be true or false",
            details={"field": "spotify.user_auth", "value": user_auth}
        )

    redirect_uri = spotify_section.get("redirect_uri", DEFAULT_REDIRECT_URI)
    if not isinstance(redirect_uri, str) or not redirect_uri.strip():
        raise ConfigError(
            "'spotify.redirect_uri' must be a non-empty string",
            details={"field": "spotify.redirect_uri"}
        )

    return SpotifyConfig(
        client_id=client_id,
        client_secret=client_secret,
        user_auth=user_auth,
        redirect_uri=redirect_uri.strip()
    )


def _parse_ytmusic_config(ytmusic_section: dict[str, Any] | None) -> YTMusicConfig:
    if ytmusic_section is None:
        return YTMusicConfig()

    auth_file = None
    raw_auth = ytmusic_section.get("auth_file")
    if raw_auth is not None:
        if not isinstance(raw_auth, str) or not raw_auth.strip():
            raise ConfigError(
                "'ytmusic.auth_file' must be a string path or null",
                details={"field": "ytmusic.auth_file"}
            )
        auth_file = Path(raw_auth.strip()).expanduser().resolve()
        if not auth_file.exists():
            raise ConfigError(
                f"YouTube Music auth file not found: {auth_file}",
                details={"field": "ytmusic.auth_file", "path": str(auth_file)}
            )

    language = ytmusic_section.get("language", "en")
    if not isinstance(language, str) or not language.strip():
        raise ConfigError(
            "'ytmusic.language' must be a non-empty string",
            details={"field": "ytmusic.language"}
        )

    return YTMusicConfig(auth_file=auth_file, language=language.strip())


def _parse_output_config(output_section: dict[str, Any] | None) -> OutputConfig:
    if output_section is None:
        raise ConfigError(
            "Section 'output' must be a dictionary",
            details={"section": "output"}
        )
    directory = _required_string(output_section, "directory", "output.directory")
    return OutputConfig(directory=Path(directory).expanduser().resolve())


def _positive_int(section: dict[str, Any], key: str, default: int, prefix: str) -> int:
    value = section.get(key, default)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(
            f"'{prefix}.{key}' must be a positive integer",
            details={"field": f"{prefix}.{key}", "value": value}
        )
    return value


def _non_negative_float(section: dict[str, Any], key: str, default: float, prefix: str) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(
            f"'{prefix}.{key}' must be a non-negative number",
            details={"field": f"{prefix}.{key}", "value": value}
        )
    return float(value)


def _parse_sync_settings(sync_section: dict[str, Any] | None) -> SyncSettings:
    defaults = SyncSettings()
    if sync_section is None:
        return defaults

    suffix = sync_section.get("description_suffix", defaults.description_suffix)
    if not isinstance(suffix, str):
        raise ConfigError(
            "'sync.description_suffix' must be a string",
            details={"field": "sync.description_suffix", "value": suffix}
        )

    return SyncSettings(
        resolve_batch_size=_positive_int(sync_section, "resolve_batch_size", defaults.resolve_batch_size, "sync"),
        resolve_delay=_non_negative_float(sync_section, "resolve_delay", defaults.resolve_delay, "sync"),
        add_batch_size=_positive_int(sync_section, "add_batch_size", defaults.add_batch_size, "sync"),
        add_delay=_non_negative_float(sync_section, "add_delay", defaults.add_delay, "sync"),
        page_delay=_non_negative_float(sync_section, "page_delay", defaults.page_delay, "sync"),
        description_suffix=suffix,
    )


def _override_numbers(section: dict[str, Any] | None, defaults: Any, prefix: str) -> Any:
    """Return a copy of a frozen numeric dataclass with overrides applied."""
    if section is None:
        return defaults
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{prefix}' must be a dictionary",
            details={"section": prefix}
        )

    known = {f.name for f in fields(defaults)}
    unknown = set(section) - known
    if unknown:
        raise ConfigError(
            f"Unknown keys in '{prefix}': {', '.join(sorted(unknown))}",
            details={"section": prefix, "unknown": sorted(unknown)}
        )

    values = {}
    for name in known:
        values[name] = _non_negative_float(section, name, getattr(defaults, name), prefix)
    return type(defaults)(**values)


def _parse_matching_config(matching_section: dict[str, Any] | None) -> MatchingConfig:
    if matching_section is None:
        return MatchingConfig()

    return MatchingConfig(
        weights=_override_numbers(matching_section.get("weights"), DEFAULT_WEIGHTS, "matching.weights"),
        thresholds=_override_numbers(
            matching_section.get("thresholds"), DEFAULT_THRESHOLDS, "matching.thresholds"
        ),
    )
