"""
Logging configuration for harmony-sync.

Outputs:
    - Console: colored, compact lines written through tqdm so that they
      appear above any active progress bar
    - logs/log_full_<ts>.log: every record, DEBUG and above
    - logs/log_errors_<ts>.log: ERROR and CRITICAL only
    - logs/match_failures_<ts>.log: tracks that could not be matched in
      the target catalog, one block per track

Records reach match_failures only when logged through log_match_failure(),
which attaches the extra fields MatchFailedTrackHandler looks for.

Usage:
    from harmony_sync.core.logger import setup_logging, get_logger

    setup_logging(output_dir)        # once, at startup
    logger = get_logger(__name__)    # per module
"""

import logging
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


# Log file name prefixes (a run timestamp is appended)
LOG_FULL_PREFIX = "log_full"
LOG_ERRORS_PREFIX = "log_errors"
MATCH_FAILURES_PREFIX = "match_failures"

FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """Prefix each console line with its level name in the level's color."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        return f"{color}{record.levelname}{Colors.RESET}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Console handler that writes through tqdm.write().

    Plain stderr writes would tear an active progress bar; tqdm.write()
    prints the message above it and redraws the bar.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
        except Exception:
            self.handleError(record)


class MatchFailedTrackHandler(logging.Handler):
    """
    Writes unmatched tracks to match_failures_<ts>.log.

    Only records carrying the 'match_failed_track_name' extra field are
    written; everything else is ignored. Each entry looks like:

        Artist Name - Song Title
        source: spotify:track:xxxxx
        reason: no acceptable candidate

    Extra fields:
        - 'match_failed_track_name': track title
        - 'match_failed_track_artist': artist credit
        - 'match_failed_source_id': id in the source catalog (optional)
        - 'match_failed_reason': short reason text

    Emission is serialized with a lock because tracks are resolved
    concurrently within a batch.
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None
        self._write_lock = threading.Lock()

    def open(self) -> None:
        """Open (and truncate) the report file. Called by setup_logging()."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "match_failed_track_name"):
            return

        if self.report_file is None:
            return

        try:
            name = getattr(record, "match_failed_track_name", "Unknown")
            artist = getattr(record, "match_failed_track_artist", "Unknown")
            source_id = getattr(record, "match_failed_source_id", None)
            reason = getattr(record, "match_failed_reason", "")

            lines = [f"{artist} - {name}"]
            if source_id:
                lines.append(f"source: {source_id}")
            if reason:
                lines.append(f"reason: {reason}")

            with self._write_lock:
                self.report_file.write("\n".join(lines) + "\n\n")
                self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """Let only ERROR and CRITICAL records through."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(output_dir: Path, console_level: int = logging.INFO) -> Path:
    """
    Configure the root logger for the application.

    Call once at startup, from the main thread, after the configuration
    has been loaded.

    Args:
        output_dir: Base directory; log files go to output_dir/logs.
        console_level: Minimum level printed to the console.

    Returns:
        The logs directory that was created or reused.

    Behavior:
        1. Create output_dir/logs
        2. Remove handlers left over from a previous setup
        3. Attach the console handler (colored, via tqdm)
        4. Attach the full and error-only file handlers
        5. Attach the match failures handler
    """
    logs_dir = output_dir / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    file_formatter = logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT)

    full_handler = logging.FileHandler(
        logs_dir / f"{LOG_FULL_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(file_formatter)
    root_logger.addHandler(full_handler)

    error_handler = logging.FileHandler(
        logs_dir / f"{LOG_ERRORS_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    error_handler.setLevel(logging.DEBUG)  # ErrorOnlyFilter restricts the level
    error_handler.setFormatter(file_formatter)
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    failures_handler = MatchFailedTrackHandler(logs_dir / f"{MATCH_FAILURES_PREFIX}_{timestamp}.log")
    failures_handler.open()
    root_logger.addHandler(failures_handler)

    # Third-party clients are chatty at DEBUG
    for noisy in ("urllib3", "spotipy", "ytmusicapi"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logs_dir


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module, normally called with __name__.

    Loggers obtained before setup_logging() have no handlers of their own
    and rely on whatever the root logger has at emit time.
    """
    return logging.getLogger(name)


def format_matched_message(artist: str, name: str, remote_id: str, score: float) -> str:
    return (
        f"{Colors.GREEN}Matched{Colors.RESET}: "
        f"{artist} - {name} -> "
        f"{Colors.CYAN}{remote_id}{Colors.RESET} "
        f"(score: {score:.2f})"
    )


def format_no_match_message(artist: str, name: str, reason: str) -> str:
    return (
        f"{Colors.RED}No match{Colors.RESET}: "
        f"{artist} - {name} "
        f"({reason})"
    )


def format_progress_message(completed: int, total: int, matched: int, failed: int) -> str:
    """
    Format a one-line progress summary.

    Example:
        format_progress_message(10, 12, 9, 1)
        # "Progress: 10/12 (matched: 9, failed: 1)" with colored counts
    """
    return (
        f"Progress: {completed}/{total} "
        f"(matched: {Colors.GREEN}{matched}{Colors.RESET}, "
        f"failed: {Colors.RED}{failed}{Colors.RESET})"
    )


def log_match_failure(
    logger: logging.Logger,
    track_name: str,
    artist: str,
    reason: str,
    source_id: str | None = None
) -> None:
    """
    Log a track that found no acceptable match in the target catalog.

    Logs at WARNING with the extra fields MatchFailedTrackHandler writes
    to match_failures_<ts>.log.

    Example:
        log_match_failure(logger, "Song", "Artist", "no acceptable candidate",
                          source_id="spotify:track:xxx")
    """
    logger.warning(
        format_no_match_message(artist, track_name, reason),
        extra={
            "match_failed_track_name": track_name,
            "match_failed_track_artist": artist,
            "match_failed_source_id": source_id,
            "match_failed_reason": reason,
        }
    )


def shutdown_logging() -> None:
    """Flush, close and detach every root handler. Call at exit."""
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except OSError:
            pass
        root_logger.removeHandler(handler)
