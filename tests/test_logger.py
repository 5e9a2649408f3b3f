# tests/test_logger.py
"""Test logging setup and the match failures report"""

import logging

from harmony_sync.core.logger import (
    get_logger,
    log_match_failure,
    setup_logging,
    shutdown_logging,
)


class TestSetupLogging:
    """Test log file creation"""

    def test_match_failures_report(self, temp_dir):
        """Test match failures and errors go to their own files"""
        logs_dir = setup_logging(temp_dir, console_level=logging.CRITICAL)
        try:
            logger = get_logger("harmony_sync.tests")
            log_match_failure(logger, "Song", "Artist A", "no acceptable candidate", "spotify:track:1")
            logger.warning("ordinary warning")
            logger.error("something broke")
        finally:
            shutdown_logging()

        report = next(logs_dir.glob("match_failures_*.log")).read_text(encoding="utf-8")
        assert report == "Artist A - Song\nsource: spotify:track:1\nreason: no acceptable candidate\n\n"

        errors = next(logs_dir.glob("log_errors_*.log")).read_text(encoding="utf-8")
        assert "something broke" in errors
        assert "ordinary warning" not in errors

    def test_shutdown_detaches_handlers(self, temp_dir):
        """Test shutdown removes every handler"""
        setup_logging(temp_dir, console_level=logging.CRITICAL)
        shutdown_logging()
        assert logging.getLogger().handlers == []
