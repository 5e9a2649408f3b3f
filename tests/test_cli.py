# tests/test_cli.py
"""Test the command-line interface"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from harmony_sync import __version__
from harmony_sync.cli import cli
from harmony_sync.core.database import PlaylistStore
from tests.conftest import FakeCatalog, make_candidate


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(temp_dir):
    path = temp_dir / "config.yaml"
    path.write_text(
        f"output:\n"
        f"  directory: \"{temp_dir}\"\n"
        f"sync:\n"
        f"  resolve_delay: 0\n"
        f"  add_delay: 0\n"
        f"  page_delay: 0\n",
        encoding="utf-8"
    )
    return path


class TestArguments:
    """Test option validation"""

    def test_version(self, runner):
        """Test --version"""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_action_shows_help(self, runner):
        """Test help is shown without an action"""
        result = runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "--playlist" in result.output

    def test_single_action_only(self, runner):
        """Test actions are mutually exclusive"""
        result = runner.invoke(cli, ["--library", "--resolve", "Queen - Song"])
        assert result.exit_code == 2

    def test_same_source_and_target(self, runner):
        """Test source and target must differ"""
        result = runner.invoke(cli, ["--playlist", "abc", "--source", "spotify", "--target", "spotify"])
        assert result.exit_code == 2

    def test_invalid_playlist_url(self, runner):
        """Test a track URL is rejected as a playlist"""
        result = runner.invoke(cli, ["--playlist", "https://open.spotify.com/track/abc"])
        assert result.exit_code == 2

    def test_invalid_resolve_format(self, runner):
        """Test --resolve needs "Artist - Title" """
        result = runner.invoke(cli, ["--resolve", "just a title"])
        assert result.exit_code == 2

    def test_missing_config(self, runner, temp_dir):
        """Test a missing config file exits with an error"""
        with runner.isolated_filesystem(temp_dir=temp_dir):
            result = runner.invoke(cli, ["--resolve", "Queen - Song"])
        assert result.exit_code == 1


class TestActions:
    """Test actions end to end with in-memory catalogs"""

    def test_resolve(self, runner, config_file):
        """Test resolving a single track"""
        target = FakeCatalog(search_results={
            "Bohemian Rhapsody Queen": [make_candidate("Bohemian Rhapsody", "Queen", "yt-1")],
        })
        with patch("harmony_sync.cli._build_catalog", return_value=target):
            result = runner.invoke(cli, ["--resolve", "Queen - Bohemian Rhapsody", "--config", str(config_file)])

        assert result.exit_code == 0
        assert target.search_calls[0] == ("Bohemian Rhapsody Queen", 15)

    def test_transfer(self, runner, config_file, temp_dir, source_catalog):
        """Test a full playlist transfer"""
        target = FakeCatalog(search_results={
            "Bohemian Rhapsody Queen": [make_candidate("Bohemian Rhapsody", "Queen", "yt-1")],
            "Halo Beyoncé": [make_candidate("Halo", "Beyoncé", "yt-4")],
        })
        catalogs = {"spotify": source_catalog, "ytmusic": target}

        with patch("harmony_sync.cli._build_catalog", side_effect=lambda name, config: catalogs[name]):
            result = runner.invoke(cli, ["--playlist", "pl1", "--config", str(config_file)])

        assert result.exit_code == 0
        assert target.created == [("Road Trip", "Songs for the car (Transferred using Harmony)")]
        assert target.added == [("new-1", ["yt-1", "yt-4"])]

        store = PlaylistStore(temp_dir / "playlists.db")
        try:
            assert store.playlist_exists("pl1")
        finally:
            store.close()

    def test_transfer_missing_playlist(self, runner, config_file, source_catalog):
        """Test a missing source playlist creates nothing"""
        catalogs = {"spotify": source_catalog, "ytmusic": FakeCatalog()}

        with patch("harmony_sync.cli._build_catalog", side_effect=lambda name, config: catalogs[name]):
            result = runner.invoke(cli, ["--playlist", "gone", "--config", str(config_file)])

        assert result.exit_code == 1
        assert catalogs["ytmusic"].created == []
