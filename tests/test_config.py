# tests/test_config.py
"""Test configuration loading"""

import pytest

from harmony_sync.core.config import SyncSettings, load_config, parse_config
from harmony_sync.core.exceptions import ConfigError


def write_config(temp_dir, content):
    path = temp_dir / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadConfig:
    """Test reading config.yaml"""

    def test_missing_file(self, temp_dir):
        """Test a missing config file"""
        with pytest.raises(ConfigError) as exc_info:
            load_config(temp_dir / "missing.yaml")
        assert "not found" in exc_info.value.message

    def test_invalid_yaml(self, temp_dir):
        """Test invalid YAML syntax"""
        path = write_config(temp_dir, "output: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_not_a_dictionary(self, temp_dir):
        """Test a top-level list is rejected"""
        path = write_config(temp_dir, "- just\n- a list\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_minimal_config_uses_defaults(self, temp_dir):
        """Test defaults for omitted sections"""
        path = write_config(temp_dir, f"output:\n  directory: \"{temp_dir}\"\n")

        config = load_config(path)

        assert config.output.directory == temp_dir.resolve()
        assert config.output.database_path.parent == temp_dir.resolve()
        assert config.spotify is None
        assert config.ytmusic.auth_file is None
        assert config.sync == SyncSettings()

    def test_full_config(self, temp_dir):
        """Test every section is read"""
        auth_file = temp_dir / "browser.json"
        auth_file.write_text("{}", encoding="utf-8")
        path = write_config(temp_dir, f"""
spotify:
  client_id: "abc"
  client_secret: "def"
  user_auth: false
ytmusic:
  auth_file: "{auth_file}"
  language: "de"
output:
  directory: "{temp_dir}"
sync:
  resolve_batch_size: 3
  add_delay: 2
matching:
  weights:
    cover_penalty: 0.5
  thresholds:
    min_score: 0.65
""")

        config = load_config(path)

        assert config.spotify.client_id == "abc"
        assert config.spotify.user_auth is False
        assert config.ytmusic.auth_file == auth_file.resolve()
        assert config.ytmusic.language == "de"
        assert config.sync.resolve_batch_size == 3
        assert config.sync.add_delay == 2.0
        assert config.matching.weights.cover_penalty == 0.5
        assert config.matching.weights.name == 0.45
        assert config.matching.thresholds.min_score == 0.65


class TestValidation:
    """Test rejected values"""

    def test_missing_output_section(self):
        """Test the output section is required"""
        with pytest.raises(ConfigError) as exc_info:
            parse_config({"spotify": {"client_id": "a", "client_secret": "b"}})
        assert exc_info.value.details["missing_section"] == "output"

    def test_empty_spotify_credentials(self, temp_dir):
        """Test blank Spotify credentials"""
        with pytest.raises(ConfigError) as exc_info:
            parse_config({"output": {"directory": str(temp_dir)}, "spotify": {"client_id": ""}})
        assert exc_info.value.details["field"] == "spotify.client_id"

    @pytest.mark.parametrize("value", [0, -1, "5", True, 2.5])
    def test_bad_batch_size(self, temp_dir, value):
        """Test invalid batch sizes"""
        with pytest.raises(ConfigError) as exc_info:
            parse_config({"output": {"directory": str(temp_dir)}, "sync": {"add_batch_size": value}})
        assert exc_info.value.details["field"] == "sync.add_batch_size"

    def test_negative_delay(self, temp_dir):
        """Test negative delays"""
        with pytest.raises(ConfigError):
            parse_config({"output": {"directory": str(temp_dir)}, "sync": {"resolve_delay": -0.5}})

    def test_unknown_matching_key(self, temp_dir):
        """Test unknown matching keys"""
        with pytest.raises(ConfigError) as exc_info:
            parse_config({
                "output": {"directory": str(temp_dir)},
                "matching": {"weights": {"popularity": 1.0}},
            })
        assert exc_info.value.details["unknown"] == ["popularity"]

    def test_missing_auth_file(self, temp_dir):
        """Test a YouTube Music auth file that does not exist"""
        with pytest.raises(ConfigError) as exc_info:
            parse_config({
                "output": {"directory": str(temp_dir)},
                "ytmusic": {"auth_file": str(temp_dir / "nope.json")},
            })
        assert exc_info.value.details["field"] == "ytmusic.auth_file"
