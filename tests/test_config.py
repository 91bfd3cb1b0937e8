"""Unit tests for configuration management."""

import os
import stat
from unittest.mock import patch

import pytest

from couchassembler.config import Config


@pytest.fixture
def clean_env():
    """Remove couchassembler variables from the environment."""
    keys = ["COUCHDB_URL", "COUCHDB_USER", "COUCHDB_PASSWORD", "COUCHASM_MINIFY"]
    env = {k: v for k, v in os.environ.items() if k not in keys}
    with patch.dict(os.environ, env, clear=True):
        yield


class TestConfig:
    """Tests for Config."""

    def test_unconfigured(self, temp_dir, clean_env):
        config = Config(temp_dir)
        assert config.database_url is None
        assert not config.is_configured()
        assert config.minify is False

    def test_save_and_read(self, temp_dir, clean_env):
        config = Config(temp_dir / "cfg")
        config.save_settings("http://db/app", username="admin", password="pw")

        reloaded = Config(temp_dir / "cfg")
        assert reloaded.database_url == "http://db/app"
        assert reloaded.username == "admin"
        assert reloaded.password == "pw"
        assert reloaded.is_configured()
        assert reloaded.get_config_path() == temp_dir / "cfg" / "config"

    def test_file_is_private(self, temp_dir, clean_env):
        config = Config(temp_dir)
        config.save_settings("http://db/app", password="pw")
        mode = stat.S_IMODE(config.config_file.stat().st_mode)
        assert mode == 0o600

    def test_save_keeps_existing_keys(self, temp_dir, clean_env):
        config = Config(temp_dir)
        config.save_settings("http://db/one", username="admin", minify=True)
        config.save_settings("http://db/two")
        assert config.database_url == "http://db/two"
        assert config.username == "admin"
        assert config.minify is True

    def test_environment_overrides_file(self, temp_dir, clean_env):
        config = Config(temp_dir)
        config.save_settings("http://db/file")
        with patch.dict(os.environ, {"COUCHDB_URL": "http://db/env"}):
            assert config.database_url == "http://db/env"

    def test_comments_and_blank_lines_ignored(self, temp_dir, clean_env):
        (temp_dir / "config").write_text("# settings\n\nCOUCHDB_URL = http://db/x\n")
        assert Config(temp_dir).database_url == "http://db/x"

    @pytest.mark.parametrize(
        "value,expected", [("true", True), ("1", True), ("no", False)]
    )
    def test_minify_from_environment(self, temp_dir, clean_env, value, expected):
        with patch.dict(os.environ, {"COUCHASM_MINIFY": value}):
            assert Config(temp_dir).minify is expected
