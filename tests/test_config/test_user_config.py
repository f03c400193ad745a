"""Tests for user configuration loading."""

import logging

import pytest

from tpibox.config import UserConfig, create_user_config
from tpibox.config.models import BMCConfig, UserConfigData
from tpibox.core.errors import ConfigError


class TestUserConfigDefaults:
    def test_defaults_without_any_file(self, isolated_environment):
        config = create_user_config()

        assert config.config_path is None
        assert config.data.bmc.host == "turingpi.local"
        assert config.data.default_cache == "none"
        assert config.data.cache_path == (
            isolated_environment["cache_home"] / "tpibox" / "images"
        )
        assert config.get_source("bmc.host") == "default"
        assert config.get_log_level_int() == logging.WARNING

    def test_base_url(self):
        assert BMCConfig(host="10.0.0.2").base_url == "https://10.0.0.2"
        assert BMCConfig(host="http://10.0.0.2/").base_url == "http://10.0.0.2"


class TestConfigFiles:
    def test_xdg_config_file(self, isolated_environment):
        config_dir = isolated_environment["config_home"] / "tpibox"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text(
            "log_level: debug\nbmc:\n  host: 10.0.0.9\n  password: secret\n"
        )

        config = UserConfig()

        assert config.config_path == config_dir / "config.yaml"
        assert config.data.bmc.host == "10.0.0.9"
        assert config.data.bmc.ssh_password == "secret"
        assert config.get_source("bmc.host") == "file:config.yaml"
        assert config.get_log_level_int() == logging.DEBUG

    def test_working_directory_file_wins_over_xdg(self, isolated_environment):
        config_dir = isolated_environment["config_home"] / "tpibox"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("default_cache: bmc\n")
        (isolated_environment["work_dir"] / "tpibox.yaml").write_text(
            "default_cache: local\n"
        )

        assert UserConfig().data.default_cache == "local"

    def test_cli_file_wins(self, tmp_path, isolated_environment):
        (isolated_environment["work_dir"] / "tpibox.yaml").write_text(
            "default_cache: local\n"
        )
        cli_file = tmp_path / "custom.yaml"
        cli_file.write_text("default_cache: BMC\nflash_timeout: 60\n")

        config = UserConfig(cli_config_path=cli_file)

        assert config.config_path == cli_file
        assert config.data.default_cache == "bmc"
        assert config.data.flash_timeout == 60

    def test_missing_cli_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            UserConfig(cli_config_path=tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("bmc: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            UserConfig(cli_config_path=path)

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="mapping"):
            UserConfig(cli_config_path=path)

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert UserConfig(cli_config_path=path).data.default_cache == "none"

    @pytest.mark.parametrize(
        "content",
        ["log_level: chatty\n", "default_cache: s3\n", "flash_timeout: -5\n"],
    )
    def test_invalid_values(self, tmp_path, content):
        path = tmp_path / "bad.yaml"
        path.write_text(content)

        with pytest.raises(ConfigError, match="Invalid configuration"):
            UserConfig(cli_config_path=path)


class TestEnvironmentOverrides:
    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("bmc:\n  host: from-file\n  username: admin\n")
        monkeypatch.setenv("TPIBOX_BMC__HOST", "from-env")
        monkeypatch.setenv("TPIBOX_DEFAULT_CACHE", "local")

        config = UserConfig(cli_config_path=path)

        assert config.data.bmc.host == "from-env"
        assert config.data.bmc.username == "admin"
        assert config.data.default_cache == "local"
        assert config.get_source("bmc.host") == "environment"
        assert config.get_source("bmc.username") == "file:config.yaml"

    def test_get_by_dotted_key(self, monkeypatch):
        monkeypatch.setenv("TPIBOX_BMC__SSH_PORT", "2222")

        config = UserConfig()

        assert config.get("bmc.ssh_port") == 2222
        assert config.get("bmc.nope", "fallback") == "fallback"

    def test_cache_path_expands_user(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))

        data = UserConfigData(cache_path="~/images")

        assert data.cache_path == tmp_path / "images"
