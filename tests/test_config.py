"""Tests for server configuration.

1. Default values
2. Environment variable loading
3. Validation of names, versions and bounds
4. The process-wide config instance
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from library_circulation.config import ServerConfig, get_config, reset_config


class TestServerConfig:
    def test_default_configuration(self, clean_env, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        config = ServerConfig(_env_file=None)

        assert config.server_name == "library-circulation"
        assert config.server_version == "0.1.0"
        assert config.transport == "stdio"
        assert config.database_path == (tmp_path / "data" / "circulation.db").absolute()
        assert config.database_path.parent.is_dir()
        assert config.allocation_attempts == 3
        assert config.seed_on_startup is False
        assert config.debug is False

    def test_environment_variable_loading(self, tmp_path):
        env_vars = {
            "LIBRARY_CIRCULATION_SERVER_NAME": "test-circulation",
            "LIBRARY_CIRCULATION_SERVER_VERSION": "2.0.0",
            "LIBRARY_CIRCULATION_DATABASE_PATH": str(tmp_path / "env.db"),
            "LIBRARY_CIRCULATION_ALLOCATION_ATTEMPTS": "5",
            "LIBRARY_CIRCULATION_SEED_ON_STARTUP": "true",
            "LIBRARY_CIRCULATION_DEBUG": "true",
            "LIBRARY_CIRCULATION_LOG_LEVEL": "DEBUG",
        }

        with patch.dict(os.environ, env_vars):
            config = ServerConfig()

            assert config.server_name == "test-circulation"
            assert config.server_version == "2.0.0"
            assert config.database_path == tmp_path / "env.db"
            assert config.allocation_attempts == 5
            assert config.seed_on_startup is True
            assert config.debug is True
            assert config.log_level == "DEBUG"

    def test_server_name_validation(self):
        for name in ["circulation", "test-123", "library-circulation"]:
            assert ServerConfig(server_name=name).server_name == name

        for name in ["Library_Server", "library server", "ab", "a" * 51]:
            with pytest.raises(ValidationError):
                ServerConfig(server_name=name)

    def test_version_validation(self):
        for version in ["1.0.0", "0.1.0-beta", "2.3.4-rc.1"]:
            assert ServerConfig(server_version=version).server_version == version

        for version in ["1.0", "v1.0.0", "1.0.0.0"]:
            with pytest.raises(ValidationError):
                ServerConfig(server_version=version)

    @pytest.mark.parametrize("attempts", [0, 11])
    def test_allocation_attempts_bounds(self, attempts):
        with pytest.raises(ValidationError):
            ServerConfig(allocation_attempts=attempts)

    def test_transport_validation(self):
        assert ServerConfig(transport="streamable_http").transport == "streamable_http"

        with pytest.raises(ValidationError):
            ServerConfig(transport="websocket")

    def test_relative_database_path_is_resolved(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        config = ServerConfig(database_path=Path("nested/dir/library.db"))

        assert config.database_path.is_absolute()
        assert (tmp_path / "nested" / "dir").is_dir()
        assert config.get_database_url() == f"sqlite:///{config.database_path}"

    def test_development_helpers(self, test_config):
        assert test_config.is_development is True
        assert test_config.server_info == {
            "name": "test-library-circulation",
            "version": "0.0.1-test",
            "transport": "stdio",
        }


class TestConfigSingleton:
    def test_get_config_returns_same_instance(self):
        assert get_config() is get_config()

    def test_reset_rereads_environment(self, monkeypatch):
        first = get_config()
        monkeypatch.setenv("LIBRARY_CIRCULATION_ALLOCATION_ATTEMPTS", "7")

        assert get_config() is first
        reset_config()
        assert get_config().allocation_attempts == 7
