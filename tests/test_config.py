"""
Unit tests for GatewayConfig and logging setup.
"""

import json
import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from nfs_gateway.config import GatewayConfig
from nfs_gateway.utils.logger import configure_logging, parse_level


class TestGatewayConfigDefaults:
    """Tests for default configuration values."""

    def test_defaults(self):
        config = GatewayConfig()

        assert config.data_root == "/var/lib/nfsg"
        assert config.api_host == "127.0.0.1"
        assert config.api_port == 80
        assert config.db_timeout_sec == 10.0
        assert config.exportfs_path is None
        assert config.setup_nfs is True

    def test_derived_paths(self):
        config = GatewayConfig(data_root="/srv/gw")

        assert config.nfs_root == Path("/srv/gw/nfs")
        assert config.db_path == Path("/srv/gw/volumes.db")

    def test_port_validation(self):
        with pytest.raises(ValidationError):
            GatewayConfig(api_port=70000)


class TestGatewayConfigSources:
    """Tests for environment and file loading."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("NFSG_DATA_ROOT", "/data")
        monkeypatch.setenv("NFSG_API_PORT", "8080")
        monkeypatch.setenv("NFSG_SETUP_NFS", "false")
        monkeypatch.setenv("NFSG_EXPORTFS", "/sbin/exportfs")

        config = GatewayConfig.from_env()

        assert config.data_root == "/data"
        assert config.api_port == 8080
        assert config.setup_nfs is False
        assert config.exportfs_path == "/sbin/exportfs"

    def test_from_yaml_file(self, temp_dir):
        path = temp_dir / "gateway.yaml"
        path.write_text("data_root: /yaml/root\napi_port: 2049\n")

        config = GatewayConfig.from_file(str(path))

        assert config.data_root == "/yaml/root"
        assert config.api_port == 2049

    def test_from_json_file(self, temp_dir):
        path = temp_dir / "gateway.json"
        path.write_text(json.dumps({"log_level": "debug"}))

        assert GatewayConfig.from_file(str(path)).log_level == "debug"

    def test_unsupported_format(self, temp_dir):
        path = temp_dir / "gateway.ini"
        path.write_text("")

        with pytest.raises(ValueError, match="Unsupported config format"):
            GatewayConfig.from_file(str(path))

    def test_env_overrides_file(self, temp_dir, monkeypatch):
        path = temp_dir / "gateway.yaml"
        path.write_text("data_root: /yaml/root\napi_port: 2049\n")
        monkeypatch.setenv("NFSG_API_PORT", "8080")

        config = GatewayConfig.load(str(path))

        assert config.data_root == "/yaml/root"
        assert config.api_port == 8080


class TestLogging:
    """Tests for logging helpers."""

    def test_parse_level(self):
        assert parse_level("debug") == logging.DEBUG
        assert parse_level("INFO") == logging.INFO
        assert parse_level(logging.ERROR) == logging.ERROR
        with pytest.raises(ValueError):
            parse_level("loud")

    def test_configure_logging_file(self, temp_dir):
        log_file = temp_dir / "gateway.log"
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level

        try:
            configure_logging("debug", file_path=str(log_file))
            logging.getLogger("nfs_gateway.tests").debug("hello file")
            for handler in root.handlers:
                handler.flush()
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

        assert "hello file" in log_file.read_text()
