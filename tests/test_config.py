"""Tests for exporter settings."""

import pytest
from pydantic import ValidationError
from cdh_exporter.config import Settings


class TestDefaults:
    def test_defaults(self, monkeypatch):
        for key in [
            "CDH_EXPORTER_LISTEN_ADDRESS",
            "CDH_EXPORTER_COMPONENTS",
            "CDH_EXPORTER_LOG_LEVEL",
        ]:
            monkeypatch.delenv(key, raising=False)

        settings = Settings(_env_file=None)

        assert settings.listen_address == ":9232"
        assert settings.telemetry_path == "/metrics"
        assert settings.components == ["hbase", "hdfs", "zookeeper", "yarn"]
        assert settings.api_version == "v33"
        assert settings.cluster_name == "Cluster 1"
        assert settings.log_level == "info"

    def test_listen_address_without_host_binds_all_interfaces(self):
        settings = Settings(_env_file=None, listen_address=":9232")

        assert settings.listen_host == "0.0.0.0"
        assert settings.listen_port == 9232

    def test_listen_address_with_host(self):
        settings = Settings(_env_file=None, listen_address="127.0.0.1:9100")

        assert settings.listen_host == "127.0.0.1"
        assert settings.listen_port == 9100


class TestEnvironment:
    def test_components_comma_separated(self, monkeypatch):
        monkeypatch.setenv("CDH_EXPORTER_COMPONENTS", "hdfs, yarn,,hive")

        settings = Settings(_env_file=None)

        assert settings.components == ["hdfs", "yarn", "hive"]

    def test_components_json_list(self, monkeypatch):
        monkeypatch.setenv("CDH_EXPORTER_COMPONENTS", '["kafka", "hbase"]')

        settings = Settings(_env_file=None)

        assert settings.components == ["kafka", "hbase"]

    def test_init_arguments_override_environment(self, monkeypatch):
        monkeypatch.setenv("CDH_EXPORTER_CDH_ADDRESS", "env-host:7180")

        settings = Settings(_env_file=None, cdh_address="flag-host:7180")

        assert settings.cdh_address == "flag-host:7180"


class TestValidation:
    def test_rejects_empty_components(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, components=[" ", ""])

    def test_rejects_relative_telemetry_path(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, telemetry_path="metrics")

    def test_rejects_root_telemetry_path(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, telemetry_path="/")

    @pytest.mark.parametrize("address", ["9232", "localhost", ":abc", ":70000"])
    def test_rejects_bad_listen_address(self, address):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, listen_address=address)

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="verbose")

    def test_warn_is_normalized(self):
        assert Settings(_env_file=None, log_level="WARN").log_level == "warning"


class TestCredential:
    def test_credential_hidden_from_repr(self):
        settings = Settings(_env_file=None, user_account="Basic c2VjcmV0")

        assert "c2VjcmV0" not in repr(settings)
        assert settings.credential == "Basic c2VjcmV0"
