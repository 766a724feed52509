"""Tests for configuration loading."""

from shared.config import Settings


class TestSettings:
    """Tests for YAML settings and environment overrides."""

    def write_config(self, tmp_path):
        config = tmp_path / "settings.yaml"
        config.write_text(
            "log_level: DEBUG\n"
            "mcp_server:\n"
            "  port: 8001\n"
            "  session_ttl_minutes: 15\n"
            "data_store:\n"
            "  backend: memory\n"
            "  seed_path: config/seed.yaml\n"
        )
        return config

    def test_yaml_values(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MCP_SERVER_PORT", raising=False)
        monkeypatch.delenv("DATA_STORE_BACKEND", raising=False)

        settings = Settings.from_yaml(self.write_config(tmp_path))

        assert settings.log_level == "DEBUG"
        assert settings.mcp_server.port == 8001
        assert settings.mcp_server.session_ttl_minutes == 15
        assert settings.data_store.backend == "memory"

    def test_environment_overrides_yaml(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MCP_SERVER_PORT", "9000")
        monkeypatch.setenv("DATA_STORE_BACKEND", "postgrest")
        monkeypatch.setenv("MCP_LOG_LEVEL", "WARNING")

        settings = Settings.from_yaml(self.write_config(tmp_path))

        assert settings.mcp_server.port == 9000
        assert settings.mcp_server.session_ttl_minutes == 15
        assert settings.data_store.backend == "postgrest"
        assert settings.data_store.seed_path == "config/seed.yaml"
        assert settings.log_level == "WARNING"

    def test_missing_file_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MCP_SERVER_PORT", raising=False)
        monkeypatch.delenv("DATA_STORE_BACKEND", raising=False)

        settings = Settings.from_yaml(tmp_path / "absent.yaml")

        assert settings.mcp_server.port == 8001
        assert settings.data_store.backend == "memory"
