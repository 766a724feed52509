"""Configuration management for the CRM MCP server.

Supports YAML configuration files and environment variable overrides.
Configuration is loaded once and cached for performance.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class EnvFirstSettings(BaseSettings):
    """Settings where environment variables override explicit (YAML) values."""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return env_settings, dotenv_settings, init_settings, file_secret_settings


class MCPServerSettings(EnvFirstSettings):
    """MCP Server configuration."""
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8001)

    # Identity advertised by initialize
    server_name: str = Field(default="crm-support-mcp-server")
    server_version: str = Field(default="1.0.0")
    protocol_version: str = Field(default="2024-11-05")

    # Key of this server inside each agent's permission record
    permission_namespace: str = Field(default="support-server")
    permission_cache_ttl_seconds: float = Field(default=0, ge=0, description="0 disables caching")

    # Sessions
    session_ttl_minutes: int = Field(default=60, gt=0)
    max_sessions: int = Field(default=10_000, gt=0)

    # Tools
    default_result_limit: int = Field(default=100, gt=0)

    # Audit
    audit_log_path: Optional[str] = Field(
        default=None,
        description="Optional JSONL file mirroring every audit entry"
    )

    model_config = SettingsConfigDict(
        env_prefix="MCP_SERVER_",
        env_file=".env",
        extra="ignore"
    )


class DataStoreSettings(EnvFirstSettings):
    """Data store backend configuration."""
    backend: Literal["memory", "postgrest"] = Field(default="memory")

    # PostgREST / Supabase
    url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATA_STORE_URL", "SUPABASE_URL", "url"),
    )
    service_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATA_STORE_SERVICE_KEY", "SUPABASE_SERVICE_ROLE_KEY", "service_key"),
    )
    timeout_seconds: float = Field(default=30, gt=0)

    # In-memory backend
    seed_path: Optional[str] = Field(default=None, description="YAML file with initial table rows")

    model_config = SettingsConfigDict(
        env_prefix="DATA_STORE_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )


class Settings(EnvFirstSettings):
    """Main application settings."""
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Component settings
    mcp_server: MCPServerSettings = Field(default_factory=MCPServerSettings)
    data_store: DataStoreSettings = Field(default_factory=DataStoreSettings)

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        extra="ignore"
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """
        Load settings from a YAML file.

        Component sections are built as their own settings objects so
        their prefixed environment variables still take precedence.
        """
        data = load_yaml_config(path)
        return cls(
            **{key: value for key, value in data.items() if key not in ("mcp_server", "data_store")},
            mcp_server=MCPServerSettings(**(data.get("mcp_server") or {})),
            data_store=DataStoreSettings(**(data.get("data_store") or {})),
        )


def load_yaml_config(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file."""
    path = Path(path)
    if not path.exists():
        return {}

    with open(path) as f:
        return yaml.safe_load(f) or {}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    config_path = os.environ.get("MCP_CONFIG_PATH", "config/settings.yaml")
    return Settings.from_yaml(config_path)
