"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        """Load settings from YAML file."""
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return flatten_yaml_settings(data)


def flatten_yaml_settings(data: dict) -> dict[str, Any]:
    """Flatten the nested settings.yaml structure to Settings field names."""
    flattened = {}
    if "server" in data:
        flattened["host"] = data["server"].get("host")
        flattened["port"] = data["server"].get("port")
        flattened["allowed_origins"] = data["server"].get("allowed_origins")
    if "storage" in data:
        flattened["store_backend"] = data["storage"].get("backend")
        flattened["data_dir"] = data["storage"].get("data_dir")
    if "supabase" in data:
        flattened["supabase_url"] = data["supabase"].get("url")
        flattened["supabase_kv_table"] = data["supabase"].get("kv_table")

    # Remove None values
    return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: str = Field(default="development")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"]
    )

    # Storage
    store_backend: Literal["memory", "file", "supabase"] = Field(default="file")
    data_dir: Path | None = Field(default=None)

    # Supabase (auth + key/value table)
    supabase_url: str | None = Field(default=None)
    supabase_service_role_key: str | None = Field(default=None)
    supabase_kv_table: str = Field(default="kv_store")

    # Development auth: bearer token -> user id. Used when Supabase is not configured.
    static_tokens: dict[str, str] = Field(default_factory=dict)

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def store_path(self) -> Path:
        d = self.data_dir or self.project_root / "data"
        d.mkdir(parents=True, exist_ok=True)
        return d / "kv_store.json"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()
