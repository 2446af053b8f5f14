"""Service settings using pydantic settings with structured sections."""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8997
    reload: bool = False
    log_level: str = "info"


class DatabaseSettings(BaseModel):
    url: Optional[str] = None
    echo: bool = False


class SecuritySettings(BaseModel):
    api_key: Optional[str] = None
    api_key_hash: Optional[str] = None


class StorageSettings(BaseModel):
    data_dir: Path = Field(default=Path("~/.dev-loop"))
    config_file: Optional[Path] = None


class ExecutionSettings(BaseModel):
    timeout_seconds: float = Field(default=300.0, gt=0)
    max_output_bytes: int = Field(default=1024 * 1024, gt=0)
    busy_policy: Literal["queue", "reject"] = "queue"
    kill_grace_seconds: float = Field(default=3.0, ge=0)
    env_input_prefix: str = "env:"


class CatalogSettings(BaseModel):
    max_header_lines: int = Field(default=200, gt=0)
    rescan_on_startup: bool = True


class Settings(BaseSettings):
    """Top-level service settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="DEVLOOP_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    debug: bool = False
    project_name: str = "Developer Loop"
    api_prefix: str = "/api"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    security: SecuritySettings = SecuritySettings()
    storage: StorageSettings = StorageSettings()
    execution: ExecutionSettings = ExecutionSettings()
    catalog: CatalogSettings = CatalogSettings()

    @property
    def data_dir(self) -> Path:
        return self.storage.data_dir.expanduser()

    @property
    def config_file(self) -> Path:
        if self.storage.config_file is not None:
            return self.storage.config_file.expanduser()
        return self.data_dir / "config.json"

    @property
    def database_url(self) -> str:
        if self.database.url:
            return self.database.url
        return f"sqlite+aiosqlite:///{self.data_dir / 'devloop.db'}"

    @property
    def auth_enabled(self) -> bool:
        return bool(self.security.api_key or self.security.api_key_hash)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
