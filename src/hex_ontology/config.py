"""Configuration management for hex-ontology."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, loaded from environment and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="HEXONTO_",
    )

    # Board
    default_board_radius: int = Field(default=10, ge=0, description="Radius used when a project omits one")

    # Rules engine
    budget_fallback_name: str = Field(
        default="budget",
        description="Concept-local property tried when a PathBudget property does not resolve",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_file: Path | None = Field(default=None)

    # Paths
    data_dir: Path = Field(default=Path("data"))

    @property
    def projects_dir(self) -> Path:
        return self.data_dir / "projects"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
