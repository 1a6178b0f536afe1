"""Configuration management for the ctxzip session compactor."""

import os
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # ===========================
    # Context Budget
    # ===========================
    ctx_limit: int = Field(default=200000, alias="CTX_LIMIT")
    default_compress_pct: float = Field(default=50.0, alias="DEFAULT_COMPRESS_PCT")

    # ===========================
    # Span Selection
    # ===========================
    protect_start: int = Field(default=2, alias="PROTECT_START")
    protect_end: int = Field(default=3, alias="PROTECT_END")
    relevance_recent_turns: int = Field(default=3, alias="RELEVANCE_RECENT_TURNS")

    # ===========================
    # Session Storage
    # ===========================
    claude_projects_dir: str = Field(
        default=os.path.join("~", ".claude", "projects"),
        alias="CLAUDE_PROJECTS_DIR"
    )

    # ===========================
    # Server Configuration
    # ===========================
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    debug: bool = Field(default=False, alias="DEBUG")
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        alias="CORS_ORIGINS"
    )

    # ===========================
    # Logging Configuration
    # ===========================
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        populate_by_name = True
        extra = "ignore"

    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def get_projects_path(self) -> str:
        """Get the expanded path of the Claude projects directory."""
        return os.path.expanduser(self.claude_projects_dir)


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment (useful for testing)."""
    global settings
    settings = Settings()
    return settings
