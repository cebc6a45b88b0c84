"""
Configuration management for the Internship Matcher service.

Uses Pydantic Settings for type-safe configuration with environment variable support.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Base paths
ROOT_DIR = Path(__file__).parent.parent.parent
SRC_DIR = ROOT_DIR / "src"
DATA_DIR = ROOT_DIR / "data"


class DatabaseSettings(BaseSettings):
    """MongoDB configuration for the entity store collaborator."""

    model_config = SettingsConfigDict(env_prefix="DB_")

    host: str = "localhost"
    port: int = 27017
    name: str = "internship_matcher"
    username: str | None = None
    password: str | None = None

    # Collections owned by the CRUD layer (read-only for matching)
    profiles_collection: str = "profiles"
    jobs_collection: str = "job_posts"
    companies_collection: str = "companies"
    applications_collection: str = "job_applications"


class VectorStoreSettings(BaseSettings):
    """Vector database configuration for embeddings."""

    model_config = SettingsConfigDict(env_prefix="VECTOR_")

    provider: Literal["chromadb", "faiss", "memory"] = "chromadb"
    persist_directory: Path = DATA_DIR / "vectors"
    intern_collection: str = "intern_embeddings"
    job_collection: str = "job_embeddings"


class MLSettings(BaseSettings):
    """Embedding model configuration."""

    model_config = SettingsConfigDict(env_prefix="ML_")

    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_dimension: int = 384

    # Device settings
    device: Literal["cpu", "cuda", "mps", "auto"] = "auto"

    batch_size: int = 32

    # Seconds; None disables the bound
    embed_timeout: float | None = 30.0

    models_directory: Path = DATA_DIR / "models"

    @field_validator("device")
    @classmethod
    def validate_device(cls, v: str) -> str:
        """Auto-detect device if set to auto."""
        if v == "auto":
            try:
                import torch

                if torch.cuda.is_available():
                    return "cuda"
                elif torch.backends.mps.is_available():
                    return "mps"
            except ImportError:
                pass
            return "cpu"
        return v


class MatchingSettings(BaseSettings):
    """Similarity search defaults."""

    model_config = SettingsConfigDict(env_prefix="MATCH_")

    top_k: int = Field(default=10, ge=1)
    min_similarity: float | None = Field(default=None, ge=-1.0, le=1.0)
    search_timeout: float | None = 10.0

    # Pause between entities during a backfill, in seconds
    backfill_delay: float = Field(default=0.2, ge=0.0)


class APISettings(BaseSettings):
    """HTTP adapter configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: str = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"
    file_path: Path = ROOT_DIR / "logs" / "intern_match.log"
    rotation: str = "10 MB"
    retention: str = "30 days"
    console_output: bool = True
    file_output: bool = True


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    name: str = "Internship Matcher"
    version: str = "0.1.0"
    description: str = "Semantic job-intern matching service"
    debug: bool = False

    # Environment
    environment: Literal["development", "production", "testing"] = "development"

    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    vector_store: VectorStoreSettings = Field(default_factory=VectorStoreSettings)
    ml: MLSettings = Field(default_factory=MLSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    api: APISettings = Field(default_factory=APISettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# Global settings instance (singleton pattern)
_settings: AppSettings | None = None


def get_settings() -> AppSettings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


def reload_settings() -> AppSettings:
    """Force reload settings from environment."""
    global _settings
    _settings = AppSettings()
    return _settings
