"""Application settings using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "WARNING"
    log_json: bool = False

    # Graph backend: "neo4j" or "memory"
    graph_backend: str = "neo4j"
    graph_file: Path | None = None

    # Neo4j
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_username: str = "neo4j"
    neo4j_password: str = "cobolanalysis"
    neo4j_database: str = "neo4j"
    neo4j_max_connection_lifetime: float = 60.0
    neo4j_max_connection_pool_size: int = 10
    neo4j_connection_acquisition_timeout: float = 60.0

    # Analysis
    impact_level_limit: int = 100
    max_workers: int = 4

    @property
    def uses_memory_backend(self) -> bool:
        return self.graph_backend.lower() == "memory"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
