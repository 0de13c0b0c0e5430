"""
Application Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or .env file.
"""

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Width of the pgvector column in the embeddings table (all-MiniLM-L6-v2)
VECTOR_COLUMN_DIMENSION: int = 384


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Required env vars (no defaults):
        POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB

    Optional env vars:
        POSTGRES_HOST (localhost), POSTGRES_PORT (5432),
        STORE_BACKEND (postgres), EMBEDDING_BACKEND (local),
        EMBEDDING_TIMEOUT (10.0), LOG_LEVEL (INFO)
    """

    PROJECT_NAME: str = "Stickies"

    # Database
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str

    # "memory" keeps everything in-process (tests, offline demos)
    STORE_BACKEND: Literal["postgres", "memory"] = "postgres"

    # Embeddings
    EMBEDDING_BACKEND: Literal["local", "openai", "mock", "disabled"] = "local"
    EMBEDDING_MODEL: str = "all-MiniLM-L6-v2"
    EMBEDDING_DIMENSION: int = VECTOR_COLUMN_DIMENSION
    EMBEDDING_TIMEOUT: float = 10.0
    EMBEDDING_PRELOAD: bool = False
    OPENAI_API_KEY: str | None = None
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"

    # Search
    SEARCH_LIMIT: int = 10
    LEXICAL_PHRASE_BONUS: float = 0.5

    # Clustering
    DEFAULT_CLUSTER_COUNT: int = 5
    KMEANS_MAX_ITERATIONS: int = 100

    # Background indexing
    INDEX_MAX_RETRIES: int = 3
    INDEX_RETRY_DELAY_SECONDS: float = 2.0

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )

    @model_validator(mode="after")
    def check_embedding_dimension(self) -> "Settings":
        """The postgres column is fixed-width; only the memory store can vary."""
        if self.EMBEDDING_DIMENSION < 1:
            raise ValueError(f"EMBEDDING_DIMENSION must be >= 1, got {self.EMBEDDING_DIMENSION}")
        if (
            self.STORE_BACKEND == "postgres"
            and self.EMBEDDING_DIMENSION != VECTOR_COLUMN_DIMENSION
        ):
            raise ValueError(
                f"EMBEDDING_DIMENSION={self.EMBEDDING_DIMENSION} does not match the "
                f"{VECTOR_COLUMN_DIMENSION}-dim embeddings column; "
                "use STORE_BACKEND=memory or add a migration"
            )
        return self

    @property
    def DATABASE_URL(self) -> str:
        """Async PostgreSQL connection string using asyncpg driver."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()  # type: ignore[call-arg]
