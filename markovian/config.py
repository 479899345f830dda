"""
Markovian Service Configuration
"""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ===== Service =====
    SERVICE_NAME: str = Field(default="markovian")
    SERVICE_VERSION: str = Field(default="0.1.0")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)
    LOG_LEVEL: str = Field(default="info")
    DEBUG: bool = Field(default=False)

    # ===== CORS =====
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"]
    )

    # ===== Markov Chain Defaults =====
    MARKOV_MEMORY: int = Field(default=3, ge=1)
    MARKOV_MAX_TOKENS: int = Field(default=2000, ge=1)

    # ===== Performance =====
    COUNTER_WORKERS: int = Field(default=1, ge=1)
    PMAP_MAX_WORKERS: Optional[int] = Field(default=None)
    # Dense tensors above this many cells get a warning at build time
    TENSOR_WARN_CELLS: int = Field(default=5_000_000)
    # Dense tensors above this many cells are refused (8 bytes per cell)
    TENSOR_MAX_CELLS: int = Field(default=50_000_000, ge=1)

    # ===== Generation =====
    MAX_GENERATE_LENGTH: int = Field(default=10_000)

    # ===== Rendering =====
    RENDER_POPCOUNT: int = Field(default=10_000)
    RENDER_WIDTH: int = Field(default=1000)
    RENDER_HEIGHT: int = Field(default=500)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
