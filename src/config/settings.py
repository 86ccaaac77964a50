# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for backend location, hybrid search defaults,
filter fallback and logging options.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Vector database ===
    vector_db_type: Literal["none", "chromadb"] = "chromadb"
    chroma_url: str = ""
    chroma_path: Path | None = None

    # Collection embedding function (used by Chroma for lexical text queries)
    openai_api_key: str = ""
    openai_embedding_model: str = "text-embedding-3-small"

    # === Search ===
    search_default_top_k: int = 10
    hybrid_default_limit: int = 10
    hybrid_concurrent: bool = False
    hybrid_timeout_s: float | None = None

    # === Filters ===
    filter_fallback_policy: Literal["reject", "ignore_filter", "use_default"] = (
        "use_default"
    )
    filter_default_extensions: str = ".ts,.js,.py"

    # === Modality failures ===
    modality_failure_policy: Literal["fail", "degrade"] = "fail"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("search_default_top_k", "hybrid_default_limit")
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError("limits must be > 0")
        return v

    @field_validator("hybrid_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:  # noqa: N805
        if v is not None and v <= 0:
            raise ValueError("hybrid_timeout_s must be > 0 when set")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.chroma_url and self.chroma_path is not None:
            errors.append("CHROMA_URL and CHROMA_PATH are mutually exclusive")

        if self.chroma_url and "://" in self.chroma_url:
            scheme = self.chroma_url.split("://", 1)[0].lower()
            if scheme not in ("http", "https"):
                errors.append(f"CHROMA_URL scheme must be http or https, got {scheme!r}")

        if self.filter_fallback_policy == "use_default" and not self.filter_default_extensions_list:
            errors.append(
                "FILTER_FALLBACK_POLICY use_default requires FILTER_DEFAULT_EXTENSIONS"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def filter_default_extensions_list(self) -> list[str]:
        """Parse comma-separated default file extensions."""
        return [e.strip() for e in self.filter_default_extensions.split(",") if e.strip()]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-call config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
