"""Application settings and configuration helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly-typed configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = Field(default="Banking Assistant", description="Human-readable service name.")
    environment: str = Field(default="local", description="Deployment environment identifier.")
    log_level: str = Field(default="INFO", description="Application log level.")

    gemini_api_key: str | None = Field(
        default=None,
        description="Generative-language API key. Without it the rule-based classifier is used.",
    )
    gemini_model: str = Field(default="gemini-2.5-flash", description="Classifier model name.")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Generative-language REST endpoint.",
    )
    gemini_temperature: float = Field(default=0.3, ge=0.0, le=2.0)

    classifier_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound for a single classification call.",
    )
    operation_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound for a single banking operation call.",
    )
    intent_confidence_threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Classifier confidence below which an intent is treated as unrecognized.",
    )
    history_tail_size: int = Field(
        default=5,
        ge=0,
        description="Number of recent messages forwarded to the classifier.",
    )
    max_field_attempts: int = Field(
        default=3,
        ge=1,
        description="Failed answers to the same field before the task is abandoned.",
    )

    max_loan_amount: float = Field(default=1_000_000, gt=0)
    max_loan_tenure_months: int = Field(default=360, ge=1)
    max_transfer_amount: float = Field(default=1_000_000, gt=0)

    banking_api_base_url: str = Field(
        default="http://localhost:3000/api/v1",
        description="Base URL of the banking REST API.",
    )
    use_mock_banking: bool = Field(
        default=True,
        description="Serve banking operations from the in-process mock back end.",
    )

    frontend_origin: AnyHttpUrl | None = Field(
        default=None,
        description="Allowed frontend origin (CORS). If omitted, defaults to localhost dev server.",
    )
    additional_origins: List[AnyHttpUrl] = Field(
        default_factory=list,
        description="Additional allowed CORS origins for multi-client deployments.",
    )

    @property
    def cors_origins(self) -> list[str]:
        """Return the full list of allowed CORS origins."""

        origins: list[str] = []

        if self.frontend_origin:
            origins.append(str(self.frontend_origin).rstrip("/"))
        else:
            origins.extend([
                "http://localhost:3000",
                "http://127.0.0.1:3000",
            ])

        for origin in self.additional_origins:
            origins.append(str(origin).rstrip("/"))

        # Deduplicate while preserving order
        seen: set[str] = set()
        unique: list[str] = []
        for origin in origins:
            if origin not in seen:
                seen.add(origin)
                unique.append(origin)

        return unique

    @property
    def gemini_enabled(self) -> bool:
        return bool(self.gemini_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()
