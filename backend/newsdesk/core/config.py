from functools import lru_cache
import json
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

KNOWN_PROVIDERS = ("gemini", "base44")


def _parse_list_value(value: str) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return []
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except ValueError:
            pass
        return [item.strip() for item in raw.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="forbid",
        validate_by_name=True,
        populate_by_name=True,
    )

    ai_provider: str = Field(
        default="gemini",
        validation_alias=AliasChoices("AI_PROVIDER", "NEXT_PUBLIC_AI_PROVIDER"),
    )

    gemini_api_key: str = Field(default="", validation_alias=AliasChoices("GEMINI_API_KEY"))
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1",
        validation_alias=AliasChoices("GEMINI_BASE_URL"),
    )
    gemini_model: str = Field(default="gemini-2.0-flash", validation_alias=AliasChoices("GEMINI_MODEL"))

    base44_api_key: str = Field(default="", validation_alias=AliasChoices("BASE44_API_KEY"))
    base44_project_id: str = Field(default="", validation_alias=AliasChoices("BASE44_PROJECT_ID"))
    base44_base_url: str = Field(
        default="https://api.base44.com",
        validation_alias=AliasChoices("BASE44_BASE_URL", "NEXT_PUBLIC_BASE44_URL"),
    )
    base44_model: str = Field(default="", validation_alias=AliasChoices("BASE44_MODEL"))

    ai_timeout_seconds: float = 30.0
    ai_max_tokens: int = 1000
    ai_temperature: float = 0.7
    ai_json_temperature: float = 0.3
    ai_rate_limit_default_retry_seconds: int = 17
    ai_error_snippet_chars: int = 800

    rate_limit_ai_enabled: bool = False
    rate_limit_ai_per_min: int = 20
    trusted_proxy_cidrs: Annotated[list[str], NoDecode] = Field(default_factory=list)

    docs_enabled: bool = Field(default=True)
    openapi_enabled: bool = Field(default=True)
    expose_error_details: bool = False

    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=list)
    cors_allow_methods: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    cors_allow_headers: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["Content-Type", "Accept"])

    @field_validator(
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        "trusted_proxy_cidrs",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return _parse_list_value(value)
        return value

    @field_validator("ai_provider", mode="before")
    @classmethod
    def _known_provider(cls, value):
        name = str(value or "").lower().strip() or "gemini"
        if name not in KNOWN_PROVIDERS:
            msg = f"Unknown AI provider {value!r}; valid: {list(KNOWN_PROVIDERS)}"
            raise ValueError(msg)
        return name

    @field_validator("ai_temperature", "ai_json_temperature")
    @classmethod
    def _temperature_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            msg = f"Temperature must be 0.0–1.0, got {v}"
            raise ValueError(msg)
        return v


@lru_cache

def get_settings() -> Settings:
    return Settings()
