# config.py
from __future__ import annotations
from typing import List, Optional, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices, model_validator

_PLACEHOLDER_KEYS = {"", "your-groq-api-key-here", "gsk_YOUR_ACTUAL_GROQ_API_KEY_HERE"}

class Settings(BaseSettings):
    # Read .env; ignore extra env vars to avoid crashes
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_nested_delimiter="__",
        env_prefix="",  # no automatic prefix
    )

    # --- Runtime env / debugging ---
    APP_ENV: Literal["development", "staging", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENV", "app_env"),
    )
    DEBUG: bool = Field(
        default=False,
        validation_alias=AliasChoices("DEBUG", "debug"),
    )

    # --- Primary provider (Groq, OpenAI-compatible endpoint) ---
    GROQ_API_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("GROQ_API_KEY", "groq_api_key"),
    )
    GROQ_MODEL: str = Field(
        default="llama3-70b-8192",
        validation_alias=AliasChoices("GROQ_MODEL", "groq_model"),
    )
    GROQ_BASE_URL: str = Field(
        default="https://api.groq.com/openai/v1",
        validation_alias=AliasChoices("GROQ_BASE_URL", "groq_base_url"),
    )

    # --- Fallback provider (OpenRouter); empty key disables the fallback hop ---
    OPENROUTER_API_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("OPENROUTER_API_KEY", "openrouter_api_key"),
    )
    OPENROUTER_MODEL: str = Field(
        default="deepseek/deepseek-r1-0528-qwen3-8b:free",
        validation_alias=AliasChoices("OPENROUTER_MODEL", "openrouter_model"),
    )
    OPENROUTER_BASE_URL: str = Field(
        default="https://openrouter.ai/api/v1",
        validation_alias=AliasChoices("OPENROUTER_BASE_URL", "openrouter_base_url"),
    )

    # --- Generation defaults ---
    LLM_TEMPERATURE: float = Field(
        default=0.1,
        validation_alias=AliasChoices("LLM_TEMPERATURE", "llm_temperature"),
    )
    PROVIDER_TIMEOUT_S: float = Field(
        default=60.0,
        validation_alias=AliasChoices("PROVIDER_TIMEOUT_S", "provider_timeout_s"),
    )

    # --- Currency table ---
    CURRENCY_CACHE_TTL_S: int = Field(
        default=3600,
        validation_alias=AliasChoices("CURRENCY_CACHE_TTL_S", "currency_cache_ttl_s"),
    )

    # --- Server Settings (for deployment) ---
    PORT: int = Field(
        default=8000,
        validation_alias=AliasChoices("PORT", "port"),
    )
    HOST: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("HOST", "host"),
    )
    MAX_REQUEST_BYTES: int = Field(
        default=1024 * 50,
        validation_alias=AliasChoices("MAX_REQUEST_BYTES", "max_request_bytes"),
    )

    # --- Logging ---
    LOG_LEVEL: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "log_level"),
    )

    # --- CORS (env-driven) ---
    CORS_ALLOW_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"],
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS", "cors_allow_origins"),
    )
    # Optional comma-separated alternative that overrides the above
    FRONTEND_ORIGINS: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("FRONTEND_ORIGINS", "frontend_origins"),
    )

    CORS_ALLOW_CREDENTIALS: bool = Field(
        default=False,
        validation_alias=AliasChoices("CORS_ALLOW_CREDENTIALS", "cors_allow_credentials"),
    )
    CORS_ALLOW_METHODS: List[str] = Field(
        default_factory=lambda: ["GET", "POST", "OPTIONS"],
        validation_alias=AliasChoices("CORS_ALLOW_METHODS", "cors_allow_methods"),
    )
    CORS_ALLOW_HEADERS: List[str] = Field(
        default_factory=lambda: [
            "Accept",
            "Accept-Language",
            "Content-Language",
            "Content-Type",
            "X-Request-Id",
        ],
        validation_alias=AliasChoices("CORS_ALLOW_HEADERS", "cors_allow_headers"),
    )
    CORS_EXPOSE_HEADERS: List[str] = Field(
        default_factory=lambda: ["X-Request-Id"],
        validation_alias=AliasChoices("CORS_EXPOSE_HEADERS", "cors_expose_headers"),
    )
    CORS_MAX_AGE: int = Field(
        default=86400,
        validation_alias=AliasChoices("CORS_MAX_AGE", "cors_max_age"),
    )

    @model_validator(mode="after")
    def _merge_frontend_origins(self) -> "Settings":
        if self.FRONTEND_ORIGINS:
            parts = [p.strip() for p in self.FRONTEND_ORIGINS.split(",") if p.strip()]
            if parts:
                self.CORS_ALLOW_ORIGINS = parts
        return self

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":
        """Validate critical settings for production deployment."""
        if self.APP_ENV == "production":
            if self.GROQ_API_KEY in _PLACEHOLDER_KEYS:
                raise ValueError(
                    "GROQ_API_KEY must be set to a valid key in production. "
                    "Get your key from https://console.groq.com/keys"
                )

            localhost_origins = [origin for origin in self.CORS_ALLOW_ORIGINS
                               if "localhost" in origin or "127.0.0.1" in origin]
            if localhost_origins:
                import logging
                logging.getLogger("config").warning(
                    f"Production environment includes localhost CORS origins: {localhost_origins}. "
                    "Consider removing these for production deployment."
                )

        return self

    @property
    def has_fallback(self) -> bool:
        return bool(self.OPENROUTER_API_KEY)

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.DEBUG else self.LOG_LEVEL.upper()

settings = Settings()
