import json
from typing import List, Union
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Kitchen Stock Backend"
    env: str = "dev"
    log_level: str = "INFO"

    # DATABASE
    database_url: str
    db_pool_size: int = Field(default=10, ge=1, le=100)
    db_max_overflow: int = Field(default=20, ge=0, le=200)
    db_pool_timeout_seconds: int = Field(default=30, ge=1, le=300)
    db_pool_recycle_seconds: int = Field(default=1800, ge=30, le=86_400)

    api_timeout_hint_ms: int = Field(default=300000, ge=1000, le=1_800_000)

    # INVENTORY
    default_operator_name: str = "system"
    variance_warning_ratio: float = Field(default=0.05, ge=0, le=1)
    variance_critical_ratio: float = Field(default=0.10, ge=0, le=1)
    variance_absolute_tolerance: float = Field(default=0.1, ge=0)

    # CORS
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    cors_origin_regex: str | None = None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            if not v.strip():
                return []
            if v.startswith("["):
                parsed = json.loads(v)
                if not isinstance(parsed, list):
                    raise ValueError("CORS_ORIGINS JSON value must be a list")
                return [str(i).strip() for i in parsed if str(i).strip()]
            return [i.strip() for i in v.split(",") if i.strip()]
        if isinstance(v, list):
            return [str(i).strip() for i in v if str(i).strip()]
        raise ValueError(v)

    @field_validator("default_operator_name", mode="before")
    @classmethod
    def normalize_operator_name(cls, value: str | None) -> str:
        cleaned = str(value or "").strip()
        return cleaned or "system"

    @model_validator(mode="after")
    def validate_variance_thresholds(self) -> "Settings":
        if self.variance_warning_ratio > self.variance_critical_ratio:
            raise ValueError("VARIANCE_WARNING_RATIO cannot exceed VARIANCE_CRITICAL_RATIO")

        env_value = self.env.lower().strip()
        if env_value in {"prod", "production"}:
            if "*" in self.cors_origins:
                raise ValueError("CORS_ORIGINS cannot contain '*' in production")
            if self.cors_origin_regex:
                raise ValueError("CORS_ORIGIN_REGEX cannot be set in production")
        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        enable_decoding=False,
    )


settings = Settings()
