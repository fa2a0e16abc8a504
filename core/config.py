import logging

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    PROJECT_NAME: str = "Neurosynth Explorer"
    NEUROSYNTH_BASE_URL: str = Field(
        default="https://mil.psy.ntu.edu.tw:5000",
        validation_alias=AliasChoices("NEUROSYNTH_BASE_URL", "API_BASE"),
        description="Origin of the remote terms/studies API",
    )
    REQUEST_CONNECT_TIMEOUT: float = Field(default=5.0, gt=0)
    REQUEST_READ_TIMEOUT: float = Field(default=30.0, gt=0)
    # 1 means a single attempt; raise to retry timeouts and 5xx responses
    HTTP_MAX_ATTEMPTS: int = Field(default=1, ge=1, le=10)
    DEBOUNCE_SECONDS: float = Field(default=0.4, ge=0)
    TERMS_CACHE_TTL: float = 300.0
    RELATED_CACHE_TTL: float = 120.0
    STUDIES_CACHE_TTL: float = 60.0
    LOG_LEVEL: str = "INFO"

    @field_validator("NEUROSYNTH_BASE_URL")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure the API origin is properly formatted."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"NEUROSYNTH_BASE_URL must start with http:// or https://, got: {v}")
        return v.rstrip("/")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            logger.warning("Unknown LOG_LEVEL '%s'; falling back to INFO", v)
            return "INFO"
        return level

    @property
    def request_timeout(self) -> tuple[float, float]:
        return (self.REQUEST_CONNECT_TIMEOUT, self.REQUEST_READ_TIMEOUT)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )


settings = Settings()
