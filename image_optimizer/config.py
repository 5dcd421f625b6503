"""
Worker settings.

Storage location and credentials plus the transcode target (width, format,
quality) are read once per process from the environment or a `.env` file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # S3 / S3-compatible storage
    aws_region: str = Field("us-east-1", validation_alias="AWS_REGION")
    s3_endpoint_url: Optional[str] = Field(None, validation_alias="S3_ENDPOINT_URL")
    aws_access_key_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("AWS_ACCESS_KEY_ID", "AWS_ACCESS_KEY")
    )
    aws_secret_access_key: Optional[str] = Field(
        None, validation_alias=AliasChoices("AWS_SECRET_ACCESS_KEY", "AWS_SECRET_KEY")
    )
    s3_max_attempts: int = Field(3, ge=1, validation_alias="S3_MAX_ATTEMPTS")

    # Transcoding
    max_width: int = Field(1024, gt=0, validation_alias="OPTIMIZER_MAX_WIDTH")
    output_format: str = Field("webp", validation_alias="OPTIMIZER_FORMAT")
    quality: int = Field(80, ge=0, le=100, validation_alias="OPTIMIZER_QUALITY")

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"webp", "jpeg", "png"}:
            raise ValueError("OPTIMIZER_FORMAT must be one of webp|jpeg|png")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings to avoid reparsing env on every invocation."""
    return Settings()
