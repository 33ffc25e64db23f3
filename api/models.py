"""Pydantic models for API settings and responses."""
from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, read from CECILEFY_* environment variables (and PORT)."""
    model_config = SettingsConfigDict(
        env_prefix="CECILEFY_",
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = Field(3000, ge=1, le=65535, validation_alias="PORT", description="Listen port")
    log_level: str = "INFO"
    connect_timeout: float = Field(10.0, gt=0, description="Upstream connect timeout in seconds")
    read_timeout: float = Field(30.0, gt=0, description="Max stall between upstream chunks in seconds")
    buffer_upstream: bool = Field(False, description="Read the whole upstream body before relaying")
    expose_error_details: bool = Field(
        True,
        validation_alias="CECILEFY_EXPOSE_ERRORS",
        description="Include exception text in 500 responses",
    )
    static_dir: Optional[str] = Field(None, description="Directory holding the frontend page")


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
