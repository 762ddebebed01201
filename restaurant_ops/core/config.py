"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports two data-source modes:
    - LIVE: every gateway talks to the restaurant backend once the startup
      health probe succeeds
    - MOCK: the probe is skipped and every gateway serves the synthetic
      session dataset (no backend needed)

The probe result is computed once per session. There is no periodic
re-probe, so a backend that comes back mid-session is only picked up on
the next start.

Usage:
    from restaurant_ops.core.config import get_settings

    settings = get_settings()
    if settings.force_mock:
        # Gateways start disconnected

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import sys
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local work, synthetic data allowed without a backend
        PRODUCTION: Live backend expected
        STAGING: Pre-production backend
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.

    Attributes:
        env_mode: Current environment (development/production/staging)
        debug: Enable verbose logging and error details

        # Backend
        backend_base_url: Root URL of the restaurant REST backend
        health_path: Path of the lightweight health probe
        request_timeout: Transport timeout in seconds
        force_mock: Skip the probe and run every gateway in mock mode

        # Business Configuration
        tax_rate: Order tax rate (decimal)
        delivery_lead_minutes: Minimum lead time for estimated delivery times
        delivery_rounding_minutes: Boundary estimated delivery times snap to
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="Restaurant Operations Console",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="Admin API server host"
    )
    api_port: int = Field(
        default=8001,
        description="Admin API server port"
    )

    # ==========================================================================
    # RESTAURANT BACKEND
    # ==========================================================================

    backend_base_url: str = Field(
        default="http://localhost:8080",
        description="Root URL of the restaurant REST backend"
    )
    health_path: str = Field(
        default="/api/health",
        description="Health probe path, any 2xx means connected"
    )
    request_timeout: float = Field(
        default=30.0,
        description="Transport timeout in seconds"
    )
    force_mock: bool = Field(
        default=False,
        description="Skip the health probe and serve synthetic data"
    )

    # ==========================================================================
    # BUSINESS CONFIGURATION
    # ==========================================================================

    tax_rate: float = Field(
        default=0.10,
        description="Order tax rate as decimal"
    )
    delivery_lead_minutes: int = Field(
        default=30,
        description="Minimum minutes between now and an estimated delivery time"
    )
    delivery_rounding_minutes: int = Field(
        default=5,
        description="Estimated delivery times are rounded to this boundary"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    @field_validator("backend_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("delivery_rounding_minutes")
    @classmethod
    def validate_rounding(cls, v: int) -> int:
        if v <= 0 or 60 % v != 0:
            raise ValueError("delivery_rounding_minutes must divide 60")
        return v

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded only once per process so every gateway,
    store and the admin API see the same values.

    Returns:
        Settings: Configured application settings

    Example:
        >>> settings = get_settings()
        >>> print(settings.tax_rate)
        0.1
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured package logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return logging.getLogger("restaurant_ops")
