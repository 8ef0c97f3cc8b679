# src/env_api/config/settings.py
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from env_api.config.settings import get_settings
        settings = get_settings()
        port = settings.port
    """

    # Application Settings
    app_name: str = Field(
        default="web-env-k8s",
        alias="APP_NAME",
        description="Application name"
    )

    app_version: str = Field(
        default="v1",
        alias="APP_VERSION",
        description="Version reported by the health endpoint"
    )

    # Server Settings
    host: str = Field(
        default="0.0.0.0",
        alias="APP_HOST",
        description="Interface the HTTP server binds to"
    )

    port: int = Field(
        default=3000,
        alias="APP_PORT",
        ge=1,
        le=65535,
        description="Port the HTTP server listens on (the image exposes 3000)"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level"
    )

    # Kustomize / kubectl Configuration
    kustomize_root: str = Field(
        default="k8s",
        alias="KUSTOMIZE_ROOT",
        description="Directory holding base/ and overlays/"
    )

    kubectl_bin: str = Field(
        default="kubectl",
        alias="KUBECTL_BIN",
        description="kubectl executable"
    )

    kubectl_context: Optional[str] = Field(
        default=None,
        alias="KUBECTL_CONTEXT",
        description="kubeconfig context (current context when unset)"
    )

    kubectl_timeout: float = Field(
        default=120.0,
        alias="KUBECTL_TIMEOUT",
        gt=0,
        description="Timeout in seconds for a single kubectl invocation"
    )

    protected_environments: List[str] = Field(
        default_factory=lambda: ["prod"],
        alias="PROTECTED_ENVIRONMENTS",
        description="Overlays that are never applied without confirmation"
    )

    # Image Configuration
    docker_bin: str = Field(
        default="docker",
        alias="DOCKER_BIN",
        description="docker executable"
    )

    image_name: str = Field(
        default="myapp",
        alias="IMAGE_NAME",
        description="Image repository name"
    )

    image_tag: str = Field(
        default="latest",
        alias="IMAGE_TAG",
        description="Image tag"
    )

    image_platform: str = Field(
        default="linux/amd64",
        alias="IMAGE_PLATFORM",
        description="Target platform pinned by every Dockerfile stage"
    )

    dockerfile: str = Field(
        default="Dockerfile",
        alias="DOCKERFILE",
        description="Path to the Dockerfile"
    )

    # Smoke checks
    service_url: str = Field(
        default="http://localhost:3000",
        alias="SERVICE_URL",
        description="Base URL of a running service for smoke checks"
    )

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lowercase level names."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is one the logging module knows."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return v

    @property
    def image_ref(self) -> str:
        """Full image reference, e.g. ``myapp:latest``."""
        return f"{self.image_name}:{self.image_tag}"

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)

    def is_protected(self, environment: str) -> bool:
        return environment in self.protected_environments

    def get_environment_dict(self) -> Dict[str, Any]:
        """Get configuration as a dictionary suitable for docker or subprocess.

        Returns:
            Dictionary of environment variables
        """
        env_dict = {
            'APP_NAME': self.app_name,
            'APP_VERSION': self.app_version,
            'APP_HOST': self.host,
            'APP_PORT': str(self.port),
            'LOG_LEVEL': self.log_level,
        }
        if self.kubectl_context:
            env_dict['KUBECTL_CONTEXT'] = self.kubectl_context
        return env_dict

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
