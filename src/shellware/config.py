"""Configuration management for shellware."""

from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from shellware.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SHELLWARE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Pipeline Configuration
    cache_size: int = Field(default=200, ge=2, description="Maximum entries per result cache")
    disabled_plugins: list[str] = Field(default_factory=list, description="Plugin names to skip at load time")

    # AWS Configuration
    session_ttl_seconds: int = Field(default=3600, ge=0, description="Lifetime of the session validity marker")
    session_dir: Path = Field(default=Path("/tmp"), description="Directory holding session validity markers")
    aws_bin: str = Field(default="aws", description="AWS CLI executable")
    aws_sso_bin: str = Field(default="aws-sso", description="Preferred SSO login helper, used when on PATH")

    # Kubernetes Configuration
    kubectl_bin: str = Field(default="kubectl", description="kubectl executable")
    k8s_context_mappings: Optional[str] = Field(
        None, description="Context to environment mappings, e.g. 'prd.k8s=production|stg.k8s=staging'"
    )

    # Logging Configuration
    log_level: str = Field(default="WARNING", description="Log level when debug tracing is off")


def get_settings(**overrides: object) -> Settings:
    """Get application settings.

    Args:
        overrides: Explicit field values taking precedence over the environment

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If the environment or overrides hold invalid values
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc
