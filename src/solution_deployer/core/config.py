"""Configuration management for the solution deployer."""

from pathlib import Path
from typing import Tuple, Union

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from solution_deployer.core.exceptions import ConfigurationError

logger = structlog.get_logger()


class Settings(BaseSettings):
    """Host process settings read from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="DEPLOYER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    config_file: str = Field("deployment.yaml", description="Deployment configuration YAML")

    # Observability
    log_level: str = Field("INFO", description="Log level")
    log_format: str = Field("json", description="json or console")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"log_level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL, got: {v}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError(f"log_format must be 'json' or 'console', got: {v}")
        return v


class PackageConfig(BaseModel):
    """Static settings for one solution package."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., description="Package archive file name")
    force_upgrade: bool = Field(False, description="Import even when the version is already installed")
    delete_only: bool = Field(False, description="Only remove the solution, never install it")
    publish_workflows: bool = Field(True, description="Activate processes after import")
    overwrite_unmanaged_customizations: bool = Field(True, description="Overwrite unmanaged customizations")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("package name cannot be empty or whitespace-only")
        return v.strip()


class DeploymentConfig(BaseModel):
    """Orchestrator-wide settings plus the ordered package list."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    solutions_folder: Path = Field(..., description="Directory holding the package archives")
    use_new_api: bool = Field(False, description="Use the newer remote import API")
    skip_holding_pattern: bool = Field(False, description="Deploy in a single phase without holding solutions")
    use_async: bool = Field(True, description="Run imports as asynchronous remote jobs")
    poll_interval_ms: int = Field(1000, gt=0, description="Delay between async status checks")
    async_timeout_seconds: int = Field(1200, gt=0, description="Maximum wait for an async job")
    packages: Tuple[PackageConfig, ...] = Field(..., min_length=1, description="Packages in install order")

    @field_validator("packages")
    @classmethod
    def validate_unique_names(cls, v: Tuple[PackageConfig, ...]) -> Tuple[PackageConfig, ...]:
        seen = set()
        for package in v:
            if package.name in seen:
                raise ValueError(f"duplicate package name: {package.name}")
            seen.add(package.name)
        return v


def _format_validation_errors(exc: ValidationError) -> list:
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "<root>"
        errors.append(f"{location}: {error['msg']}")
    return errors


def load_deployment_config(path: Union[str, Path]) -> DeploymentConfig:
    """Load and validate a deployment configuration file.

    Args:
        path: YAML file with the orchestrator settings and ``packages`` list

    Returns:
        Validated, immutable deployment configuration

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigurationError(f"Deployment configuration not found: {config_path}", code="config_not_found")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}", code="config_yaml") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Deployment configuration must be a mapping: {config_path}", code="config_shape")

    folder = raw.get("solutions_folder")
    if isinstance(folder, str) and not Path(folder).is_absolute():
        raw["solutions_folder"] = (config_path.parent / folder).resolve()

    try:
        config = DeploymentConfig.model_validate(raw)
    except ValidationError as e:
        errors = _format_validation_errors(e)
        for error in errors:
            logger.error("Configuration validation error", error=error)
        raise ConfigurationError(
            f"Deployment configuration is invalid ({len(errors)} errors): " + "; ".join(errors),
            code="config_invalid",
        ) from e

    logger.info(
        "Loaded deployment configuration",
        path=str(config_path),
        package_count=len(config.packages),
        skip_holding_pattern=config.skip_holding_pattern,
    )
    return config


def load_settings() -> Settings:
    """Read ``Settings`` from the environment.

    Raises:
        ConfigurationError: If a ``DEPLOYER_*`` variable holds an invalid value
    """
    try:
        return Settings()
    except ValidationError as e:
        errors = _format_validation_errors(e)
        raise ConfigurationError(
            f"Environment settings are invalid ({len(errors)} errors): " + "; ".join(errors),
            code="settings_invalid",
        ) from e
