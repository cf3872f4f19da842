"""Configuration management for stackship using Pydantic."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from stackship.core.exceptions import ConfigError
from stackship.core.output import OutputFormat
from stackship.core.logging import LogLevel


class AWSConfig(BaseModel):
    """AWS configuration."""

    profile: str | None = None
    region: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    session_token: str | None = None
    endpoint_url: str | None = None

    def get_profile(self) -> str | None:
        """Get AWS profile from config or environment."""
        return (
            os.environ.get("STACKSHIP_AWS_PROFILE")
            or os.environ.get("AWS_PROFILE")
            or self.profile
        )

    def get_region(self) -> str | None:
        """Get AWS region from config or environment."""
        return (
            os.environ.get("STACKSHIP_AWS_REGION")
            or os.environ.get("AWS_REGION")
            or os.environ.get("AWS_DEFAULT_REGION")
            or self.region
        )

    def get_endpoint_url(self) -> str | None:
        """Get a custom endpoint (e.g. LocalStack) from config or environment."""
        return os.environ.get("STACKSHIP_AWS_ENDPOINT_URL") or self.endpoint_url


class PollConfig(BaseModel):
    """Stack status polling configuration."""

    delay: float = 5.0  # seconds before the second status query
    backoff: float = 1.5
    max_delay: float = 30.0
    deadline: float | None = 3600.0  # None waits forever
    max_transport_errors: int | None = 5  # None retries forever

    @field_validator("backoff")
    @classmethod
    def validate_backoff(cls, v: float) -> float:
        if v < 1.0:
            raise ValueError("backoff must be >= 1.0")
        return v


class DeployConfig(BaseModel):
    """Deployment configuration."""

    stage: str = "dev"
    lambda_path: str = "target/functions.jar"
    assembled_dir: str = "target/"
    compiled_source_path: str = "target/generated-sources/annotations/"
    descriptor_file: str = "nimbus-state.json"
    bucket_export_suffix: str = "NimbusDeploymentBucketName"
    create_template_prefix: str = "cloudformation-stack-create"
    update_template_prefix: str = "cloudformation-stack-update"
    lambda_key: str = "lambdacode"
    template_key: str = "update-template"
    upload_concurrency: int = 1
    poll: PollConfig = Field(default_factory=PollConfig)

    @field_validator("upload_concurrency")
    @classmethod
    def validate_upload_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("upload_concurrency must be at least 1")
        return v

    def get_stage(self) -> str:
        """Get target stage from config or environment."""
        return os.environ.get("STACKSHIP_STAGE") or self.stage


class ProfileConfig(BaseModel):
    """Profile configuration grouping all service settings."""

    aws: AWSConfig = Field(default_factory=AWSConfig)
    deploy: DeployConfig = Field(default_factory=DeployConfig)


class GlobalConfig(BaseModel):
    """Global settings."""

    output_format: OutputFormat = OutputFormat.TABLE
    color: str = "auto"  # auto, always, never
    verbosity: LogLevel = LogLevel.INFO
    dry_run: bool = False
    confirm_destructive: bool = True

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        if v not in ("auto", "always", "never"):
            raise ValueError("color must be 'auto', 'always', or 'never'")
        return v


class StackshipConfig(BaseModel):
    """Main configuration model."""

    model_config = {"populate_by_name": True}

    version: str = "1"
    global_settings: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    profiles: dict[str, ProfileConfig] = Field(default_factory=lambda: {"default": ProfileConfig()})

    def get_profile(self, name: str | None = None) -> ProfileConfig:
        """Get a profile by name, defaulting to 'default'."""
        profile_name = name or "default"
        if profile_name not in self.profiles:
            raise ConfigError(f"Profile '{profile_name}' not found")
        return self.profiles[profile_name]


class ConfigLoader:
    """Loads and merges configuration from multiple sources."""

    CONFIG_FILENAMES = ["stackship.yaml", "stackship.yml", ".stackship.yaml", ".stackship.yml"]

    def __init__(self):
        self._config: StackshipConfig | None = None

    def load(
        self,
        config_file: str | Path | None = None,
        profile: str | None = None,
    ) -> StackshipConfig:
        """Load configuration from files and environment.

        Priority (highest to lowest):
        1. Explicitly specified config file
        2. Project config (./stackship.yaml)
        3. User config (~/.stackship/config.yaml)

        Args:
            config_file: Optional explicit config file path
            profile: Profile name to use

        Returns:
            Merged configuration
        """
        configs: list[dict[str, Any]] = []

        user_config_path = Path.home() / ".stackship" / "config.yaml"
        if user_config_path.exists():
            configs.append(self._load_yaml_file(user_config_path))

        project_config = self._find_project_config()
        if project_config:
            configs.append(self._load_yaml_file(project_config))

        if config_file:
            config_path = Path(config_file)
            if not config_path.exists():
                raise ConfigError(f"Config file not found: {config_file}")
            configs.append(self._load_yaml_file(config_path))

        merged = self._merge_configs(configs)

        try:
            self._config = StackshipConfig(**merged)
        except ValueError as e:
            raise ConfigError(f"Invalid configuration: {e}")

        if profile:
            # Fail early on an unknown profile
            self._config.get_profile(profile)

        return self._config

    def _find_project_config(self) -> Path | None:
        """Find project config file in current or parent directories."""
        current = Path.cwd()

        while current != current.parent:
            for filename in self.CONFIG_FILENAMES:
                config_path = current / filename
                if config_path.exists():
                    return config_path
            current = current.parent

        return None

    def _load_yaml_file(self, path: Path) -> dict[str, Any]:
        """Load a YAML config file."""
        try:
            with open(path) as f:
                content = yaml.safe_load(f) or {}
                return content
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}")

    def _merge_configs(self, configs: list[dict[str, Any]]) -> dict[str, Any]:
        """Deep merge multiple configuration dictionaries."""
        result: dict[str, Any] = {}
        for config in configs:
            result = self._deep_merge(result, config)
        return result

    def _deep_merge(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result


# Global config loader instance
_config_loader = ConfigLoader()


def load_config(
    config_file: str | Path | None = None,
    profile: str | None = None,
) -> StackshipConfig:
    """Load stackship configuration.

    Args:
        config_file: Optional explicit config file path
        profile: Profile name to use

    Returns:
        Loaded configuration
    """
    return _config_loader.load(config_file, profile)


def get_default_config() -> StackshipConfig:
    """Get default configuration without loading from files."""
    return StackshipConfig()
