"""
Configuration Settings.

This module defines the configuration of the execution core using Pydantic's
BaseSettings. All values are loaded from environment variables and the .env
file without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class ExecutionSettings(BaseModel):
    """Execution controller configuration."""

    max_iterations: int = Field(
        default=10,
        ge=1,
        alias="STEERABLE_AGENT_MAX_ITERATIONS",
        description="Maximum reasoning iterations per run",
    )
    interrupt_grace_period: float = Field(
        default=5.0,
        ge=0.0,
        alias="STEERABLE_AGENT_INTERRUPT_GRACE_PERIOD",
        description="Seconds an interrupt waits for the run to settle",
    )
    interrupt_poll_interval: float = Field(
        default=0.05,
        gt=0.0,
        alias="STEERABLE_AGENT_INTERRUPT_POLL_INTERVAL",
        description="Seconds between running-state checks while waiting for a run to settle",
    )
    auto_save_state: bool = Field(
        default=True,
        alias="STEERABLE_AGENT_AUTO_SAVE_STATE",
        description="Capture a snapshot when a run is stopped by a hook or an external token",
    )
    snapshot_version: str = Field(
        default="1.0",
        alias="STEERABLE_AGENT_SNAPSHOT_VERSION",
        description="Version tag stamped on captured snapshots",
    )

    model_config = {"populate_by_name": True}


class MonitoringSettings(BaseModel):
    """Logfire monitoring configuration."""

    enabled: bool = Field(default=False, alias="LOGFIRE_ENABLED", description="Enable Logfire tracing")
    token: Optional[str] = Field(default=None, alias="LOGFIRE_TOKEN", description="Logfire write token")
    service_name: str = Field(
        default="steerable-agent", alias="LOGFIRE_SERVICE_NAME", description="Service name reported to Logfire"
    )
    environment: str = Field(
        default="development", alias="LOGFIRE_ENVIRONMENT", description="Deployment environment reported to Logfire"
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Execution core settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Logging Configuration
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="STEERABLE_AGENT_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log format (simple, detailed, json)",
        alias="STEERABLE_AGENT_LOG_FORMAT",
    )
    log_file_dir: str = Field(
        default="logs",
        description="Directory for the log file when file logging is enabled",
        alias="STEERABLE_AGENT_LOG_FILE_DIR",
    )
    enable_file_logging: bool = Field(
        default=False,
        description="Write logs to a file in addition to the console",
        alias="STEERABLE_AGENT_ENABLE_FILE_LOGGING",
    )

    # =====================================================================
    # Execution Configuration
    # =====================================================================
    max_iterations: int = Field(default=10, ge=1, alias="STEERABLE_AGENT_MAX_ITERATIONS")
    interrupt_grace_period: float = Field(default=5.0, ge=0.0, alias="STEERABLE_AGENT_INTERRUPT_GRACE_PERIOD")
    interrupt_poll_interval: float = Field(default=0.05, gt=0.0, alias="STEERABLE_AGENT_INTERRUPT_POLL_INTERVAL")
    auto_save_state: bool = Field(default=True, alias="STEERABLE_AGENT_AUTO_SAVE_STATE")
    snapshot_version: str = Field(default="1.0", alias="STEERABLE_AGENT_SNAPSHOT_VERSION")

    # =====================================================================
    # Monitoring Configuration
    # =====================================================================
    logfire_enabled: bool = Field(default=False, alias="LOGFIRE_ENABLED")
    logfire_token: Optional[str] = Field(default=None, alias="LOGFIRE_TOKEN")
    logfire_service_name: str = Field(default="steerable-agent", alias="LOGFIRE_SERVICE_NAME")
    logfire_environment: str = Field(default="development", alias="LOGFIRE_ENVIRONMENT")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def execution(self) -> ExecutionSettings:
        """Get execution controller configuration from environment variables."""
        return ExecutionSettings.model_validate(self.model_dump(by_alias=True))

    @property
    def monitoring(self) -> MonitoringSettings:
        """Get monitoring configuration from environment variables."""
        return MonitoringSettings.model_validate(self.model_dump(by_alias=True))


settings = Settings()
